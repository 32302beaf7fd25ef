"""Shared data models for the spread monitor.

CRITICAL: All rates, spreads and thresholds use Decimal. Timestamps are Unix
milliseconds.

Sign convention: ``diff = market_rate - platform_rate``. A positive diff means
the market has moved above the platform's locked rate. Risk classification
always compares the absolute value.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class RiskLevel(str, Enum):
    """Ordered risk levels: safe < warning < danger < critical."""

    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    def worst(self, other: "RiskLevel") -> "RiskLevel":
        """Return the more severe of two levels."""
        return self if self.rank >= other.rank else other


_RISK_RANK = {
    RiskLevel.SAFE: 0,
    RiskLevel.WARNING: 1,
    RiskLevel.DANGER: 2,
    RiskLevel.CRITICAL: 3,
}


@dataclass
class RateQuote:
    """Outcome of one source fetch. Discarded after aggregation."""

    source: str
    rate: Decimal | None
    weight: Decimal
    ok: bool
    error: str | None = None


@dataclass(frozen=True)
class RateRecord:
    """Point-in-time reading owned by the history ledger."""

    timestamp: int  # Unix milliseconds
    market_rate: Decimal
    platform_rate: Decimal
    diff: Decimal
    risk_level: RiskLevel


@dataclass
class DailyStats:
    """Per-date rollup of rate records, keyed by GMT+8 calendar date.

    ``sample_count`` backs the running averages.
    """

    date: str  # YYYY-MM-DD
    max_diff: Decimal
    min_diff: Decimal
    avg_diff: Decimal
    max_market_rate: Decimal
    min_market_rate: Decimal
    avg_market_rate: Decimal
    platform_rate: Decimal
    risk_level: RiskLevel
    lock_time_rate: Decimal | None = None
    sample_count: int = 1


@dataclass(frozen=True)
class Thresholds:
    """Spread magnitudes at which each risk level starts.

    ``lock_warning`` is an optional lower warning threshold that applies only
    inside the lock window. When None, ``warning`` is used.
    """

    warning: Decimal = Decimal("0.05")
    danger: Decimal = Decimal("0.08")
    critical: Decimal = Decimal("0.10")
    lock_warning: Decimal | None = None

    @property
    def effective_lock_warning(self) -> Decimal:
        """Lock window warning level, never above ``warning``."""
        if self.lock_warning is None:
            return self.warning
        return min(self.lock_warning, self.warning)


@dataclass(frozen=True)
class ExpansionState:
    """Snapshot of the expansion tracker."""

    previous_abs_spread: Decimal | None = None
    consecutive_expansions: int = 0
