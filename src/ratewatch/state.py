"""Process-wide monitor state.

A single owned container for the current rates, user-adjustable settings,
expansion tracker and alert state. Everything that changes during a fetch
cycle goes through an explicit method here, called only by the monitor while
it holds the cycle lock.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation

from ratewatch.config import MonitorSettings
from ratewatch.exceptions import SettingsError
from ratewatch.logging import get_logger
from ratewatch.models import RiskLevel, Thresholds
from ratewatch.risk.alerts import AlertState
from ratewatch.risk.expansion import ExpansionTracker

logger = get_logger(__name__)


def parse_stored_settings(raw: dict[str, str]) -> dict[str, Decimal]:
    """Parse decimal-string settings, skipping unparseable values."""
    parsed: dict[str, Decimal] = {}
    for key, value in raw.items():
        try:
            parsed[key] = Decimal(str(value).strip())
        except InvalidOperation:
            logger.warning("invalid_stored_setting", key=key, value=value)
            continue
        if not parsed[key].is_finite():
            logger.warning("invalid_stored_setting", key=key, value=value)
            del parsed[key]
    return parsed


@dataclass(frozen=True)
class MonitorSnapshot:
    """Read-only view of the state for the alert/UI contract."""

    market_rate: Decimal
    platform_rate: Decimal
    cost_buffer: Decimal
    usdt_premium: Decimal
    thresholds: Thresholds
    diff: Decimal | None
    risk_level: RiskLevel
    consecutive_expansions: int
    alert_acknowledged: bool
    last_updated: int | None
    last_error: str | None


class MonitorState:
    """Owned mutable state of the spread monitor.

    Args:
        settings: Defaults for rates, thresholds and alert cooldown.
    """

    def __init__(self, settings: MonitorSettings) -> None:
        self.market_rate = Decimal("0")
        self.platform_rate = settings.platform_rate
        self.cost_buffer = settings.cost_buffer
        self.usdt_premium = settings.usdt_premium
        self.thresholds = Thresholds(
            warning=settings.warning_threshold,
            danger=settings.danger_threshold,
            critical=settings.critical_threshold,
            lock_warning=settings.lock_warning_threshold,
        )
        self.last_updated: int | None = None
        self.last_diff: Decimal | None = None
        self.risk_level = RiskLevel.SAFE
        self.last_error: str | None = None
        self.expansion = ExpansionTracker()
        self.alert = AlertState(settings.critical_alert_cooldown_seconds)

    # ──────────────────────────────────────────────
    # Settings
    # ──────────────────────────────────────────────

    def settings_values(self) -> dict[str, Decimal]:
        """Current values of every store-backed setting."""
        return {
            "platform_rate": self.platform_rate,
            "cost_buffer": self.cost_buffer,
            "warning_threshold": self.thresholds.warning,
            "danger_threshold": self.thresholds.danger,
            "critical_threshold": self.thresholds.critical,
            "usdt_premium": self.usdt_premium,
        }

    def apply_settings(self, values: dict[str, Decimal]) -> dict[str, Decimal]:
        """Validate and apply a partial settings update.

        Either every value is applied or none is.

        Returns:
            The values that changed.

        Raises:
            SettingsError: If a value is out of range or thresholds are not
                ascending.
        """
        merged = self.settings_values()
        unknown = set(values) - set(merged)
        if unknown:
            raise SettingsError(f"Unknown settings: {sorted(unknown)}")
        merged.update(values)

        if merged["platform_rate"] <= 0:
            raise SettingsError("platform_rate must be positive")
        if merged["cost_buffer"] < 0:
            raise SettingsError("cost_buffer must not be negative")
        if merged["usdt_premium"] <= -1:
            raise SettingsError("usdt_premium must be greater than -1")
        warning = merged["warning_threshold"]
        danger = merged["danger_threshold"]
        critical = merged["critical_threshold"]
        if not Decimal("0") < warning <= danger <= critical:
            raise SettingsError("thresholds must satisfy 0 < warning <= danger <= critical")

        changed = {k: v for k, v in merged.items() if self.settings_values()[k] != v}
        self.platform_rate = merged["platform_rate"]
        self.cost_buffer = merged["cost_buffer"]
        self.usdt_premium = merged["usdt_premium"]
        self.thresholds = replace(
            self.thresholds,
            warning=warning,
            danger=danger,
            critical=critical,
        )
        if changed:
            logger.info("settings_applied", **{k: str(v) for k, v in changed.items()})
        return changed

    # ──────────────────────────────────────────────
    # Cycle updates
    # ──────────────────────────────────────────────

    def publish(self, market_rate: Decimal, diff: Decimal, risk_level: RiskLevel, at_ms: int) -> None:
        """Commit the outcome of a successful cycle."""
        self.market_rate = market_rate
        self.last_diff = diff
        self.risk_level = risk_level
        self.last_updated = at_ms
        self.last_error = None

    def record_error(self, message: str) -> None:
        """Remember a failed cycle. Rates and history stay untouched."""
        self.last_error = message

    def snapshot(self) -> MonitorSnapshot:
        return MonitorSnapshot(
            market_rate=self.market_rate,
            platform_rate=self.platform_rate,
            cost_buffer=self.cost_buffer,
            usdt_premium=self.usdt_premium,
            thresholds=self.thresholds,
            diff=self.last_diff,
            risk_level=self.risk_level,
            consecutive_expansions=self.expansion.consecutive_expansions,
            alert_acknowledged=self.alert.acknowledged,
            last_updated=self.last_updated,
            last_error=self.last_error,
        )
