"""Spread risk classification.

Maps the current spread to one of four ordered risk levels. Rules are checked
in order and the first match wins; all comparisons use the absolute spread.

1. |spread| >= critical                                      -> critical
2. lock window and >= 2 consecutive expansions
   and |spread| >= lock warning                              -> critical
3. |spread| >= danger                                        -> danger
4. |spread| >= warning                                       -> warning
5. lock window and |spread| >= lock warning                  -> warning
6. otherwise                                                 -> safe

The lock warning threshold equals the warning threshold unless a lower one is
configured, in which case rule 5 catches spreads between the two.
"""

from decimal import Decimal

from ratewatch.models import RiskLevel, Thresholds

#: Consecutive expansions inside the lock window that escalate to critical.
LOCK_ESCALATION_EXPANSIONS = 2


def classify_risk(
    spread: Decimal,
    is_lock_window: bool,
    consecutive_expansions: int,
    thresholds: Thresholds,
) -> RiskLevel:
    """Return the risk level for a spread.

    Args:
        spread: Signed market - platform difference.
        is_lock_window: Whether the reading falls in the lock window.
        consecutive_expansions: Current expansion tracker count.
        thresholds: Active thresholds.
    """
    magnitude = abs(spread)
    lock_warning = thresholds.effective_lock_warning

    if magnitude >= thresholds.critical:
        return RiskLevel.CRITICAL
    if (
        is_lock_window
        and consecutive_expansions >= LOCK_ESCALATION_EXPANSIONS
        and magnitude >= lock_warning
    ):
        return RiskLevel.CRITICAL
    if magnitude >= thresholds.danger:
        return RiskLevel.DANGER
    if magnitude >= thresholds.warning:
        return RiskLevel.WARNING
    if is_lock_window and magnitude >= lock_warning:
        return RiskLevel.WARNING
    return RiskLevel.SAFE


def compute_diff(market_rate: Decimal, platform_rate: Decimal) -> Decimal:
    """Spread sign convention: market minus platform."""
    return market_rate - platform_rate


def adjusted_diff(
    market_rate: Decimal, platform_rate: Decimal, cost_buffer: Decimal
) -> Decimal:
    """Spread net of the USDT acquisition cost buffer."""
    return compute_diff(market_rate, platform_rate) - cost_buffer
