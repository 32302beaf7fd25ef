"""Alert acknowledgement state and critical alert cooldown.

The presentation layer owns what "dismissing" an alert looks like; the core
only keeps the acknowledged flag and resets it when risk returns to safe.
Critical notifications are rate-limited so a sustained critical spread does
not re-notify every cycle.
"""

import time

from ratewatch.logging import get_logger
from ratewatch.models import RiskLevel

logger = get_logger(__name__)


class AlertState:
    """Acknowledged flag plus critical notification cooldown.

    Args:
        critical_cooldown_seconds: Minimum gap between critical notifications.
    """

    def __init__(self, critical_cooldown_seconds: float = 300.0) -> None:
        self._cooldown = critical_cooldown_seconds
        self._acknowledged = False
        self._last_critical_at: float | None = None

    @property
    def acknowledged(self) -> bool:
        return self._acknowledged

    def dismiss(self) -> None:
        """Mark the current alert as acknowledged."""
        self._acknowledged = True
        logger.info("alert_dismissed")

    def reset(self) -> None:
        """Clear the acknowledged flag so the next alert is shown again."""
        if self._acknowledged:
            logger.info("alert_reset")
        self._acknowledged = False

    def should_notify_critical(self, level: RiskLevel, now: float | None = None) -> bool:
        """Return True when a critical notification should be raised now."""
        if level is not RiskLevel.CRITICAL:
            return False
        now = time.time() if now is None else now
        if self._last_critical_at is not None and now - self._last_critical_at <= self._cooldown:
            return False
        self._last_critical_at = now
        return True
