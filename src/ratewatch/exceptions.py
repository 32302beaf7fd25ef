"""Custom exceptions for the spread monitor.

Source, aggregation, persistence and settings errors live here to avoid
circular imports between the market data, data and dashboard layers.
"""


class MonitorError(Exception):
    """Base exception for all monitor errors."""


class SourceFetchError(MonitorError):
    """Raised when a single quote source fails or returns an unusable rate."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class AllSourcesFailed(MonitorError):
    """Raised when no quote source produced a usable rate."""

    def __init__(self, errors: list[SourceFetchError]) -> None:
        names = ", ".join(e.source for e in errors) or "no sources configured"
        super().__init__(f"All sources failed ({names})")
        self.errors = errors


class PersistenceSyncError(MonitorError):
    """Raised when a write to the settings/history store fails."""


class SettingsError(MonitorError):
    """Raised when a settings update is rejected."""
