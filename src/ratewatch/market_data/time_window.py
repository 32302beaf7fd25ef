"""Reporting-timezone helpers and lock window classification.

All reporting is done in Malaysia time (fixed GMT+8, no DST). The platform
rate resets around midnight, so 23:20-00:30 local is the lock window where
risk checks tighten and the refresh cadence speeds up.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

REPORTING_TZ = timezone(timedelta(hours=8), name="GMT+8")

LOCK_WINDOW_START = (23, 20)
LOCK_WINDOW_END = (0, 30)
LOCK_SNAPSHOT_START = (23, 45)
LOCK_SNAPSHOT_END = (23, 55)


@dataclass(frozen=True)
class WindowTime:
    """A moment expressed in reporting time."""

    local: datetime
    hour: int
    minute: int
    is_lock_window: bool


def to_local(moment: datetime | int | float | None = None) -> datetime:
    """Convert a datetime, Unix-ms timestamp, or None (now) to GMT+8.

    Naive datetimes are assumed to be UTC.
    """
    if moment is None:
        return datetime.now(REPORTING_TZ)
    if isinstance(moment, (int, float)):
        return datetime.fromtimestamp(moment / 1000, tz=REPORTING_TZ)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(REPORTING_TZ)


def is_lock_window(moment: datetime | int | float | None = None) -> bool:
    """True between 23:20 and 00:30 local time, both ends inclusive."""
    local = to_local(moment)
    hm = (local.hour, local.minute)
    return hm >= LOCK_WINDOW_START or hm <= LOCK_WINDOW_END


def classify_moment(moment: datetime | int | float | None = None) -> WindowTime:
    """Return the local hour/minute of a moment and its lock window flag."""
    local = to_local(moment)
    return WindowTime(
        local=local,
        hour=local.hour,
        minute=local.minute,
        is_lock_window=is_lock_window(local),
    )


def is_lock_snapshot_time(moment: datetime | int | float) -> bool:
    """True between 23:45 and 23:55 local, the reference period before the lock."""
    local = to_local(moment)
    return LOCK_SNAPSHOT_START <= (local.hour, local.minute) <= LOCK_SNAPSHOT_END


def local_date(moment: datetime | int | float) -> str:
    """Return the GMT+8 calendar date as YYYY-MM-DD."""
    return to_local(moment).strftime("%Y-%m-%d")


def format_local(moment: datetime | int | float | None = None) -> str:
    """Format a moment as ``YYYY-MM-DD HH:MM:SS`` in reporting time."""
    return to_local(moment).strftime("%Y-%m-%d %H:%M:%S")


def refresh_interval(
    lock_window: bool,
    lock_seconds: float = 10.0,
    normal_seconds: float = 30.0,
) -> float:
    """Seconds between fetch cycles for the given window state."""
    return lock_seconds if lock_window else normal_seconds
