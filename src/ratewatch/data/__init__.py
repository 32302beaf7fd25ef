"""Persistence layer.

Provides SQLite database management, the typed settings/history store, and
the fire-and-forget sync queue that mirrors in-memory state into it.
"""

from ratewatch.data.database import MonitorDatabase
from ratewatch.data.store import SETTINGS_KEYS, MonitorStore
from ratewatch.data.sync import PersistenceSync

__all__ = [
    "MonitorDatabase",
    "MonitorStore",
    "PersistenceSync",
    "SETTINGS_KEYS",
]
