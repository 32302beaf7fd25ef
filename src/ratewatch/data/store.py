"""Typed SQLite read/write abstraction for settings and history.

Three collections back the monitor: a key-value settings table, an
append-only rate history, and daily stats upserted by date. All SQL is
isolated behind MonitorStore.

CRITICAL: All rate values stored as TEXT in SQLite, restored as Decimal on read.
"""

import time
from decimal import Decimal

from ratewatch.data.database import MonitorDatabase
from ratewatch.logging import get_logger
from ratewatch.models import DailyStats, RateRecord, RiskLevel

logger = get_logger(__name__)

#: Keys recognized in the settings table.
SETTINGS_KEYS = (
    "platform_rate",
    "cost_buffer",
    "warning_threshold",
    "danger_threshold",
    "critical_threshold",
    "usdt_premium",
)


class MonitorStore:
    """Async SQLite store for settings, rate history and daily stats.

    Usage:
        async with MonitorDatabase("data/ratewatch.db") as database:
            store = MonitorStore(database)
            settings = await store.load_settings()
    """

    def __init__(self, database: MonitorDatabase) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Settings
    # ──────────────────────────────────────────────

    async def load_settings(self) -> dict[str, str]:
        """Return all recognized settings as raw decimal strings."""
        placeholders = ",".join("?" for _ in SETTINGS_KEYS)
        cursor = await self._database.db.execute(
            f"SELECT key, value FROM settings WHERE key IN ({placeholders})",
            SETTINGS_KEYS,
        )
        rows = await cursor.fetchall()
        return {key: value for key, value in rows}

    async def save_settings(self, values: dict[str, Decimal]) -> None:
        """Upsert settings values. Unknown keys raise ValueError."""
        unknown = set(values) - set(SETTINGS_KEYS)
        if unknown:
            raise ValueError(f"Unknown settings keys: {sorted(unknown)}")
        now_ms = int(time.time() * 1000)
        await self._database.db.executemany(
            "INSERT OR REPLACE INTO settings (key, value, updated_at) VALUES (?, ?, ?)",
            [(key, str(value), now_ms) for key, value in values.items()],
        )
        await self._database.db.commit()
        logger.debug("settings_saved", keys=sorted(values))

    # ──────────────────────────────────────────────
    # Rate history
    # ──────────────────────────────────────────────

    async def insert_rate_record(self, record: RateRecord) -> bool:
        """Insert a history row, ignoring a duplicate timestamp.

        Returns True if the row was inserted.
        """
        cursor = await self._database.db.execute(
            "INSERT OR IGNORE INTO rate_history "
            "(timestamp, market_rate, platform_rate, diff, risk_level) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                record.timestamp,
                str(record.market_rate),
                str(record.platform_rate),
                str(record.diff),
                record.risk_level.value,
            ),
        )
        await self._database.db.commit()
        return cursor.rowcount > 0

    async def load_rate_history(self, since_ms: int = 0) -> list[RateRecord]:
        """Return history rows newer than ``since_ms``, oldest first."""
        cursor = await self._database.db.execute(
            "SELECT timestamp, market_rate, platform_rate, diff, risk_level "
            "FROM rate_history WHERE timestamp > ? ORDER BY timestamp ASC",
            (since_ms,),
        )
        rows = await cursor.fetchall()
        return [
            RateRecord(
                timestamp=row[0],
                market_rate=Decimal(row[1]),
                platform_rate=Decimal(row[2]),
                diff=Decimal(row[3]),
                risk_level=RiskLevel(row[4]),
            )
            for row in rows
        ]

    # ──────────────────────────────────────────────
    # Daily stats
    # ──────────────────────────────────────────────

    async def upsert_daily_stats(self, stats: DailyStats) -> None:
        """Insert or replace the row for ``stats.date``."""
        await self._database.db.execute(
            "INSERT OR REPLACE INTO daily_stats "
            "(date, max_diff, min_diff, avg_diff, max_market_rate, min_market_rate, "
            "avg_market_rate, platform_rate, risk_level, lock_time_rate, sample_count) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                stats.date,
                str(stats.max_diff),
                str(stats.min_diff),
                str(stats.avg_diff),
                str(stats.max_market_rate),
                str(stats.min_market_rate),
                str(stats.avg_market_rate),
                str(stats.platform_rate),
                stats.risk_level.value,
                None if stats.lock_time_rate is None else str(stats.lock_time_rate),
                stats.sample_count,
            ),
        )
        await self._database.db.commit()

    async def load_daily_stats(self, limit: int = 7) -> list[DailyStats]:
        """Return the most recent ``limit`` dates, oldest first."""
        cursor = await self._database.db.execute(
            "SELECT date, max_diff, min_diff, avg_diff, max_market_rate, min_market_rate, "
            "avg_market_rate, platform_rate, risk_level, lock_time_rate, sample_count "
            "FROM daily_stats ORDER BY date DESC LIMIT ?",
            (limit,),
        )
        rows = await cursor.fetchall()
        result = [
            DailyStats(
                date=row[0],
                max_diff=Decimal(row[1]),
                min_diff=Decimal(row[2]),
                avg_diff=Decimal(row[3]),
                max_market_rate=Decimal(row[4]),
                min_market_rate=Decimal(row[5]),
                avg_market_rate=Decimal(row[6]),
                platform_rate=Decimal(row[7]),
                risk_level=RiskLevel(row[8]),
                lock_time_rate=Decimal(row[9]) if row[9] is not None else None,
                sample_count=row[10],
            )
            for row in rows
        ]
        result.reverse()
        return result
