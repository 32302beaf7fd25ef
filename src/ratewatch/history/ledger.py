"""Bounded rate history with a per-day rollup.

The ledger owns every RateRecord. Records older than seven days are pruned on
each append; the daily rollup keeps at most seven dates, evicting the date
touched least recently.

CRITICAL: All values stay Decimal. Averages are quantized to 12 decimal
places to keep running means from growing arbitrarily long.
"""

import time
from collections import OrderedDict
from decimal import Decimal

from ratewatch.logging import get_logger
from ratewatch.market_data.time_window import is_lock_snapshot_time, local_date
from ratewatch.models import DailyStats, RateRecord

logger = get_logger(__name__)

RETENTION_MS = 7 * 24 * 60 * 60 * 1000
MAX_DAILY_STATS = 7

#: Precision used when comparing consecutive records for de-duplication.
_DEDUPE_QUANTIZE = Decimal("0.0001")
_AVG_QUANTIZE = Decimal("0.000000000001")


def _now_ms() -> int:
    return int(time.time() * 1000)


class HistoryLedger:
    """In-memory rate history and daily statistics.

    Args:
        dedupe: Skip appends whose market and platform rates match the last
            record at 4-decimal precision.
        retention_ms: History window.
        max_days: Number of daily rollups kept.
    """

    def __init__(
        self,
        dedupe: bool = True,
        retention_ms: int = RETENTION_MS,
        max_days: int = MAX_DAILY_STATS,
    ) -> None:
        self._dedupe = dedupe
        self._retention_ms = retention_ms
        self._max_days = max_days
        self._records: list[RateRecord] = []
        self._daily: OrderedDict[str, DailyStats] = OrderedDict()

    # ──────────────────────────────────────────────
    # Accessors
    # ──────────────────────────────────────────────

    @property
    def records(self) -> list[RateRecord]:
        """Records oldest first."""
        return list(self._records)

    @property
    def latest(self) -> RateRecord | None:
        return self._records[-1] if self._records else None

    @property
    def daily_stats(self) -> list[DailyStats]:
        """Daily rollups ordered by date."""
        return sorted(self._daily.values(), key=lambda s: s.date)

    def get_daily_stats(self, date: str) -> DailyStats | None:
        return self._daily.get(date)

    def __len__(self) -> int:
        return len(self._records)

    # ──────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────

    def append(self, record: RateRecord, now_ms: int | None = None) -> bool:
        """Prune expired records, then add ``record``.

        Returns:
            True if the record was stored, False if it was skipped as a
            duplicate of the last record.
        """
        now_ms = _now_ms() if now_ms is None else now_ms
        self._prune(now_ms)

        if self._dedupe and self._is_duplicate(record):
            logger.debug("rate_record_deduplicated", timestamp=record.timestamp)
            return False

        self._records.append(record)
        return True

    def upsert_daily_stats(self, record: RateRecord) -> DailyStats:
        """Fold ``record`` into its date's rollup and return the updated stats."""
        date = local_date(record.timestamp)
        lock_rate = record.market_rate if is_lock_snapshot_time(record.timestamp) else None

        stats = self._daily.get(date)
        if stats is None:
            stats = DailyStats(
                date=date,
                max_diff=record.diff,
                min_diff=record.diff,
                avg_diff=record.diff,
                max_market_rate=record.market_rate,
                min_market_rate=record.market_rate,
                avg_market_rate=record.market_rate,
                platform_rate=record.platform_rate,
                risk_level=record.risk_level,
                lock_time_rate=lock_rate,
                sample_count=1,
            )
            self._daily[date] = stats
            while len(self._daily) > self._max_days:
                evicted, _ = self._daily.popitem(last=False)
                logger.debug("daily_stats_evicted", date=evicted)
            return stats

        n = stats.sample_count
        stats.max_diff = max(stats.max_diff, record.diff)
        stats.min_diff = min(stats.min_diff, record.diff)
        stats.avg_diff = ((stats.avg_diff * n + record.diff) / (n + 1)).quantize(_AVG_QUANTIZE)
        stats.max_market_rate = max(stats.max_market_rate, record.market_rate)
        stats.min_market_rate = min(stats.min_market_rate, record.market_rate)
        stats.avg_market_rate = (
            (stats.avg_market_rate * n + record.market_rate) / (n + 1)
        ).quantize(_AVG_QUANTIZE)
        stats.platform_rate = record.platform_rate
        stats.risk_level = stats.risk_level.worst(record.risk_level)
        if lock_rate is not None:
            stats.lock_time_rate = lock_rate
        stats.sample_count = n + 1

        self._daily.move_to_end(date)
        return stats

    def load(
        self,
        records: list[RateRecord],
        daily_stats: list[DailyStats],
        now_ms: int | None = None,
    ) -> None:
        """Merge externally stored history into the ledger.

        Records are de-duplicated by timestamp and sorted; anything outside
        the retention window is dropped. Stored daily stats replace local
        entries for the same date.
        """
        now_ms = _now_ms() if now_ms is None else now_ms

        by_ts = {r.timestamp: r for r in self._records}
        for r in records:
            by_ts.setdefault(r.timestamp, r)
        self._records = [by_ts[ts] for ts in sorted(by_ts)]
        self._prune(now_ms)

        for stats in sorted(daily_stats, key=lambda s: s.date):
            self._daily[stats.date] = stats
            self._daily.move_to_end(stats.date)
        while len(self._daily) > self._max_days:
            self._daily.popitem(last=False)

        logger.info(
            "history_loaded",
            records=len(self._records),
            daily_stats=len(self._daily),
        )

    def _prune(self, now_ms: int) -> None:
        cutoff = now_ms - self._retention_ms
        if self._records and self._records[0].timestamp <= cutoff:
            before = len(self._records)
            self._records = [r for r in self._records if r.timestamp > cutoff]
            logger.debug("history_pruned", removed=before - len(self._records))

    def _is_duplicate(self, record: RateRecord) -> bool:
        last = self.latest
        if last is None:
            return False
        return (
            last.market_rate.quantize(_DEDUPE_QUANTIZE)
            == record.market_rate.quantize(_DEDUPE_QUANTIZE)
            and last.platform_rate.quantize(_DEDUPE_QUANTIZE)
            == record.platform_rate.quantize(_DEDUPE_QUANTIZE)
        )
