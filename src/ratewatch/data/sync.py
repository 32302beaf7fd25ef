"""Fire-and-forget persistence queue.

The in-memory state is authoritative. Writes to the store are queued and
executed by a single background worker; submit() never waits for them.
A failed write is logged as a PersistenceSyncError and dropped: there is no
retry and no rollback of the in-memory transition.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import replace
from decimal import Decimal

from ratewatch.data.store import MonitorStore
from ratewatch.exceptions import PersistenceSyncError
from ratewatch.logging import get_logger
from ratewatch.models import DailyStats, RateRecord

logger = get_logger(__name__)

SyncJob = tuple[str, Callable[[], Awaitable[object]]]


class PersistenceSync:
    """Background writer mirroring monitor state into a MonitorStore.

    Args:
        store: Destination store.
    """

    def __init__(self, store: MonitorStore) -> None:
        self._store = store
        self._queue: asyncio.Queue[SyncJob] = asyncio.Queue()
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._failures = 0

    @property
    def failures(self) -> int:
        """Number of writes that failed since start."""
        return self._failures

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self._task is not None:
            logger.warning("persistence_sync_already_running")
            return
        self._task = asyncio.create_task(self._worker())
        logger.info("persistence_sync_started")

    async def stop(self) -> None:
        """Flush pending writes, then stop the worker."""
        if self._task is None:
            return
        await self.drain()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("persistence_sync_stopped")

    async def drain(self) -> None:
        """Wait until every queued write has been attempted."""
        await self._queue.join()

    def submit(self, label: str, job: Callable[[], Awaitable[object]]) -> None:
        """Queue a write without waiting for it."""
        self._queue.put_nowait((label, job))

    # Convenience wrappers for the three collections

    def submit_record(self, record: RateRecord) -> None:
        self.submit("rate_record", lambda: self._store.insert_rate_record(record))

    def submit_daily_stats(self, stats: DailyStats) -> None:
        # Rollups keep mutating in memory; persist the state as of now
        stats = replace(stats)
        self.submit("daily_stats", lambda: self._store.upsert_daily_stats(stats))

    def submit_settings(self, values: dict[str, Decimal]) -> None:
        values = dict(values)
        self.submit("settings", lambda: self._store.save_settings(values))

    async def _worker(self) -> None:
        while True:
            label, job = await self._queue.get()
            try:
                await self._run(label, job)
            finally:
                self._queue.task_done()

    async def _run(self, label: str, job: Callable[[], Awaitable[object]]) -> None:
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._failures += 1
            error = PersistenceSyncError(f"{label} write failed: {e!r}")
            logger.warning("persistence_sync_failed", job=label, error=str(error))
