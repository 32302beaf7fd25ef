"""Adaptive-interval refresh scheduler.

Runs a job, waits one period, and repeats. The period comes from a policy
function that is re-evaluated on its own fixed cadence (every minute by
default), so entering or leaving the lock window changes the cadence without
waiting for the current period to run out.

The loop does not start its first run until the ready event is set.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from ratewatch.logging import get_logger

logger = get_logger(__name__)


class RefreshScheduler:
    """Cancellable periodic task with a policy-driven period.

    Args:
        job: Coroutine function run once per period. Exceptions are logged
            and the schedule continues.
        period_policy: Returns the current period in seconds.
        ready: Event gating the first run.
        reevaluate_seconds: How often the period policy is re-evaluated.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[object]],
        period_policy: Callable[[], float],
        ready: asyncio.Event,
        reevaluate_seconds: float = 60.0,
    ) -> None:
        self._job = job
        self._period_policy = period_policy
        self._ready = ready
        self._reevaluate_seconds = reevaluate_seconds
        self._period = period_policy()
        self._period_changed = asyncio.Event()
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._policy_task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._runs = 0

    @property
    def period(self) -> float:
        return self._period

    @property
    def runs(self) -> int:
        return self._runs

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Begin scheduling in the background."""
        if self._running:
            logger.warning("scheduler_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        self._policy_task = asyncio.create_task(self._policy_loop())
        logger.info("scheduler_started", period=self._period)

    async def stop(self) -> None:
        """Cancel both loops and wait for them to finish."""
        self._running = False
        for task in (self._task, self._policy_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._policy_task = None
        logger.info("scheduler_stopped")

    def reevaluate(self) -> bool:
        """Recompute the period. Returns True if it changed."""
        period = self._period_policy()
        if period == self._period:
            return False
        logger.info("refresh_period_changed", old=self._period, new=period)
        self._period = period
        self._period_changed.set()
        return True

    async def _policy_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._reevaluate_seconds)
            try:
                self.reevaluate()
            except Exception:
                logger.warning("period_policy_error", exc_info=True)

    async def _run_loop(self) -> None:
        if not self._ready.is_set():
            logger.info("scheduler_waiting_for_ready")
        await self._ready.wait()

        while self._running:
            try:
                await self._job()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("scheduled_job_error", exc_info=True)
            self._runs += 1
            await self._wait_period()

    async def _wait_period(self) -> None:
        """Sleep until one period has elapsed since now, honoring changes."""
        started = time.monotonic()
        while self._running:
            self._period_changed.clear()
            remaining = self._period - (time.monotonic() - started)
            if remaining <= 0:
                return
            try:
                await asyncio.wait_for(self._period_changed.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                return
