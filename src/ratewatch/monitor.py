"""Spread monitor -- runs the fetch cycle and owns the core components.

Each cycle:
  1. AGGREGATE: fetch quotes from all sources and combine them
  2. SMOOTH: apply premium, step clamp and exponential smoothing
  3. TRACK: update the consecutive expansion counter
  4. CLASSIFY: derive the risk level (lock window aware)
  5. RECORD: append to the history ledger and fold into the daily rollup
  6. SYNC: queue the writes to the store (fire-and-forget)

Cycles are serialized by a lock, so a manual refresh issued while a
scheduled cycle is running waits for it to finish. A failed cycle leaves
rates, history and the expansion counter exactly as they were.

Sign convention: diff = market_rate - platform_rate.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from ratewatch.config import MonitorSettings
from ratewatch.exceptions import AllSourcesFailed, SettingsError
from ratewatch.history.ledger import RETENTION_MS, HistoryLedger
from ratewatch.logging import bind_cycle, clear_cycle, get_logger
from ratewatch.market_data.aggregator import QuoteAggregator
from ratewatch.market_data.smoothing import RateSmoother
from ratewatch.market_data.time_window import (
    classify_moment,
    format_local,
    is_lock_window,
    refresh_interval,
)
from ratewatch.models import RateRecord, RiskLevel
from ratewatch.risk.classifier import adjusted_diff, classify_risk, compute_diff
from ratewatch.scheduler import RefreshScheduler
from ratewatch.state import MonitorState, parse_stored_settings

if TYPE_CHECKING:
    from ratewatch.data.store import MonitorStore
    from ratewatch.data.sync import PersistenceSync

logger = get_logger(__name__)


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one successful fetch cycle."""

    record: RateRecord
    raw_rate: Decimal
    is_lock_window: bool
    consecutive_expansions: int
    stored: bool
    notify_critical: bool


class SpreadMonitor:
    """Fetch cycle orchestrator and alert/UI contract.

    Args:
        settings: Monitor defaults, thresholds and cadence.
        aggregator: Quote aggregator over the configured sources.
        state: Owned state container. Created from settings if omitted.
        ledger: History ledger. Created from settings if omitted.
        sync: Persistence queue. None disables persistence.
        on_critical: Called with the cycle result when a critical
            notification is due (subject to the alert cooldown).
    """

    def __init__(
        self,
        settings: MonitorSettings,
        aggregator: QuoteAggregator,
        state: MonitorState | None = None,
        ledger: HistoryLedger | None = None,
        sync: PersistenceSync | None = None,
        on_critical: Callable[[CycleResult], None] | None = None,
    ) -> None:
        self._settings = settings
        self._aggregator = aggregator
        self.state = state or MonitorState(settings)
        self.ledger = ledger or HistoryLedger(dedupe=settings.dedupe_history)
        self._sync = sync
        self._on_critical = on_critical
        self._smoother = (
            RateSmoother(
                premium=self.state.usdt_premium,
                max_step=settings.smoothing_max_step,
                factor=settings.smoothing_factor,
            )
            if settings.smoothing_enabled
            else None
        )
        self._cycle_lock = asyncio.Lock()
        self._cycle_count = 0
        self.ready = asyncio.Event()
        self._scheduler = RefreshScheduler(
            job=self._scheduled_cycle,
            period_policy=self.current_refresh_interval,
            ready=self.ready,
            reevaluate_seconds=settings.interval_check_seconds,
        )

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    @property
    def is_busy(self) -> bool:
        """True while a fetch cycle is in progress."""
        return self._cycle_lock.locked()

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def initialize(self, store: MonitorStore | None = None, now_ms: int | None = None) -> None:
        """Load settings and history from the store, then signal ready.

        The scheduler does not run a cycle until this completes.
        """
        if store is not None:
            now_ms = int(time.time() * 1000) if now_ms is None else now_ms
            stored = parse_stored_settings(await store.load_settings())
            if stored:
                try:
                    self.state.apply_settings(stored)
                except SettingsError as e:
                    logger.warning("stored_settings_rejected", error=str(e))
            records = await store.load_rate_history(since_ms=now_ms - RETENTION_MS)
            daily = await store.load_daily_stats()
            self.ledger.load(records, daily, now_ms=now_ms)

        self.ready.set()
        logger.info(
            "monitor_ready",
            platform_rate=str(self.state.platform_rate),
            history=len(self.ledger),
        )

    async def start(self) -> None:
        """Start the refresh scheduler. Cycles begin once ready is set."""
        await self._scheduler.start()

    async def stop(self) -> None:
        await self._scheduler.stop()

    def current_refresh_interval(self) -> float:
        """Refresh period for the current moment: faster inside the lock window."""
        return refresh_interval(
            is_lock_window(),
            lock_seconds=self._settings.lock_refresh_seconds,
            normal_seconds=self._settings.normal_refresh_seconds,
        )

    # ──────────────────────────────────────────────
    # Fetch cycle
    # ──────────────────────────────────────────────

    async def run_cycle(self, now_ms: int | None = None) -> CycleResult:
        """Run one fetch cycle.

        Raises:
            AllSourcesFailed: If no source produced a rate. State is unchanged
                apart from ``last_error``.
        """
        async with self._cycle_lock:
            self._cycle_count += 1
            bind_cycle(self._cycle_count)
            try:
                return await self._cycle(now_ms)
            finally:
                clear_cycle()

    async def refresh(self) -> CycleResult:
        """Manual retry trigger: the same operation as a scheduled cycle."""
        logger.info("manual_refresh_requested")
        return await self.run_cycle()

    async def _scheduled_cycle(self) -> None:
        try:
            await self.run_cycle()
        except AllSourcesFailed:
            # Already logged and recorded on the state; wait for the next cycle
            pass

    async def _cycle(self, now_ms: int | None) -> CycleResult:
        try:
            raw_rate = await self._aggregator.aggregate()
        except AllSourcesFailed as e:
            self.state.record_error(str(e))
            logger.error("all_sources_failed", error=str(e))
            raise

        now_ms = int(time.time() * 1000) if now_ms is None else now_ms
        state = self.state
        expansion_before = state.expansion.snapshot()

        try:
            if self._smoother is not None:
                self._smoother.premium = state.usdt_premium
                market_rate = self._smoother.smooth(raw_rate, state.market_rate)
            else:
                market_rate = raw_rate

            diff = compute_diff(market_rate, state.platform_rate)
            window = classify_moment(now_ms)
            expansions = state.expansion.observe(abs(diff))
            level = classify_risk(diff, window.is_lock_window, expansions, state.thresholds)
        except Exception:
            state.expansion.restore(expansion_before)
            raise

        if level is RiskLevel.SAFE:
            state.expansion.reset()
            state.alert.reset()

        state.publish(market_rate, diff, level, now_ms)

        record = RateRecord(
            timestamp=now_ms,
            market_rate=market_rate,
            platform_rate=state.platform_rate,
            diff=diff,
            risk_level=level,
        )
        stored = self.ledger.append(record, now_ms=now_ms)
        stats = self.ledger.upsert_daily_stats(record)

        if self._sync is not None:
            if stored:
                self._sync.submit_record(record)
            self._sync.submit_daily_stats(stats)

        notify = state.alert.should_notify_critical(level, now=now_ms / 1000)
        result = CycleResult(
            record=record,
            raw_rate=raw_rate,
            is_lock_window=window.is_lock_window,
            consecutive_expansions=state.expansion.consecutive_expansions,
            stored=stored,
            notify_critical=notify,
        )

        log = logger.warning if level is not RiskLevel.SAFE else logger.info
        log(
            "cycle_completed",
            raw_rate=str(raw_rate),
            market_rate=str(market_rate),
            platform_rate=str(state.platform_rate),
            diff=str(diff),
            adjusted_diff=str(adjusted_diff(market_rate, state.platform_rate, state.cost_buffer)),
            risk_level=level.value,
            lock_window=window.is_lock_window,
            expansions=result.consecutive_expansions,
            stored=stored,
        )

        if notify:
            logger.critical("critical_spread_alert", diff=str(diff), local_time=format_local(now_ms))
            if self._on_critical is not None:
                try:
                    self._on_critical(result)
                except Exception:
                    logger.warning("critical_notifier_error", exc_info=True)

        return result

    # ──────────────────────────────────────────────
    # Settings and alert contract
    # ──────────────────────────────────────────────

    async def update_settings(self, values: dict[str, Decimal]) -> dict[str, Decimal]:
        """Apply a settings update between cycles and persist it.

        Raises:
            SettingsError: If the update is invalid. Nothing is applied.
        """
        async with self._cycle_lock:
            changed = self.state.apply_settings(values)
        if changed and self._sync is not None:
            self._sync.submit_settings(changed)
        return changed

    def dismiss_alert(self) -> None:
        self.state.alert.dismiss()

    def reset_alert(self) -> None:
        self.state.alert.reset()

    def status(self) -> dict[str, Any]:
        """Alert/UI contract view of the current state."""
        snap = self.state.snapshot()
        window = classify_moment()
        return {
            "market_rate": str(snap.market_rate),
            "platform_rate": str(snap.platform_rate),
            "cost_buffer": str(snap.cost_buffer),
            "usdt_premium": str(snap.usdt_premium),
            "diff": None if snap.diff is None else str(snap.diff),
            "adjusted_diff": None if snap.diff is None else str(snap.diff - snap.cost_buffer),
            "risk_level": snap.risk_level.value,
            "consecutive_expansions": snap.consecutive_expansions,
            "alert_acknowledged": snap.alert_acknowledged,
            "is_lock_window": window.is_lock_window,
            "local_time": format_local(window.local),
            "last_updated": snap.last_updated,
            "last_error": snap.last_error,
            "busy": self.is_busy,
            "refresh_interval": self._scheduler.period,
            "thresholds": {
                "warning": str(snap.thresholds.warning),
                "danger": str(snap.thresholds.danger),
                "critical": str(snap.thresholds.critical),
                "lock_warning": str(snap.thresholds.effective_lock_warning),
            },
            "sources": [
                {"source": q.source, "rate": None if q.rate is None else str(q.rate), "ok": q.ok, "error": q.error}
                for q in self._aggregator.last_quotes
            ],
        }
