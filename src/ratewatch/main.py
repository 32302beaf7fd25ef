"""Entry point for the USDT/MYR spread monitor.

Wires all components together, optionally embeds the FastAPI surface, and
starts the refresh scheduler. When the dashboard is enabled (default), the
monitor and HTTP server share one asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Startup order:
1. AppSettings (configuration)
2. Logging setup
3. Rate sources and QuoteAggregator
4. MonitorDatabase + MonitorStore (settings/history store)
5. PersistenceSync (fire-and-forget writer)
6. SpreadMonitor (state, ledger, scheduler)
7. Load settings and history, then set ready
8. Start scheduler

Handles SIGINT/SIGTERM for graceful shutdown.
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from ratewatch.config import AppSettings
from ratewatch.data.database import MonitorDatabase
from ratewatch.data.store import MonitorStore
from ratewatch.data.sync import PersistenceSync
from ratewatch.logging import get_logger, setup_logging
from ratewatch.market_data.aggregator import QuoteAggregator
from ratewatch.monitor import SpreadMonitor
from ratewatch.sources import build_sources


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all monitor components from settings.

    Note: Does NOT connect the database or load history -- that happens in
    _startup so the ready signal is only set once the store has been read.
    """
    sources = build_sources(settings.sources)
    aggregator = QuoteAggregator(
        sources,
        policy=settings.sources.policy,
        outlier_tolerance=settings.sources.outlier_tolerance,
    )

    database = MonitorDatabase(settings.store.db_path)
    store = MonitorStore(database)
    sync = PersistenceSync(store)

    monitor = SpreadMonitor(
        settings=settings.monitor,
        aggregator=aggregator,
        sync=sync,
    )

    return {
        "aggregator": aggregator,
        "database": database,
        "store": store,
        "sync": sync,
        "monitor": monitor,
    }


async def _startup(components: dict[str, Any]) -> None:
    """Connect the store, load state, and start background tasks."""
    await components["database"].connect()
    await components["sync"].start()
    await components["monitor"].initialize(components["store"])
    await components["monitor"].start()


async def _shutdown(components: dict[str, Any]) -> None:
    """Stop scheduling, flush pending writes, release connections."""
    logger = get_logger("ratewatch.main")
    await components["monitor"].stop()
    await components["sync"].stop()
    await components["aggregator"].close()
    await components["database"].close()
    logger.info("spread_monitor_stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage monitor component lifecycle within the FastAPI application."""
    logger = get_logger("ratewatch.main")
    components = app.state.components
    app.state.monitor = components["monitor"]

    await _startup(components)
    logger.info("lifespan_started")

    yield

    await _shutdown(components)


async def run() -> None:
    """Run the spread monitor.

    With the dashboard enabled, uvicorn owns the loop and signal handling and
    the lifespan manages startup/shutdown. Otherwise the monitor runs until
    SIGINT/SIGTERM.
    """
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("ratewatch.main")

    components = _build_components(settings)

    if settings.dashboard.enabled:
        from ratewatch.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            policy=settings.sources.policy,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

        logger.info("starting_without_dashboard", policy=settings.sources.policy)

        try:
            await _startup(components)
            await stop_event.wait()
            logger.info("graceful_shutdown_signal")
        finally:
            await _shutdown(components)


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
