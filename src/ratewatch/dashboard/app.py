"""FastAPI application factory for the monitor's JSON/CSV surface."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from ratewatch.dashboard.routes import actions, api


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        Application with the read API under /api and control actions under
        /actions. Route handlers expect ``app.state.monitor``.
    """
    app = FastAPI(
        title="USDT/MYR Spread Monitor",
        lifespan=lifespan,
    )

    app.include_router(api.router, prefix="/api")
    app.include_router(actions.router, prefix="/actions")

    return app
