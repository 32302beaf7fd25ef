"""JSON and CSV read endpoints: status, history, daily stats, export."""

from __future__ import annotations

import io
from datetime import datetime

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from ratewatch.history.export import (
    DAILY_STATS_COLUMNS,
    HISTORY_COLUMNS,
    daily_stats_rows,
    history_rows,
    write_csv,
)
from ratewatch.market_data.time_window import REPORTING_TZ

log = structlog.get_logger(__name__)

router = APIRouter()


def _csv_response(rows: list[dict[str, str]], columns: list[str], prefix: str) -> Response:
    buffer = io.StringIO()
    # BOM so spreadsheet apps detect UTF-8
    buffer.write("\ufeff")
    write_csv(rows, buffer, columns)
    filename = f"{prefix}_{datetime.now(REPORTING_TZ).strftime('%Y%m%d')}.csv"
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Current rates, spread, risk level, expansion count and alert flag."""
    monitor = request.app.state.monitor
    return JSONResponse(content=monitor.status())


@router.get("/history")
async def get_history(request: Request, limit: int = 50) -> JSONResponse:
    """Most recent history rows, newest first."""
    monitor = request.app.state.monitor
    rows = history_rows(monitor.ledger.records)
    return JSONResponse(content=rows[: max(limit, 0)])


@router.get("/daily-stats")
async def get_daily_stats(request: Request) -> JSONResponse:
    """Daily rollups for the retained dates, oldest first."""
    monitor = request.app.state.monitor
    return JSONResponse(content=daily_stats_rows(monitor.ledger.daily_stats))


@router.get("/export/history.csv")
async def export_history(request: Request) -> Response:
    monitor = request.app.state.monitor
    rows = history_rows(monitor.ledger.records)
    log.info("history_exported", rows=len(rows))
    return _csv_response(rows, HISTORY_COLUMNS, "rate_history")


@router.get("/export/daily-stats.csv")
async def export_daily_stats(request: Request) -> Response:
    monitor = request.app.state.monitor
    rows = daily_stats_rows(monitor.ledger.daily_stats)
    log.info("daily_stats_exported", rows=len(rows))
    return _csv_response(rows, DAILY_STATS_COLUMNS, "daily_stats")
