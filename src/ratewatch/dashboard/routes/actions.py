"""POST endpoints for manual refresh, alert acknowledgement and settings."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ratewatch.exceptions import AllSourcesFailed, SettingsError
from ratewatch.history.export import history_row

log = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/refresh")
async def refresh(request: Request) -> JSONResponse:
    """Manual retry: run one fetch cycle now (queues behind a running one)."""
    monitor = request.app.state.monitor
    try:
        result = await monitor.refresh()
    except AllSourcesFailed as e:
        return JSONResponse(status_code=502, content={"error": str(e)})

    return JSONResponse(content={
        "record": history_row(result.record),
        "stored": result.stored,
        "is_lock_window": result.is_lock_window,
        "consecutive_expansions": result.consecutive_expansions,
    })


@router.post("/alert/dismiss")
async def dismiss_alert(request: Request) -> JSONResponse:
    monitor = request.app.state.monitor
    monitor.dismiss_alert()
    return JSONResponse(content={"alert_acknowledged": True})


@router.post("/alert/reset")
async def reset_alert(request: Request) -> JSONResponse:
    monitor = request.app.state.monitor
    monitor.reset_alert()
    return JSONResponse(content={"alert_acknowledged": False})


@router.post("/settings")
async def update_settings(request: Request) -> JSONResponse:
    """Update store-backed settings from a JSON object of decimal strings."""
    monitor = request.app.state.monitor

    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Malformed JSON body"})
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"error": "Expected a JSON object"})

    values: dict[str, Decimal] = {}
    for key, raw in payload.items():
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            continue
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation:
            value = None
        if value is None or not value.is_finite():
            return JSONResponse(status_code=400, content={"error": f"Invalid value for {key}"})
        values[key] = value

    try:
        changed = await monitor.update_settings(values)
    except SettingsError as e:
        log.warning("settings_update_rejected", error=str(e))
        return JSONResponse(status_code=400, content={"error": str(e)})

    log.info("settings_updated_via_dashboard", keys=sorted(changed))
    return JSONResponse(content={
        "changed": {k: str(v) for k, v in changed.items()},
        "settings": {k: str(v) for k, v in monitor.state.settings_values().items()},
    })
