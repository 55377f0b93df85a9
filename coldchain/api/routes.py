from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from ..context import MonitorContext
from ..core.timeutil import now_local, now_utc
from ..domain.evaluator import Status
from ..domain.history import within_range
from ..domain.interfaces import StoreError
from ..domain.models import (
    AlertEvent,
    NotificationRequest,
    Reading,
    ThresholdConfig,
    ThresholdValidationError,
)
from .schemas import SendSmsRequest, SendSmsResponse, ThresholdsIn, TimeRange

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependency getter (main.py sets the real one via app.dependency_overrides) ---
def get_context() -> MonitorContext:  # overridden in main
    raise RuntimeError("Context dependency not configured")


def _reading_out(r: Optional[Reading]) -> Optional[dict]:
    if r is None:
        return None
    return {
        "temp": r.temperature,
        "humidity": r.humidity,
        "gas": r.gas_level,
        "timestamp": r.observed_at.isoformat() if r.observed_at else None,
    }


def _alert_out(a: Optional[AlertEvent]) -> Optional[dict]:
    if a is None:
        return None
    return {"type": a.kind.value, "value": a.value, "timestamp": a.occurred_at.isoformat()}


def _status_out(s: Optional[Status]) -> Optional[dict]:
    if s is None:
        return None
    return {"status": s.value, "label": s.label}


@router.get("/health")
async def health(ctx: MonitorContext = Depends(get_context)):
    return {
        "status": "ok",
        "feeds": {
            sub.feed: {"path": sub.path, "active": sub.active, "deliveries": sub.deliveries}
            for sub in ctx.monitor.subscriptions()
        },
        "dispatcher_running": ctx.dispatcher.running,
    }


@router.get("/live")
async def get_live(ctx: MonitorContext = Depends(get_context)):
    live = ctx.monitor.live
    return {
        "app": ctx.settings.app_name,
        "now_local": now_local().isoformat(),
        "loading": live.loading,
        "latest": _reading_out(live.latest),
        "status": {
            "temp": _status_out(live.status.temperature),
            "humidity": _status_out(live.status.humidity),
            "gas": _status_out(live.status.gas_level),
        },
        "thresholds": live.thresholds.to_payload(),
    }


@router.get("/thresholds")
async def get_thresholds(ctx: MonitorContext = Depends(get_context)):
    return ctx.monitor.live.thresholds.to_payload()


@router.put("/thresholds")
async def put_thresholds(req: ThresholdsIn, ctx: MonitorContext = Depends(get_context)):
    config = ThresholdConfig(**req.model_dump())
    try:
        await ctx.monitor.update_thresholds(config)
    except ThresholdValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        logger.error("Threshold write failed: %s", e)
        raise HTTPException(status_code=502, detail="Failed to update thresholds")
    return {"ok": True, "thresholds": config.to_payload()}


@router.get("/alerts")
async def get_alerts(ctx: MonitorContext = Depends(get_context)):
    live = ctx.monitor.live
    return {
        "last": _alert_out(live.last_alert),
        "history": [_alert_out(a) for a in live.alert_history],
        "notified": live.alerts_notified,
    }


@router.get("/history")
async def get_history(
    window: TimeRange = Query("24h", alias="range"),
    ctx: MonitorContext = Depends(get_context),
):
    rows = within_range(ctx.monitor.live.history, window, now_utc())
    return {
        "range": window,
        "count": len(rows),
        "rows": [_reading_out(r) for r in rows],
    }


@router.get("/notifications")
async def get_notifications(ctx: MonitorContext = Depends(get_context)):
    last = ctx.dispatcher.last_result
    return {
        "running": ctx.dispatcher.running,
        "stats": asdict(ctx.dispatcher.stats),
        "last_result": asdict(last) if last else None,
    }


@router.post("/send-sms", response_model=SendSmsResponse)
async def send_sms(req: SendSmsRequest, ctx: MonitorContext = Depends(get_context)):
    numbers = req.numbers or ctx.settings.sms_numbers
    if not numbers:
        raise HTTPException(status_code=400, detail="No destination numbers given or configured")

    result = await ctx.gateway.send(NotificationRequest(body=req.message, destination=numbers))
    body = SendSmsResponse(success=result.success, message=result.message, request_id=result.request_id)
    return JSONResponse(status_code=result.status_code, content=body.model_dump(exclude_none=True))
