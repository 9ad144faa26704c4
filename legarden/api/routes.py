from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.config import settings
from ..core.timeutil import format_hhmm, now_local
from ..domain.errors import ActorNotFound
from ..domain.interfaces import EventLog, NetworkController
from ..domain.models import Actor
from ..domain.schedule import is_active, next_transition
from ..services.control_loop import ControlLoopService
from .schemas import ActorOut, EventOut, ReconnectResponse, WindowOut

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependency getters ---
# main.py replaces these through app.dependency_overrides.
def get_loop() -> ControlLoopService:  # overridden in main
    raise RuntimeError("Control loop dependency not configured")

def get_network() -> NetworkController:  # overridden in main
    raise RuntimeError("Network dependency not configured")

def get_event_log() -> EventLog:  # overridden in main
    raise RuntimeError("Event log dependency not configured")

def get_clock():  # overridden in tests
    return now_local


def _actor_out(actor: Actor, now: datetime) -> ActorOut:
    nxt = next_transition(actor.schedule, now)
    return ActorOut(
        actor_id=actor.actor_id,
        label=actor.label,
        windows=[WindowOut(start=format_hhmm(w.start), end=format_hhmm(w.end)) for w in actor.schedule.windows],
        status=actor.status.value,
        desired_now=is_active(actor.schedule, now),
        next_transition=nxt.isoformat() if nxt else None,
        last_applied=actor.last_applied,
        last_applied_at=actor.last_applied_at.isoformat() if actor.last_applied_at else None,
        last_attempt_at=actor.last_attempt_at.isoformat() if actor.last_attempt_at else None,
        last_error=actor.last_error,
        consecutive_failures=actor.consecutive_failures,
    )


@router.get("/live")
async def get_live(svc: ControlLoopService = Depends(get_loop), clock=Depends(get_clock)):
    live = svc.live
    return {
        "app": settings.app_name,
        "now_local": clock().isoformat(),
        "running": svc.running,
        "tick_count": live.tick_count,
        "last_tick_local": live.last_tick_local.isoformat() if live.last_tick_local else None,
        "last_tick_seconds": live.last_tick_seconds,
        "network": {
            "connectivity": live.connectivity.value,
            "disconnected_since": live.disconnected_since.isoformat() if live.disconnected_since else None,
            "reconnect_requests": live.reconnect_requests,
        },
        "telemetry": {
            "buffered": len(svc.buffer),
            "capacity": svc.buffer.capacity,
            "dropped": svc.buffer.dropped,
            "published": live.published,
            "publish_failures": live.publish_failures,
            "last_publish_error": live.last_publish_error,
        },
        "actors": len(svc.repository),
    }


@router.get("/actors", response_model=List[ActorOut])
async def list_actors(svc: ControlLoopService = Depends(get_loop), clock=Depends(get_clock)):
    now = clock()
    return [_actor_out(a, now) for a in svc.repository.all()]


@router.get("/actors/{actor_id}", response_model=ActorOut)
async def get_actor(actor_id: str, svc: ControlLoopService = Depends(get_loop), clock=Depends(get_clock)):
    try:
        actor = svc.repository.get(actor_id)
    except ActorNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _actor_out(actor, clock())


@router.get("/events", response_model=List[EventOut])
async def get_events(
    start: Optional[str] = None,
    end: Optional[str] = None,
    limit: int = Query(default=200, ge=1, le=5000),
    actor_id: Optional[str] = None,
    log: EventLog = Depends(get_event_log),
):
    now = datetime.now(timezone.utc)
    start_ts = _utc_iso(start) if start else (now - timedelta(days=1)).isoformat()
    end_ts = _utc_iso(end) if end else now.isoformat()
    events = await log.query_events(start_ts, end_ts, limit, actor_id=actor_id)
    return [EventOut(**e.to_dict()) for e in events]


@router.post("/network/reconnect", response_model=ReconnectResponse)
async def network_reconnect(net: NetworkController = Depends(get_network)):
    ack = net.request_reconnect()
    logger.info("Operator requested reconnect (acknowledged=%s)", ack)
    return ReconnectResponse(ok=True, acknowledged=ack, connectivity=net.connectivity_state().value)


def _utc_iso(s: str) -> str:
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid timestamp: {s}, expected ISO 8601")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()
