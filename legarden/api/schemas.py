from __future__ import annotations
from pydantic import BaseModel
from typing import Optional, List


class WindowOut(BaseModel):
    start: str  # "HH:MM"
    end: str    # "HH:MM"


class ActorOut(BaseModel):
    actor_id: str
    label: str
    windows: List[WindowOut]
    status: str
    desired_now: bool
    next_transition: Optional[str]
    last_applied: Optional[bool]
    last_applied_at: Optional[str]
    last_attempt_at: Optional[str]
    last_error: Optional[str]
    consecutive_failures: int


class EventOut(BaseModel):
    ts: str
    actor_id: str
    active: Optional[bool]
    kind: str
    error: Optional[str]


class ReconnectResponse(BaseModel):
    ok: bool
    acknowledged: bool
    connectivity: str
