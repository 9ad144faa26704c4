from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Any, Optional


class ConnectivityState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"


class ActorStatus(str, Enum):
    IDLE = "idle"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


class EventKind(str, Enum):
    STATE = "state"      # a transition was applied
    FAILURE = "failure"  # an apply attempt failed
    REPORT = "report"    # periodic snapshot, nothing changed


@dataclass(frozen=True)
class TimeWindow:
    start: time
    end: time

    def matches(self, t: time) -> bool:
        # Handle overnight windows (e.g., 22:00 -> 05:00)
        if self.start <= self.end:
            return self.start <= t < self.end
        return t >= self.start or t < self.end

    @property
    def label(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"


@dataclass(frozen=True)
class Schedule:
    windows: tuple[TimeWindow, ...]


@dataclass(eq=False)
class Actor:
    actor_id: str
    schedule: Schedule
    label: str = ""
    output: dict[str, Any] = field(default_factory=dict)

    status: ActorStatus = ActorStatus.IDLE
    pending: Optional[bool] = None
    last_applied: Optional[bool] = None  # None = never applied
    last_applied_at: Optional[datetime] = None
    last_attempt_at: Optional[datetime] = None
    last_error: Optional[str] = None
    consecutive_failures: int = 0

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "actor_id" and "actor_id" in self.__dict__:
            raise AttributeError("actor_id is immutable")
        super().__setattr__(name, value)

    def needs_apply(self, desired: bool) -> bool:
        return self.last_applied is None or self.last_applied != desired


@dataclass(frozen=True)
class TelemetryEvent:
    ts: datetime
    actor_id: str
    active: Optional[bool]
    kind: EventKind = EventKind.STATE
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ts": self.ts.isoformat(),
            "actor_id": self.actor_id,
            "active": self.active,
            "kind": self.kind.value,
            "error": self.error,
        }
