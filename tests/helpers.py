from __future__ import annotations

from datetime import datetime, time
from zoneinfo import ZoneInfo

from legarden.domain.models import Actor, Schedule, TimeWindow

TZ = ZoneInfo("Europe/Berlin")


def local(h: int, m: int = 0, day: int = 1) -> datetime:
    return datetime(2026, 6, day, h, m, tzinfo=TZ)


def make_actor(actor_id: str, *windows: tuple[str, str], **kwargs) -> Actor:
    def _t(s: str) -> time:
        h, m = s.split(":")
        return time(int(h), int(m))

    return Actor(
        actor_id=actor_id,
        schedule=Schedule(windows=tuple(TimeWindow(_t(s), _t(e)) for s, e in windows)),
        **kwargs,
    )
