from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional
from .models import Schedule, TimeWindow


def is_active(schedule: Schedule, local_dt: datetime) -> bool:
    """True if local_dt falls inside any window of the schedule.

    Windows are [start, end) in local wall-clock time; start > end wraps past
    midnight. Overlapping windows simply union.
    """
    t = local_dt.timetz().replace(tzinfo=None)
    return any(w.matches(t) for w in schedule.windows)


def active_windows(schedule: Schedule, local_dt: datetime) -> list[TimeWindow]:
    t = local_dt.timetz().replace(tzinfo=None)
    return [w for w in schedule.windows if w.matches(t)]


def next_transition(schedule: Schedule, local_dt: datetime) -> Optional[datetime]:
    """Next local datetime at which is_active() changes value, or None if it never does."""
    current = is_active(schedule, local_dt)
    boundaries: set[datetime] = set()
    for day in range(3):
        d = local_dt.date() + timedelta(days=day)
        for w in schedule.windows:
            for t in (w.start, w.end):
                boundaries.add(datetime.combine(d, t, tzinfo=local_dt.tzinfo))

    for b in sorted(boundaries):
        if b <= local_dt:
            continue
        if is_active(schedule, b) != current:
            return b
    return None
