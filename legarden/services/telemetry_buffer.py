from __future__ import annotations
import logging
from collections import deque
from typing import Optional

from ..domain.models import TelemetryEvent

logger = logging.getLogger(__name__)


class TelemetryBuffer:
    """Bounded FIFO of events waiting for the cloud; drops the oldest on overflow.

    Owned by the control loop task only, so it carries no locking.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("telemetry buffer capacity must be >= 1")
        self._q: deque[TelemetryEvent] = deque(maxlen=capacity)
        self.dropped = 0

    @property
    def capacity(self) -> int:
        return self._q.maxlen or 0

    def push(self, event: TelemetryEvent) -> Optional[TelemetryEvent]:
        """Append an event. Returns the event that was evicted to make room, if any."""
        evicted = None
        if len(self._q) == self.capacity:
            evicted = self._q[0]
            self.dropped += 1
            logger.warning(
                "Telemetry buffer full (%d), dropping oldest event actor=%s ts=%s",
                self.capacity, evicted.actor_id, evicted.ts.isoformat(),
            )
        self._q.append(event)
        return evicted

    def peek(self) -> Optional[TelemetryEvent]:
        return self._q[0] if self._q else None

    def pop(self) -> TelemetryEvent:
        return self._q.popleft()

    def snapshot(self) -> list[TelemetryEvent]:
        return list(self._q)

    def __len__(self) -> int:
        return len(self._q)
