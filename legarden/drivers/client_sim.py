from __future__ import annotations
import logging

from ..domain.errors import PublishFailure
from ..domain.models import TelemetryEvent

logger = logging.getLogger(__name__)


class SimulatedClientService:
    def __init__(self) -> None:
        self.published: list[TelemetryEvent] = []
        self.failing = False

    async def publish(self, event: TelemetryEvent) -> None:
        if self.failing:
            raise PublishFailure("simulated endpoint rejected event")
        self.published.append(event)
        logger.info("TELEMETRY %s", event.to_dict())

    async def close(self) -> None:
        pass
