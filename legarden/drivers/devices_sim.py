from __future__ import annotations
import logging

from ..domain.errors import DeviceFailure

logger = logging.getLogger(__name__)


class SimulatedDeviceController:
    """Harmless in-memory outputs for development boxes without relays."""

    def __init__(self) -> None:
        self.states: dict[str, bool] = {}
        self.calls: list[tuple[str, bool]] = []
        self._failing: set[str] = set()

    async def open(self) -> None:
        logger.info("Simulated device controller ready")

    async def close(self) -> None:
        pass

    def fail(self, actor_id: str, failing: bool = True) -> None:
        """Make apply() for this actor raise until cleared (fault injection)."""
        if failing:
            self._failing.add(actor_id)
        else:
            self._failing.discard(actor_id)

    async def apply(self, actor_id: str, active: bool) -> None:
        self.calls.append((actor_id, active))
        if actor_id in self._failing:
            raise DeviceFailure(actor_id, "simulated fault")
        self.states[actor_id] = bool(active)
        logger.info("OUTPUT %s set_state=%s", actor_id, self.states[actor_id])
