from __future__ import annotations
import logging

from ..domain.models import ConnectivityState

logger = logging.getLogger(__name__)


class SimulatedNetworkController:
    """Link that is whatever the developer (or a test) says it is."""

    def __init__(
        self,
        state: ConnectivityState = ConnectivityState.CONNECTED,
        reconnect_succeeds: bool = True,
    ) -> None:
        self._state = state
        self.reconnect_succeeds = reconnect_succeeds
        self.reconnect_requests = 0

    def set_state(self, state: ConnectivityState) -> None:
        self._state = state

    def connectivity_state(self) -> ConnectivityState:
        return self._state

    def request_reconnect(self) -> bool:
        self.reconnect_requests += 1
        logger.info("Simulated reconnect requested (#%d)", self.reconnect_requests)
        if self.reconnect_succeeds:
            self._state = ConnectivityState.CONNECTED
        return True

    async def start(self) -> None:
        logger.info("Simulated network controller started (state=%s)", self._state.value)

    async def stop(self) -> None:
        pass
