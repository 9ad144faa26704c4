from __future__ import annotations
from typing import Protocol, Optional, runtime_checkable
from .models import ConnectivityState, TelemetryEvent


@runtime_checkable
class DeviceController(Protocol):
    async def open(self) -> None:
        """Prepare outputs. Raise DeviceUnavailable if nothing can be driven."""
        ...

    async def apply(self, actor_id: str, active: bool) -> None:
        """Drive one output. Raise DeviceFailure on rejection or fault."""
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class NetworkController(Protocol):
    def connectivity_state(self) -> ConnectivityState:
        ...

    def request_reconnect(self) -> bool:
        """Hint that the link should be re-dialled. Returns once acknowledged."""
        ...

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...


@runtime_checkable
class ClientService(Protocol):
    async def publish(self, event: TelemetryEvent) -> None:
        """Send one event. Raise PublishFailure if it was not accepted."""
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class EventLog(Protocol):
    async def init(self) -> None:
        ...

    async def insert_event(self, event: TelemetryEvent) -> None:
        ...

    async def query_events(
        self, start_ts: str, end_ts: str, limit: int, actor_id: Optional[str] = None
    ) -> list[TelemetryEvent]:
        ...
