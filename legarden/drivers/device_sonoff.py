from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from ..domain.errors import DeviceFailure, DeviceUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SonoffRelay:
    ip: str
    device_id: str
    port: int = 8081

    @property
    def base_url(self) -> str:
        return f"http://{self.ip}:{self.port}"


class SonoffDeviceController:
    """Drives Sonoff BASICR3 relays in eWeLink DIY mode, one relay per actor."""

    def __init__(
        self,
        outputs: Mapping[str, Mapping[str, Any]],
        default_port: int = 8081,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._relays: dict[str, SonoffRelay] = {}
        for actor_id, out in outputs.items():
            if "ip" not in out or "device_id" not in out:
                logger.error("Actor %s has no Sonoff address (ip/device_id), it cannot be driven", actor_id)
                continue
            self._relays[actor_id] = SonoffRelay(
                ip=str(out["ip"]),
                device_id=str(out["device_id"]),
                port=int(out.get("port", default_port)),
            )
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        if not self._relays:
            raise DeviceUnavailable("No Sonoff relays configured")
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

        reachable = 0
        for actor_id, relay in self._relays.items():
            try:
                await self._post(relay, "/zeroconf/info", {})
                reachable += 1
            except DeviceFailure as e:
                logger.warning("Sonoff relay for %s not reachable at startup: %s", actor_id, e.reason)
        if reachable == 0:
            await self.close()
            raise DeviceUnavailable("None of the configured Sonoff relays answered")
        logger.info("Sonoff controller ready (%d/%d relays reachable)", reachable, len(self._relays))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post(self, relay: SonoffRelay, path: str, data: dict) -> dict:
        assert self._client is not None, "open() not called"
        try:
            resp = await self._client.post(
                f"{relay.base_url}{path}",
                json={"deviceid": relay.device_id, "data": data},
            )
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DeviceFailure(relay.device_id, f"{path}: {e}") from e
        # DIY API reports command errors in-band
        if isinstance(body, dict) and body.get("error", 0) != 0:
            raise DeviceFailure(relay.device_id, f"{path}: device error {body.get('error')}")
        return body

    async def apply(self, actor_id: str, active: bool) -> None:
        relay = self._relays.get(actor_id)
        if relay is None:
            raise DeviceFailure(actor_id, "no Sonoff relay configured")
        switch_val = "on" if active else "off"
        try:
            await self._post(relay, "/zeroconf/switch", {"switch": switch_val})
        except DeviceFailure as e:
            raise DeviceFailure(actor_id, e.reason) from e
        logger.info("Sonoff %s switch=%s", actor_id, switch_val)
