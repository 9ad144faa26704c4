from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..domain.errors import ConnectivityUnavailable, PublishFailure
from ..domain.models import TelemetryEvent

logger = logging.getLogger(__name__)


class HttpClientService:
    """Posts each telemetry event as JSON to the cloud ingestion endpoint."""

    def __init__(
        self,
        url: str,
        device_name: str,
        token: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._device_name = device_name
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
            self._client = httpx.AsyncClient(
                timeout=self._timeout, headers=headers, transport=self._transport
            )
        return self._client

    async def publish(self, event: TelemetryEvent) -> None:
        payload = {"device": self._device_name, **event.to_dict()}
        try:
            resp = await self._get_client().post(self._url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PublishFailure(f"endpoint answered {e.response.status_code}") from e
        except httpx.TransportError as e:
            raise ConnectivityUnavailable(f"{type(e).__name__}: {e}") from e
        except httpx.HTTPError as e:
            raise PublishFailure(f"{type(e).__name__}: {e}") from e
        logger.debug("Published %s event for %s", event.kind.value, event.actor_id)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
