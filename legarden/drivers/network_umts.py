from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

import httpx

from ..domain.models import ConnectivityState

logger = logging.getLogger(__name__)


class UmtsNetworkController:
    """
    Supervises a cellular (UMTS) uplink.
    Responsible for: periodic reachability probe, running the dial command on request.
    The control loop only reads connectivity_state() and may call request_reconnect().
    """

    def __init__(
        self,
        probe_url: str,
        reconnect_command: Sequence[str],
        probe_seconds: float = 30.0,
        probe_timeout: float = 10.0,
        reconnect_timeout: float = 90.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._probe_url = probe_url
        self._reconnect_command = list(reconnect_command)
        self._probe_seconds = probe_seconds
        self._probe_timeout = probe_timeout
        self._reconnect_timeout = reconnect_timeout
        self._transport = transport

        self._state = ConnectivityState.DISCONNECTED
        self._client: Optional[httpx.AsyncClient] = None
        self._task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()
        self.last_dial_returncode: Optional[int] = None

    def connectivity_state(self) -> ConnectivityState:
        return self._state

    def _set_state(self, state: ConnectivityState) -> None:
        if state != self._state:
            logger.info("UMTS link %s -> %s", self._state.value, state.value)
        self._state = state

    async def start(self) -> None:
        self._stop.clear()
        self._client = httpx.AsyncClient(timeout=self._probe_timeout, transport=self._transport)
        self._task = asyncio.create_task(self._run(), name="umts_supervisor")

    async def stop(self) -> None:
        self._stop.set()
        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        if self._task:
            await self._task
            self._task = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def probe(self) -> bool:
        assert self._client is not None, "start() not called"
        try:
            resp = await self._client.get(self._probe_url)
        except httpx.HTTPError as e:
            logger.debug("UMTS probe failed: %s", e)
            return False
        return resp.status_code < 400

    async def _run(self) -> None:
        logger.info("UMTS supervisor started (probe=%s every %ss)", self._probe_url, self._probe_seconds)
        while not self._stop.is_set():
            # While dialling, the reconnect task owns the state.
            if self._state is not ConnectivityState.RECONNECTING:
                ok = await self.probe()
                if self._state is not ConnectivityState.RECONNECTING:
                    self._set_state(ConnectivityState.CONNECTED if ok else ConnectivityState.DISCONNECTED)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._probe_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("UMTS supervisor stopped")

    def request_reconnect(self) -> bool:
        if self._reconnect_task and not self._reconnect_task.done():
            return True
        self._set_state(ConnectivityState.RECONNECTING)
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._reconnect(), name="umts_reconnect"
        )
        return True

    async def _reconnect(self) -> None:
        logger.info("UMTS reconnect: %s", " ".join(self._reconnect_command))
        proc = None
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._reconnect_command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            out, _ = await asyncio.wait_for(proc.communicate(), timeout=self._reconnect_timeout)
            if proc.returncode != 0:
                logger.warning(
                    "UMTS reconnect command exited %s: %s",
                    proc.returncode,
                    out.decode(errors="replace").strip(),
                )
        except asyncio.TimeoutError:
            logger.warning("UMTS reconnect command timed out after %ss", self._reconnect_timeout)
            await _kill(proc)
        except OSError as e:
            logger.error("UMTS reconnect command could not run: %s", e)
        except asyncio.CancelledError:
            await _kill(proc)
            raise
        finally:
            if proc is not None:
                self.last_dial_returncode = proc.returncode

        ok = await self.probe() if self._client is not None else False
        self._set_state(ConnectivityState.CONNECTED if ok else ConnectivityState.DISCONNECTED)


async def _kill(proc: Optional[asyncio.subprocess.Process], timeout: float = 5.0) -> None:
    if proc is None or proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    # Reap the child so no zombie is left behind.
    try:
        await asyncio.wait_for(proc.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("UMTS dial process %s did not exit after kill", proc.pid)
