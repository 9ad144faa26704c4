from __future__ import annotations
import asyncio
import functools
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..core.config import settings
from ..core.timeutil import now_local
from ..domain.errors import DeviceFailure, PublishFailure
from ..domain.interfaces import ClientService, DeviceController, EventLog, NetworkController
from ..domain.models import (
    Actor,
    ActorStatus,
    ConnectivityState,
    EventKind,
    TelemetryEvent,
)
from ..domain.repository import ActorRepository
from ..domain.schedule import is_active
from .telemetry_buffer import TelemetryBuffer


logger = logging.getLogger(__name__)


@dataclass
class LiveState:
    tick_count: int = 0
    last_tick_local: Optional[datetime] = None
    last_tick_seconds: Optional[float] = None
    connectivity: ConnectivityState = ConnectivityState.DISCONNECTED
    disconnected_since: Optional[datetime] = None
    reconnect_requests: int = 0
    published: int = 0
    publish_failures: int = 0
    last_publish_error: Optional[str] = None


class ControlLoopService:
    """Periodic reconciliation of every actor against its schedule.

    Each tick:
      1) computes the desired state of every actor from the local time,
      2) applies differences through the device controller (actors in parallel,
         each call bounded by a timeout),
      3) queues telemetry for applied transitions and failures,
      4) publishes queued telemetry only while the network reports connected.

    Device calls never depend on connectivity. Failed applies leave the actor's
    last applied state untouched, so the next tick retries.
    """

    def __init__(
        self,
        repository: ActorRepository,
        device: DeviceController,
        network: NetworkController,
        client: ClientService,
        event_log: Optional[EventLog] = None,
        *,
        tick_seconds: Optional[float] = None,
        buffer_capacity: Optional[int] = None,
        reconnect_grace_seconds: Optional[float] = None,
        device_timeout_seconds: Optional[float] = None,
        publish_timeout_seconds: Optional[float] = None,
        report_interval_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self._repo = repository
        self._device = device
        self._network = network
        self._client = client
        self._event_log = event_log
        self._clock = clock

        self._tick_seconds = _or(tick_seconds, settings.tick_seconds)
        self._reconnect_grace = timedelta(
            seconds=_or(reconnect_grace_seconds, settings.reconnect_grace_seconds)
        )
        self._device_timeout = _or(device_timeout_seconds, settings.device_timeout_seconds)
        self._publish_timeout = _or(publish_timeout_seconds, settings.publish_timeout_seconds)
        self._report_interval = timedelta(
            seconds=_or(report_interval_seconds, settings.report_interval_seconds)
        )
        self._last_report: Optional[datetime] = None

        self._buffer = TelemetryBuffer(_or(buffer_capacity, settings.telemetry_buffer_capacity))

        # actor_id -> apply that outlived its timeout and is still running
        self._applying: dict[str, asyncio.Future] = {}

        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

        self.live = LiveState()

    @property
    def repository(self) -> ActorRepository:
        return self._repo

    @property
    def buffer(self) -> TelemetryBuffer:
        return self._buffer

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="control_loop")

    async def stop(self) -> None:
        # Never cancel: the in-flight tick must finish so no output is left half-applied.
        self._stop.set()
        if self._task:
            await self._task
            self._task = None
        if self._applying:
            logger.info("Waiting for %d late apply call(s)", len(self._applying))
            await asyncio.wait(list(self._applying.values()), timeout=self._device_timeout)

    async def _run(self) -> None:
        logger.info(
            "Control loop started (tick_seconds=%s actors=%d buffer_capacity=%d)",
            self._tick_seconds,
            len(self._repo),
            self._buffer.capacity,
        )
        loop = asyncio.get_running_loop()

        while not self._stop.is_set():
            started = loop.time()
            try:
                await self.tick()
            except Exception as e:
                logger.exception("Control loop tick error: %s", e)

            elapsed = loop.time() - started
            self.live.last_tick_seconds = elapsed
            if elapsed > self._tick_seconds:
                logger.warning("Tick took %.2fs (interval %.2fs)", elapsed, self._tick_seconds)

            # sleep with cancellation awareness
            try:
                await asyncio.wait_for(
                    self._stop.wait(), timeout=max(0.0, self._tick_seconds - elapsed)
                )
            except asyncio.TimeoutError:
                pass

        logger.info("Control loop stopped")

    async def tick(self, now: Optional[datetime] = None) -> list[TelemetryEvent]:
        """Run one reconciliation cycle. Returns the events generated by it."""
        now = now or self._clock()
        actors = self._repo.all()

        results = await asyncio.gather(*(self._reconcile(a, now) for a in actors))
        events = [e for e in results if e is not None]
        events.extend(self._due_reports(now, actors))

        for actor in actors:
            actor.status = (
                ActorStatus.APPLYING if actor.actor_id in self._applying else ActorStatus.IDLE
            )

        await self._record(events)
        await self._handle_telemetry(events, now)

        self.live.tick_count += 1
        self.live.last_tick_local = now
        return events

    async def _reconcile(self, actor: Actor, now: datetime) -> Optional[TelemetryEvent]:
        desired = is_active(actor.schedule, now)
        actor.pending = desired

        if not actor.needs_apply(desired):
            return None

        if actor.actor_id in self._applying:
            logger.warning("Actor %s still applying, skipping this tick", actor.actor_id)
            return None

        actor.status = ActorStatus.APPLYING
        actor.last_attempt_at = now
        call = asyncio.ensure_future(self._device.apply(actor.actor_id, desired))
        try:
            await asyncio.wait_for(asyncio.shield(call), timeout=self._device_timeout)
        except asyncio.TimeoutError:
            # Executor-backed calls cannot be interrupted: hold the actor until the call settles.
            self._applying[actor.actor_id] = call
            call.add_done_callback(functools.partial(self._late_apply_done, actor))
            error = f"apply timed out after {self._device_timeout:.1f}s"
        except DeviceFailure as e:
            error = e.reason
        except Exception as e:
            logger.exception("Unexpected device controller error for %s", actor.actor_id)
            error = str(e) or type(e).__name__
        else:
            actor.status = ActorStatus.APPLIED
            actor.last_applied = desired
            actor.last_applied_at = now
            actor.last_error = None
            actor.consecutive_failures = 0
            logger.info("Actor %s -> %s", actor.actor_id, "ON" if desired else "OFF")
            return TelemetryEvent(ts=now, actor_id=actor.actor_id, active=desired, kind=EventKind.STATE)

        actor.status = ActorStatus.FAILED
        actor.last_error = error
        actor.consecutive_failures += 1
        logger.warning(
            "Actor %s apply(%s) failed (%d in a row): %s",
            actor.actor_id,
            "ON" if desired else "OFF",
            actor.consecutive_failures,
            error,
        )
        return TelemetryEvent(
            ts=now,
            actor_id=actor.actor_id,
            active=actor.last_applied,
            kind=EventKind.FAILURE,
            error=error,
        )

    def _late_apply_done(self, actor: Actor, call: asyncio.Future) -> None:
        # The tick already reported this call as failed; the next tick re-applies.
        self._applying.pop(actor.actor_id, None)
        if actor.status is ActorStatus.APPLYING:
            actor.status = ActorStatus.IDLE
        if call.cancelled():
            return
        exc = call.exception()
        if exc is not None:
            logger.warning("Actor %s late apply failed: %s", actor.actor_id, exc)
        else:
            logger.info("Actor %s late apply finished", actor.actor_id)

    def _due_reports(self, now: datetime, actors: list[Actor]) -> list[TelemetryEvent]:
        if not self._report_interval:
            return []
        if self._last_report is None:
            self._last_report = now
            return []
        if now - self._last_report < self._report_interval:
            return []
        self._last_report = now
        return [
            TelemetryEvent(ts=now, actor_id=a.actor_id, active=a.last_applied, kind=EventKind.REPORT)
            for a in actors
        ]

    async def _record(self, events: list[TelemetryEvent]) -> None:
        if self._event_log is None:
            return
        for event in events:
            try:
                await self._event_log.insert_event(event)
            except Exception as e:
                logger.warning("Event log write failed: %s", e)

    def _observe_network(self, now: datetime) -> ConnectivityState:
        try:
            state = self._network.connectivity_state()
        except Exception as e:
            logger.warning("Network controller state unavailable: %s", e)
            state = ConnectivityState.DISCONNECTED

        if state != self.live.connectivity:
            logger.info("Connectivity %s -> %s", self.live.connectivity.value, state.value)
        self.live.connectivity = state

        if state is not ConnectivityState.DISCONNECTED:
            self.live.disconnected_since = None
            return state

        if self.live.disconnected_since is None:
            self.live.disconnected_since = now
        elif now - self.live.disconnected_since >= self._reconnect_grace:
            logger.info(
                "Disconnected since %s, requesting reconnect",
                self.live.disconnected_since.isoformat(),
            )
            try:
                self._network.request_reconnect()
            except Exception as e:
                logger.warning("Reconnect request failed: %s", e)
            self.live.reconnect_requests += 1
            self.live.disconnected_since = now
        return state

    async def _handle_telemetry(self, events: list[TelemetryEvent], now: datetime) -> None:
        state = self._observe_network(now)

        if state is not ConnectivityState.CONNECTED:
            for event in events:
                self._buffer.push(event)
            if events:
                logger.info(
                    "Link %s: buffered %d event(s), queue=%d",
                    state.value, len(events), len(self._buffer),
                )
            return

        # Older buffered events go out before this tick's events take a slot.
        sent = await self._flush()
        for event in events:
            self._buffer.push(event)
            if sent:
                sent = await self._flush()

    async def _flush(self) -> bool:
        while len(self._buffer):
            event = self._buffer.peek()
            try:
                await asyncio.wait_for(self._client.publish(event), timeout=self._publish_timeout)
            except asyncio.TimeoutError:
                error = f"publish timed out after {self._publish_timeout:.1f}s"
            except PublishFailure as e:
                error = str(e) or type(e).__name__
            except Exception as e:
                logger.exception("Unexpected client error")
                error = str(e) or type(e).__name__
            else:
                self._buffer.pop()
                self.live.published += 1
                continue

            self.live.publish_failures += 1
            self.live.last_publish_error = error
            logger.warning("Publish failed, %d event(s) kept for retry: %s", len(self._buffer), error)
            return False
        return True


def _or(value, default):
    return default if value is None else value
