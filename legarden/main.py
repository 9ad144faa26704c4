from __future__ import annotations

import logging
import shlex
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .core.actor_config import load_actors
from .core.config import settings
from .core.log import configure_logging

from .api.routes import router as api_router
import legarden.api.routes as routes_module

from .domain.interfaces import ClientService, DeviceController, NetworkController
from .domain.repository import ActorRepository
from .drivers.client_http import HttpClientService
from .drivers.client_sim import SimulatedClientService
from .drivers.device_gpio import GpioDeviceController
from .drivers.device_sonoff import SonoffDeviceController
from .drivers.devices_sim import SimulatedDeviceController
from .drivers.network_sim import SimulatedNetworkController
from .drivers.network_umts import UmtsNetworkController
from .services.control_loop import ControlLoopService
from .storage.sqlite_repo import SQLiteEventLog


logger = logging.getLogger(__name__)


def build_device(repository: ActorRepository) -> DeviceController:
    mode = settings.device_mode.lower()
    outputs = {a.actor_id: a.output for a in repository.all()}
    if mode == "gpio":
        return GpioDeviceController(outputs)
    if mode == "sonoff":
        return SonoffDeviceController(
            outputs,
            default_port=settings.sonoff_port,
            timeout=settings.device_timeout_seconds,
        )
    return SimulatedDeviceController()


def build_network() -> NetworkController:
    if settings.network_mode.lower() == "umts":
        return UmtsNetworkController(
            probe_url=settings.umts_probe_url,
            reconnect_command=shlex.split(settings.umts_reconnect_command),
            probe_seconds=settings.umts_probe_seconds,
            probe_timeout=settings.umts_probe_timeout_seconds,
            reconnect_timeout=settings.umts_reconnect_timeout_seconds,
        )
    return SimulatedNetworkController()


def build_client() -> ClientService:
    if settings.client_mode.lower() == "http":
        return HttpClientService(
            url=settings.cloud_url,
            device_name=settings.device_name,
            token=settings.cloud_token,
            timeout=settings.publish_timeout_seconds,
        )
    return SimulatedClientService()


# --- Wiring ---
actors, rejected_actors = load_actors(settings.actors_path)
repository = ActorRepository(actors)

device = build_device(repository)
network = build_network()
client = build_client()
event_log = SQLiteEventLog(settings.sqlite_path)

control_loop = ControlLoopService(
    repository=repository,
    device=device,
    network=network,
    client=client,
    event_log=event_log,
)


def get_loop() -> ControlLoopService:
    return control_loop


def get_network() -> NetworkController:
    return network


def get_event_log() -> SQLiteEventLog:
    return event_log


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    logger.info(
        "Starting %s (device=%s network=%s client=%s actors=%d rejected=%s)",
        settings.app_name,
        settings.device_mode,
        settings.network_mode,
        settings.client_mode,
        len(repository),
        sorted(rejected_actors) or "none",
    )

    # No outputs means nothing can be actuated: let DeviceUnavailable stop the process.
    await device.open()
    await network.start()
    await event_log.init()
    await control_loop.start()

    try:
        yield
    finally:
        # Loop first: the in-flight tick finishes before its collaborators go away.
        await control_loop.stop()
        await network.stop()
        await client.close()
        await device.close()

        logger.info("Shutdown complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Make the dependency functions in routes resolve to the real ones
app.dependency_overrides[routes_module.get_loop] = get_loop
app.dependency_overrides[routes_module.get_network] = get_network
app.dependency_overrides[routes_module.get_event_log] = get_event_log

app.include_router(api_router, prefix="/api")
