"""
Shared fixtures for the controller test suite.

Provides:
- simulated capabilities (device, network, client) and a loop factory
"""

from __future__ import annotations

import logging

import pytest

from legarden.domain.models import ConnectivityState
from legarden.domain.repository import ActorRepository
from legarden.drivers.client_sim import SimulatedClientService
from legarden.drivers.devices_sim import SimulatedDeviceController
from legarden.drivers.network_sim import SimulatedNetworkController
from legarden.services.control_loop import ControlLoopService

logging.getLogger("legarden").setLevel(logging.WARNING)


@pytest.fixture()
def device():
    return SimulatedDeviceController()


@pytest.fixture()
def network():
    return SimulatedNetworkController(state=ConnectivityState.CONNECTED, reconnect_succeeds=False)


@pytest.fixture()
def client():
    return SimulatedClientService()


@pytest.fixture()
def make_loop(device, network, client):
    """Factory: make_loop(actors, **overrides) -> ControlLoopService with sim capabilities."""

    def _make(actors, dev=None, event_log=None, cl=None, **kwargs) -> ControlLoopService:
        opts = dict(
            tick_seconds=0.01,
            buffer_capacity=100,
            reconnect_grace_seconds=60,
            device_timeout_seconds=1.0,
            publish_timeout_seconds=1.0,
            report_interval_seconds=0,
        )
        opts.update(kwargs)
        return ControlLoopService(
            ActorRepository(actors),
            dev or device,
            network,
            cl or client,
            event_log,
            **opts,
        )

    return _make
