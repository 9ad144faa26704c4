import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import legarden.api.routes as routes
from legarden.domain.models import ConnectivityState, EventKind, TelemetryEvent

from helpers import local, make_actor


class MemoryEventLog:
    def __init__(self, events):
        self.events = events
        self.queries = []

    async def init(self):
        pass

    async def insert_event(self, event):
        self.events.append(event)

    async def query_events(self, start_ts, end_ts, limit, actor_id=None):
        self.queries.append((start_ts, end_ts, limit, actor_id))
        return [e for e in self.events if actor_id is None or e.actor_id == actor_id][:limit]


@pytest.fixture()
def api(make_loop, network):
    loop = make_loop([
        make_actor("valve-1", ("08:00", "08:30"), label="Lawn"),
        make_actor("light-1", ("22:00", "05:00")),
    ])
    asyncio.run(loop.tick(local(8, 5)))
    log = MemoryEventLog([
        TelemetryEvent(ts=local(8, 5), actor_id="valve-1", active=True, kind=EventKind.STATE),
        TelemetryEvent(ts=local(8, 5), actor_id="light-1", active=False, kind=EventKind.STATE),
    ])

    app = FastAPI()
    app.dependency_overrides[routes.get_loop] = lambda: loop
    app.dependency_overrides[routes.get_network] = lambda: network
    app.dependency_overrides[routes.get_event_log] = lambda: log
    app.dependency_overrides[routes.get_clock] = lambda: (lambda: local(8, 10))
    app.include_router(routes.router, prefix="/api")
    return TestClient(app), loop, log


def test_live(api):
    client, loop, _ = api
    body = client.get("/api/live").json()
    assert body["tick_count"] == 1
    assert body["actors"] == 2
    assert body["network"]["connectivity"] == "connected"
    assert body["telemetry"]["published"] == 2
    assert body["telemetry"]["buffered"] == 0
    assert body["telemetry"]["capacity"] == 100
    assert body["running"] is False


def test_list_actors(api):
    client, _, _ = api
    body = client.get("/api/actors").json()
    assert [a["actor_id"] for a in body] == ["valve-1", "light-1"]
    valve = body[0]
    assert valve["label"] == "Lawn"
    assert valve["windows"] == [{"start": "08:00", "end": "08:30"}]
    assert valve["desired_now"] is True
    assert valve["last_applied"] is True
    assert valve["status"] == "idle"
    assert valve["next_transition"] == local(8, 30).isoformat()


def test_get_actor_and_not_found(api):
    client, _, _ = api
    assert client.get("/api/actors/light-1").json()["last_applied"] is False
    resp = client.get("/api/actors/valve-9")
    assert resp.status_code == 404


def test_events_query(api):
    client, _, log = api
    body = client.get("/api/events", params={"actor_id": "valve-1", "limit": 10}).json()
    assert body == [{
        "ts": local(8, 5).isoformat(),
        "actor_id": "valve-1",
        "active": True,
        "kind": "state",
        "error": None,
    }]
    assert log.queries[-1][2:] == (10, "valve-1")


def test_events_rejects_bad_timestamp(api):
    client, _, _ = api
    assert client.get("/api/events", params={"start": "yesterday"}).status_code == 400


def test_network_reconnect(api, network):
    client, _, _ = api
    network.set_state(ConnectivityState.DISCONNECTED)
    body = client.post("/api/network/reconnect").json()
    assert body == {"ok": True, "acknowledged": True, "connectivity": "disconnected"}
    assert network.reconnect_requests == 1
