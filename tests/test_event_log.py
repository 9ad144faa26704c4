import asyncio
from datetime import timezone

from legarden.domain.models import EventKind, TelemetryEvent
from legarden.storage.sqlite_repo import SQLiteEventLog

from helpers import local


def test_insert_and_query_events(tmp_path):
    log = SQLiteEventLog(str(tmp_path / "events.db"))
    events = [
        TelemetryEvent(ts=local(8, 5), actor_id="valve-1", active=True, kind=EventKind.STATE),
        TelemetryEvent(ts=local(8, 6), actor_id="valve-2", active=None, kind=EventKind.FAILURE, error="relay offline"),
        TelemetryEvent(ts=local(8, 30), actor_id="valve-1", active=False, kind=EventKind.STATE),
    ]

    async def run():
        await log.init()
        for e in events:
            await log.insert_event(e)
        start = local(8, 0).astimezone(timezone.utc).isoformat()
        end = local(9, 0).astimezone(timezone.utc).isoformat()
        everything = await log.query_events(start, end, 100)
        valve_1 = await log.query_events(start, end, 100, actor_id="valve-1")
        latest = await log.query_events(start, end, 1)
        return everything, valve_1, latest

    everything, valve_1, latest = asyncio.run(run())

    assert [(e.actor_id, e.active, e.kind) for e in everything] == [
        ("valve-1", True, EventKind.STATE),
        ("valve-2", None, EventKind.FAILURE),
        ("valve-1", False, EventKind.STATE),
    ]
    assert everything[1].error == "relay offline"
    assert everything[0].ts == local(8, 5)
    assert [e.active for e in valve_1] == [True, False]
    assert [e.ts for e in latest] == [local(8, 30)]


def test_init_is_idempotent(tmp_path):
    log = SQLiteEventLog(str(tmp_path / "events.db"))

    async def run():
        await log.init()
        await log.init()
        return await log.query_events("0000", "9999", 10)

    assert asyncio.run(run()) == []
