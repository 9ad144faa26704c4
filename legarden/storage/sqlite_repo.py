from __future__ import annotations
import aiosqlite
from datetime import datetime, timezone
from typing import List, Optional
from ..domain.models import EventKind, TelemetryEvent


class SQLiteEventLog:
    """Local history of every telemetry event, independent of cloud reachability.

    Timestamps are stored in UTC so lexical order is time order across DST changes.
    """

    def __init__(self, path: str) -> None:
        self._path = path

    async def init(self) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                    ts TEXT NOT NULL,
                    actor_id TEXT NOT NULL,
                    active INTEGER,
                    kind TEXT NOT NULL,
                    error TEXT
                )
                """
            )
            await db.execute("CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_events_actor ON events(actor_id, ts)")
            await db.commit()

    async def insert_event(self, e: TelemetryEvent) -> None:
        async with aiosqlite.connect(self._path) as db:
            await db.execute(
                "INSERT INTO events(ts,actor_id,active,kind,error) VALUES (?,?,?,?,?)",
                (
                    _utc(e.ts).isoformat(),
                    e.actor_id,
                    None if e.active is None else (1 if e.active else 0),
                    e.kind.value,
                    e.error,
                ),
            )
            await db.commit()

    async def query_events(
        self, start_ts: str, end_ts: str, limit: int, actor_id: Optional[str] = None
    ) -> List[TelemetryEvent]:
        sql = "SELECT ts,actor_id,active,kind,error FROM events WHERE ts >= ? AND ts <= ?"
        params: list = [start_ts, end_ts]
        if actor_id is not None:
            sql += " AND actor_id = ?"
            params.append(actor_id)
        sql += " ORDER BY ts DESC, rowid DESC LIMIT ?"
        params.append(limit)

        async with aiosqlite.connect(self._path) as db:
            cur = await db.execute(sql, params)
            rows = await cur.fetchall()
        out: list[TelemetryEvent] = []
        for ts, aid, active, kind, err in rows:
            out.append(
                TelemetryEvent(
                    ts=datetime.fromisoformat(ts),
                    actor_id=aid,
                    active=None if active is None else bool(active),
                    kind=EventKind(kind),
                    error=err,
                )
            )
        return list(reversed(out))


def _utc(ts: datetime) -> datetime:
    return ts.astimezone(timezone.utc) if ts.tzinfo else ts
