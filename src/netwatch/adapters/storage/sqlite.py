"""SQLite metrics log adapter."""

import asyncio
import sqlite3
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import aiosqlite

from netwatch.adapters.storage.in_memory import DEFAULT_RETENTION_SECONDS
from netwatch.core.errors import MetricsLogError
from netwatch.core.models import MetricLogEntry, MetricSnapshot, Source

MEMORY_PATH = ":memory:"

_SNAPSHOTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    interface TEXT NOT NULL,
    timestamp REAL NOT NULL,
    written_at REAL NOT NULL,
    latency_ms REAL NOT NULL,
    packet_loss_pct REAL NOT NULL,
    download_mbps REAL NOT NULL,
    upload_mbps REAL NOT NULL,
    source TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_snapshots_timestamp ON snapshots(timestamp);
CREATE INDEX IF NOT EXISTS idx_snapshots_interface_timestamp
    ON snapshots(interface, timestamp);
"""

_INSERT_SNAPSHOT = """
INSERT INTO snapshots (
    interface, timestamp, written_at,
    latency_ms, packet_loss_pct, download_mbps, upload_mbps, source
) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""

_SELECT_COLUMNS = """
SELECT interface, timestamp, written_at,
       latency_ms, packet_loss_pct, download_mbps, upload_mbps, source
FROM snapshots
"""

_SELECT_SINCE = (
    _SELECT_COLUMNS + "WHERE timestamp > ? ORDER BY timestamp DESC, id DESC"
)

_SELECT_INTERFACE_SINCE = (
    _SELECT_COLUMNS
    + "WHERE interface = ? AND timestamp > ? ORDER BY timestamp DESC, id DESC"
)

_COUNT_SNAPSHOTS = """
SELECT COUNT(*) FROM snapshots
"""

_DELETE_BEFORE = """
DELETE FROM snapshots WHERE timestamp < ?
"""


def _from_row(row: sqlite3.Row) -> MetricLogEntry:
    try:
        source = Source(row[7])
    except ValueError:
        source = Source.CACHE
    return MetricLogEntry(
        snapshot=MetricSnapshot(
            timestamp=row[1],
            interface=row[0],
            latency_ms=row[3],
            packet_loss_pct=row[4],
            download_mbps=row[5],
            upload_mbps=row[6],
            source=source,
        ),
        written_at=row[2],
    )


class SQLiteMetricsLog:
    """SQLite implementation of MetricsLogPort.

    Stores snapshots in a SQLite database using aiosqlite for non-blocking
    async operations. File databases get one short-lived connection per
    operation and run in WAL mode. A ":memory:" database is connection
    scoped, so one connection is kept open until close().

    Every write (append with its prune, prune, clear) is one transaction
    taken under a single write lock, so concurrent writers never interleave
    their retention accounting. Any sqlite3 or OS error is raised as
    MetricsLogError.

    Args:
        db_path: Database file path, or ":memory:".
        retention_seconds: Entries older than this are pruned on every append.
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        db_path: str,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = db_path
        self._retention = retention_seconds
        self._clock = clock
        self._schema_ready = False
        self._memory_db: aiosqlite.Connection | None = None
        self._write_lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        return self._write_lock

    async def _memory_connection(self) -> aiosqlite.Connection:
        if self._memory_db is None:
            db = await aiosqlite.connect(MEMORY_PATH)
            await db.executescript(_SNAPSHOTS_SCHEMA)
            if self._memory_db is None:
                self._memory_db = db
            else:
                await db.close()
        return self._memory_db

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection with the snapshots table in place."""
        try:
            if self._db_path == MEMORY_PATH:
                yield await self._memory_connection()
                return
            async with aiosqlite.connect(self._db_path) as db:
                if not self._schema_ready:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(_SNAPSHOTS_SCHEMA)
                    self._schema_ready = True
                yield db
        except (sqlite3.Error, OSError) as exc:
            raise MetricsLogError(f"Failed to {action}: {exc}") from exc

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncIterator[aiosqlite.Connection]:
        """Serialized write: commit on success, roll back on any error."""
        async with self._get_lock(), self._session(action) as db:
            try:
                yield db
            except BaseException:
                await db.rollback()
                raise
            await db.commit()

    async def append(self, snapshot: MetricSnapshot) -> MetricLogEntry:
        """Insert a snapshot and prune in the same transaction."""
        async with self._transaction("append snapshot") as db:
            now = self._clock()
            entry = MetricLogEntry(snapshot=snapshot, written_at=now)
            await db.execute(
                _INSERT_SNAPSHOT,
                (
                    snapshot.interface,
                    snapshot.timestamp,
                    entry.written_at,
                    snapshot.latency_ms,
                    snapshot.packet_loss_pct,
                    snapshot.download_mbps,
                    snapshot.upload_mbps,
                    snapshot.source.value,
                ),
            )
            await db.execute(_DELETE_BEFORE, (now - self._retention,))
        return entry

    async def query(
        self, interface: str | None = None, since: float = 0
    ) -> list[MetricLogEntry]:
        """Return entries with timestamp > since, newest first."""
        if interface is None:
            query: str = _SELECT_SINCE
            params: tuple[float] | tuple[str, float] = (since,)
        else:
            query = _SELECT_INTERFACE_SINCE
            params = (interface, since)
        async with self._session("query snapshots") as db:
            async with db.execute(query, params) as cursor:
                return [_from_row(row) async for row in cursor]

    async def prune(self, retention_seconds: float | None = None) -> int:
        """Delete entries with timestamp < now - retention."""
        retention = self._retention if retention_seconds is None else retention_seconds
        async with self._transaction("prune snapshots") as db:
            cursor = await db.execute(_DELETE_BEFORE, (self._clock() - retention,))
            return cursor.rowcount

    async def count(self) -> int:
        """Return total number of entries in the log."""
        async with self._session("count snapshots") as db:
            async with db.execute(_COUNT_SNAPSHOTS) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def clear(self) -> None:
        """Remove every entry."""
        async with self._transaction("clear snapshots") as db:
            await db.execute("DELETE FROM snapshots")

    async def close(self) -> None:
        """Close the kept connection of a ":memory:" database."""
        if self._memory_db is not None:
            await self._memory_db.close()
            self._memory_db = None
