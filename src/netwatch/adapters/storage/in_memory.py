"""In-memory metrics log adapter."""

import asyncio
import time
from collections.abc import Callable

from netwatch.core.models import MetricLogEntry, MetricSnapshot

DEFAULT_RETENTION_SECONDS = 24 * 3600.0


class InMemoryMetricsLog:
    """In-memory implementation of MetricsLogPort.

    Stores entries in a list. Suitable for testing and single-process
    deployments where the log does not need to survive a restart.

    Args:
        retention_seconds: Entries older than this are pruned on every append.
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: list[MetricLogEntry] = []
        self._retention = retention_seconds
        self._clock = clock
        self._write_lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the write lock (lazy to avoid event loop issues)."""
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        return self._write_lock

    async def append(self, snapshot: MetricSnapshot) -> MetricLogEntry:
        """Append a snapshot and prune, as one unit."""
        async with self._get_lock():
            entry = MetricLogEntry(snapshot=snapshot, written_at=self._clock())
            self._entries.append(entry)
            self._prune(self._retention)
            return entry

    async def query(
        self, interface: str | None = None, since: float = 0
    ) -> list[MetricLogEntry]:
        """Return entries with timestamp > since, newest first."""
        entries = list(self._entries)
        matching = [
            e
            for e in entries
            if e.snapshot.timestamp > since
            and (interface is None or e.snapshot.interface == interface)
        ]
        return sorted(matching, key=lambda e: e.snapshot.timestamp, reverse=True)

    async def prune(self, retention_seconds: float | None = None) -> int:
        """Drop entries older than the retention window."""
        async with self._get_lock():
            return self._prune(
                self._retention if retention_seconds is None else retention_seconds
            )

    def _prune(self, retention_seconds: float) -> int:
        cutoff = self._clock() - retention_seconds
        kept = [e for e in self._entries if e.snapshot.timestamp >= cutoff]
        dropped = len(self._entries) - len(kept)
        self._entries = kept
        return dropped

    async def count(self) -> int:
        """Return total number of entries in the log."""
        return len(self._entries)

    async def clear(self) -> None:
        """Remove every entry."""
        async with self._get_lock():
            self._entries = []

    async def close(self) -> None:
        """Nothing to release; present for parity with SQLiteMetricsLog."""
