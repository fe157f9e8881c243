"""Bounded, expiring cache of the last good snapshot per interface."""

import time
from collections import OrderedDict
from collections.abc import Callable

from netwatch.core.models import MetricSnapshot


class SnapshotCache:
    """Keyed store with explicit TTL and least-recently-used eviction.

    Args:
        max_size: Maximum number of interfaces kept.
        ttl_seconds: Age after which an entry is no longer returned.
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        max_size: int = 128,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, MetricSnapshot]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> MetricSnapshot | None:
        """Return the cached snapshot, or None if missing or expired."""
        item = self._entries.get(key)
        if item is None:
            return None
        stored_at, snapshot = item
        if self._clock() - stored_at > self._ttl:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return snapshot

    def set(self, key: str, snapshot: MetricSnapshot) -> None:
        self._entries[key] = (self._clock(), snapshot)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def expire(self) -> int:
        """Drop every expired entry. Returns the number dropped."""
        cutoff = self._clock() - self._ttl
        stale = [key for key, (ts, _) in self._entries.items() if ts < cutoff]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
