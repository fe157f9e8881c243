"""Port interfaces for live sources and the metrics log.

These protocols define the contracts that adapters must implement.
The core domain depends only on these interfaces, not concrete implementations.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from netwatch.core.models import MetricLogEntry, MetricSnapshot


@runtime_checkable
class LiveSourcePort(Protocol):
    """Port for live metric sources.

    Adapters implementing this protocol fetch a current reading for a
    named interface. Examples: HTTPProbeSource, CaptureSource.
    """

    async def fetch(self, interface: str) -> Mapping[str, Any] | None:
        """Fetch a raw reading for the interface.

        Returns:
            A mapping in any shape the normalizer understands, or None when
            the source has nothing to report. May raise on failure.
        """
        ...


@runtime_checkable
class MetricsLogPort(Protocol):
    """Port for the append-only metrics log.

    Examples: InMemoryMetricsLog, SQLiteMetricsLog.
    """

    async def append(self, snapshot: MetricSnapshot) -> MetricLogEntry:
        """Append a snapshot and prune entries outside the retention window."""
        ...

    async def query(
        self, interface: str | None = None, since: float = 0
    ) -> list[MetricLogEntry]:
        """Return entries with timestamp > since, newest first.

        Args:
            interface: Only entries for this interface; None returns all.
            since: Unix timestamp lower bound (exclusive).
        """
        ...

    async def prune(self, retention_seconds: float | None = None) -> int:
        """Drop entries older than now - retention. Returns the number dropped."""
        ...
