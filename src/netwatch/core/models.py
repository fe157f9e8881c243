"""Core domain models for network metrics."""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

METRIC_NAMES = ("latency", "packet_loss", "download_speed", "upload_speed")

DEFAULT_INTERFACE = "default"

# 9999-12-31T23:59:59Z, the last second datetime can represent
MAX_TIMESTAMP = 253402300799.0


class Source(str, Enum):
    """Fallback tier a reading came from."""

    LIVE = "live"
    CACHE = "cache"
    SYNTHETIC = "synthetic"


class Shape(str, Enum):
    """Oscillation shape of a synthetic metric."""

    SINE = "sine"
    COSINE = "cosine"


def format_timestamp(timestamp: float) -> str:
    """Format a Unix timestamp as an ISO-8601 UTC string.

    Values outside 1970-01-01..9999-12-31 are clamped to that range.
    """
    if math.isnan(timestamp):
        timestamp = 0.0
    timestamp = min(max(timestamp, 0.0), MAX_TIMESTAMP)
    return (
        datetime.fromtimestamp(timestamp, tz=timezone.utc)
        .isoformat(timespec="microseconds")
        .replace("+00:00", "Z")
    )


@dataclass(frozen=True)
class MetricSnapshot:
    """A point-in-time network reading for one interface.

    Attributes:
        timestamp: Unix timestamp in seconds.
        interface: Network interface name (e.g., eth0).
        latency_ms: Round-trip latency in milliseconds.
        packet_loss_pct: Packet loss percentage, 0-100.
        download_mbps: Download throughput in Mbps.
        upload_mbps: Upload throughput in Mbps.
        source: Tier the reading came from.
    """

    timestamp: float
    interface: str = DEFAULT_INTERFACE
    latency_ms: float = 0.0
    packet_loss_pct: float = 0.0
    download_mbps: float = 0.0
    upload_mbps: float = 0.0
    source: Source = Source.LIVE

    @property
    def is_synthetic(self) -> bool:
        return self.source is Source.SYNTHETIC

    def value_of(self, metric: str) -> float:
        """Return the field backing a metric name."""
        return {
            "latency": self.latency_ms,
            "packet_loss": self.packet_loss_pct,
            "download_speed": self.download_mbps,
            "upload_speed": self.upload_mbps,
        }[metric]

    def to_dict(self) -> dict[str, Any]:
        return {
            "latencyMs": self.latency_ms,
            "packetLossPct": self.packet_loss_pct,
            "downloadMbps": self.download_mbps,
            "uploadMbps": self.upload_mbps,
            "timestamp": format_timestamp(self.timestamp),
            "interface": self.interface,
            "source": self.source.value,
            "isSynthetic": self.is_synthetic,
        }


@dataclass(frozen=True)
class TimeSeriesPoint:
    """A single value of one metric at one instant."""

    timestamp: float
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": format_timestamp(self.timestamp), "value": self.value}


@dataclass(frozen=True)
class MetricSeries:
    """Ordered points of one metric for one interface.

    Attributes:
        metric: Metric name (one of METRIC_NAMES).
        interface: Interface the series belongs to.
        points: Points in the order they should be displayed.
        source: Tier the series came from.
    """

    metric: str
    interface: str
    points: tuple[TimeSeriesPoint, ...] = ()
    source: Source = Source.SYNTHETIC

    def __len__(self) -> int:
        return len(self.points)

    def to_list(self) -> list[dict[str, Any]]:
        return [point.to_dict() for point in self.points]


@dataclass(frozen=True)
class PatternConfig:
    """Static parameters of a synthetic metric curve.

    Attributes:
        baseline: Value the curve oscillates around.
        amplitude: Peak deviation from the baseline.
        noise_level: Width of the uniform noise band.
        peak_hour: Hour of day (0-23) the oscillation is anchored to.
        shape: SINE, or COSINE for metrics lowest at peak usage.
        upper_bound: Optional hard cap applied after clamping.
    """

    baseline: float
    amplitude: float
    noise_level: float
    peak_hour: int
    shape: Shape = Shape.SINE
    upper_bound: float | None = None


@dataclass(frozen=True)
class MetricLogEntry:
    """A snapshot as stored in the metrics log."""

    snapshot: MetricSnapshot
    written_at: float

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.snapshot.to_dict(),
            "writtenAt": format_timestamp(self.written_at),
        }


@dataclass(frozen=True)
class DailySummary:
    """Per-day averages of logged or synthesized readings."""

    date: str
    avg_latency_ms: float
    avg_packet_loss_pct: float
    avg_speed_mbps: float
    critical_events: int
    samples: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "avgLatency": self.avg_latency_ms,
            "avgPacketLoss": self.avg_packet_loss_pct,
            "avgSpeed": self.avg_speed_mbps,
            "criticalEvents": self.critical_events,
            "samples": self.samples,
        }


@dataclass(frozen=True)
class HealthAssessment:
    """Threshold verdict for a snapshot."""

    status: str
    issues: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "issues": list(self.issues)}
