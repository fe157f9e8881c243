"""Synthetic history built by sweeping the pattern generator across a window."""

import time
from datetime import datetime, timezone

from netwatch.core.errors import InvalidRequestError
from netwatch.core.models import (
    DEFAULT_INTERFACE,
    METRIC_NAMES,
    MetricSeries,
    MetricSnapshot,
    Source,
    TimeSeriesPoint,
)
from netwatch.core.patterns import (
    NoiseSource,
    generate,
    interface_seed,
    uniform_noise,
)

HOUR = 3600.0


def validate_metric(metric: str) -> str:
    if metric not in METRIC_NAMES:
        raise InvalidRequestError(
            f"Unknown metric {metric!r}, expected one of {', '.join(METRIC_NAMES)}"
        )
    return metric


def validate_window(window_hours: int, interval_hours: int = 1) -> int:
    """Check a window and return the number of points it holds."""
    if window_hours <= 0:
        raise InvalidRequestError(f"window must be positive, got {window_hours}")
    if interval_hours <= 0:
        raise InvalidRequestError(f"interval must be positive, got {interval_hours}")
    return max(1, window_hours // interval_hours)


def hour_of_day(timestamp: float) -> int:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).hour


def point_timestamps(
    window_hours: int, interval_hours: int = 1, now: float | None = None
) -> list[float]:
    """Ascending timestamps ending at now, spaced by interval_hours."""
    count = validate_window(window_hours, interval_hours)
    end = time.time() if now is None else now
    step = interval_hours * HOUR
    return [end - (count - 1 - i) * step for i in range(count)]


def synthesize_metric(
    metric: str,
    window_hours: int = 24,
    interval_hours: int = 1,
    *,
    interface: str = DEFAULT_INTERFACE,
    seed: int | None = None,
    now: float | None = None,
    noise: NoiseSource = uniform_noise,
    descending: bool = False,
) -> MetricSeries:
    """Build one synthetic series.

    Args:
        metric: Metric name (one of METRIC_NAMES).
        window_hours: Length of the window in hours.
        interval_hours: Spacing between points in hours.
        interface: Interface the series is tagged with.
        seed: Seed override; defaults to interface_seed(interface).
        now: End of the window (Unix seconds); defaults to the current time.
        noise: Noise source passed to the generator.
        descending: Newest point first instead of oldest first.

    Returns:
        MetricSeries with window_hours // interval_hours points.
    """
    validate_metric(metric)
    if seed is None:
        seed = interface_seed(interface)
    points = [
        TimeSeriesPoint(
            timestamp=ts,
            value=round(generate(metric, hour_of_day(ts), seed, noise=noise), 2),
        )
        for ts in point_timestamps(window_hours, interval_hours, now)
    ]
    if descending:
        points.reverse()
    return MetricSeries(
        metric=metric,
        interface=interface,
        points=tuple(points),
        source=Source.SYNTHETIC,
    )


def synthesize_interface(
    interface: str | None = None,
    window_hours: int = 24,
    interval_hours: int = 1,
    *,
    now: float | None = None,
    noise: NoiseSource = uniform_noise,
    descending: bool = False,
) -> dict[str, MetricSeries]:
    """Build the latency, packet loss and speed series for one interface."""
    name = interface or DEFAULT_INTERFACE
    end = time.time() if now is None else now
    return {
        metric: synthesize_metric(
            metric,
            window_hours,
            interval_hours,
            interface=name,
            now=end,
            noise=noise,
            descending=descending,
        )
        for metric in METRIC_NAMES
    }


def series_to_snapshots(series: dict[str, MetricSeries]) -> list[MetricSnapshot]:
    """Zip per-metric series of equal length into snapshots, preserving order."""
    latency = series["latency"]
    rows = zip(
        latency.points,
        series["packet_loss"].points,
        series["download_speed"].points,
        series["upload_speed"].points,
    )
    return [
        MetricSnapshot(
            timestamp=lat.timestamp,
            interface=latency.interface,
            latency_ms=lat.value,
            packet_loss_pct=loss.value,
            download_mbps=down.value,
            upload_mbps=up.value,
            source=latency.source,
        )
        for lat, loss, down, up in rows
    ]


def synthesize_snapshot(
    interface: str | None = None,
    *,
    now: float | None = None,
    noise: NoiseSource = uniform_noise,
) -> MetricSnapshot:
    """A synthetic reading for the current hour."""
    series = synthesize_interface(interface, 1, now=now, noise=noise)
    return series_to_snapshots(series)[0]
