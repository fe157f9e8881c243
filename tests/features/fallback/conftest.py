"""BDD step definitions for the metrics fallback chain.

Each step drives the orchestrator synchronously through run_async so the
scenarios read top to bottom like the dashboard's request sequence.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from netwatch.adapters.storage.in_memory import InMemoryMetricsLog
from netwatch.core.cache import SnapshotCache
from netwatch.core.errors import InvalidRequestError
from netwatch.core.fallback import MetricsOrchestrator
from netwatch.core.history import HOUR
from netwatch.core.models import METRIC_NAMES, MetricSeries, MetricSnapshot, Source
from netwatch.core.patterns import PACKET_LOSS_CAP, zero_noise
from tests.fakes import (
    FailingLiveSource,
    FakeClock,
    HangingLiveSource,
    StaticLiveSource,
    probe_payload,
)


def run_async(coro: Any) -> Any:
    """Run a coroutine synchronously."""
    return asyncio.run(coro)


@dataclass
class FallbackScenarioContext:
    """Shared state between steps in a fallback scenario."""

    clock: FakeClock = field(default_factory=FakeClock)
    metrics_log: InMemoryMetricsLog | None = None
    live_source: Any = None
    cache: SnapshotCache | None = None
    snapshot: MetricSnapshot | None = None
    series: MetricSeries | None = None
    history: dict[str, MetricSeries] = field(default_factory=dict)
    error: Exception | None = None

    def orchestrator(self) -> MetricsOrchestrator:
        if self.metrics_log is None:
            self.metrics_log = InMemoryMetricsLog(clock=self.clock)
        if self.cache is None:
            self.cache = SnapshotCache(clock=self.clock)
        return MetricsOrchestrator(
            self.metrics_log,
            self.live_source,
            cache=self.cache,
            live_timeout=0.2,
            noise=zero_noise,
            clock=self.clock,
        )


def _parse_instant(text: str) -> float:
    return datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp()


@pytest.fixture
def ctx() -> FallbackScenarioContext:
    """Fresh scenario context for each test."""
    return FallbackScenarioContext()


# === Background Steps ===
@given("an empty in-memory metrics log")
def step_empty_log(ctx: FallbackScenarioContext) -> None:
    ctx.metrics_log = InMemoryMetricsLog(clock=ctx.clock)


@given(parsers.parse("the clock reads {instant}"))
def step_clock(ctx: FallbackScenarioContext, instant: str) -> None:
    ctx.clock.now = _parse_instant(instant)


# === Live Source Steps ===
@given(parsers.parse("a live source reporting a latency of {latency:f} ms"))
def step_live_source(ctx: FallbackScenarioContext, latency: float) -> None:
    ctx.live_source = StaticLiveSource(
        probe_payload(latency=latency, timestamp=ctx.clock.now)
    )


@given("a live source that fails")
@given("the live source starts failing")
def step_failing_source(ctx: FallbackScenarioContext) -> None:
    ctx.live_source = FailingLiveSource()


@given("a live source that never answers")
def step_hanging_source(ctx: FallbackScenarioContext) -> None:
    ctx.live_source = HangingLiveSource()


# === Log Steps ===
@given(
    parsers.parse(
        'a logged reading for "{interface}" with a latency of {latency:f} ms '
        "taken {hours:d} hours ago"
    )
)
def step_logged_reading(
    ctx: FallbackScenarioContext, interface: str, latency: float, hours: int
) -> None:
    orchestrator = ctx.orchestrator()
    payload = probe_payload(
        interface=interface,
        latency=latency,
        timestamp=ctx.clock.now - hours * HOUR,
    )
    run_async(orchestrator.record_metrics(payload))


# === Request Steps ===
@given(parsers.parse('current metrics were requested for "{interface}"'))
@when(parsers.parse('current metrics are requested for "{interface}"'))
def step_get_metrics(ctx: FallbackScenarioContext, interface: str) -> None:
    ctx.snapshot = run_async(ctx.orchestrator().get_metrics(interface))


@when(
    parsers.parse(
        '{hours:d} hours of "{metric}" history are requested for "{interface}"'
    )
)
def step_get_history(
    ctx: FallbackScenarioContext, hours: int, metric: str, interface: str
) -> None:
    try:
        history = run_async(
            ctx.orchestrator().get_history(interface, hours, metric=metric)
        )
    except InvalidRequestError as exc:
        ctx.error = exc
    else:
        ctx.series = history[metric]


@when(parsers.parse('{hours:d} hours of history are requested for "{interface}"'))
def step_get_full_history(
    ctx: FallbackScenarioContext, hours: int, interface: str
) -> None:
    ctx.history = run_async(ctx.orchestrator().get_history(interface, hours))


# === Snapshot Assertions ===
@then(parsers.parse('the snapshot source is "{source}"'))
def step_snapshot_source(ctx: FallbackScenarioContext, source: str) -> None:
    assert ctx.snapshot is not None
    assert ctx.snapshot.source is Source(source)


@then(parsers.parse("the snapshot latency is {latency:f} ms"))
def step_snapshot_latency(ctx: FallbackScenarioContext, latency: float) -> None:
    assert ctx.snapshot is not None
    assert ctx.snapshot.latency_ms == latency


@then("the snapshot is synthetic")
def step_is_synthetic(ctx: FallbackScenarioContext) -> None:
    assert ctx.snapshot is not None
    assert ctx.snapshot.is_synthetic


@then("the snapshot is not synthetic")
def step_is_not_synthetic(ctx: FallbackScenarioContext) -> None:
    assert ctx.snapshot is not None
    assert not ctx.snapshot.is_synthetic


@then(parsers.parse('the snapshot interface is "{interface}"'))
def step_snapshot_interface(ctx: FallbackScenarioContext, interface: str) -> None:
    assert ctx.snapshot is not None
    assert ctx.snapshot.interface == interface


@then("the snapshot values are within their limits")
def step_snapshot_limits(ctx: FallbackScenarioContext) -> None:
    snapshot = ctx.snapshot
    assert snapshot is not None
    assert snapshot.latency_ms >= 0
    assert 0 <= snapshot.packet_loss_pct <= PACKET_LOSS_CAP
    assert snapshot.download_mbps >= 0
    assert snapshot.upload_mbps >= 0


@then("the live request was cancelled")
def step_live_cancelled(ctx: FallbackScenarioContext) -> None:
    assert isinstance(ctx.live_source, HangingLiveSource)
    assert ctx.live_source.cancelled


# === History Assertions ===
@then(parsers.parse("the series has {count:d} points in ascending order"))
def step_series_length(ctx: FallbackScenarioContext, count: int) -> None:
    assert ctx.series is not None
    stamps = [point.timestamp for point in ctx.series.points]
    assert len(stamps) == count
    assert stamps == sorted(stamps)


@then(parsers.parse("the last point is at {instant}"))
def step_last_point(ctx: FallbackScenarioContext, instant: str) -> None:
    assert ctx.series is not None
    assert ctx.series.points[-1].timestamp == _parse_instant(instant)


@then(parsers.parse('the series source is "{source}"'))
def step_series_source(ctx: FallbackScenarioContext, source: str) -> None:
    assert ctx.series is not None
    assert ctx.series.source is Source(source)


@then("the request is rejected as invalid")
def step_rejected(ctx: FallbackScenarioContext) -> None:
    assert isinstance(ctx.error, InvalidRequestError)


@then(parsers.parse("every metric has {count:d} ascending points one hour apart"))
def step_every_metric_hourly(ctx: FallbackScenarioContext, count: int) -> None:
    assert tuple(ctx.history) == METRIC_NAMES
    for series in ctx.history.values():
        stamps = [point.timestamp for point in series.points]
        assert len(stamps) == count
        assert all(b - a == HOUR for a, b in zip(stamps, stamps[1:], strict=False))


@then("every point is within its metric limits")
def step_every_point_limits(ctx: FallbackScenarioContext) -> None:
    for metric, series in ctx.history.items():
        for point in series.points:
            assert point.value >= 0
            if metric == "packet_loss":
                assert point.value <= PACKET_LOSS_CAP


@then(parsers.parse('every series source is "{source}"'))
def step_every_series_source(ctx: FallbackScenarioContext, source: str) -> None:
    assert all(s.source is Source(source) for s in ctx.history.values())
