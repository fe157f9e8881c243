"""Tiered metric retrieval: live source, then persisted data, then synthesis.

Environmental failures (timeouts, upstream errors, unreadable payloads,
storage errors) are logged and degrade to the next tier. Only invalid caller
input raises, as InvalidRequestError.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from netwatch.core.cache import SnapshotCache
from netwatch.core.errors import InvalidRequestError, MetricsLogError
from netwatch.core.history import (
    HOUR,
    series_to_snapshots,
    synthesize_interface,
    synthesize_metric,
    synthesize_snapshot,
    validate_metric,
    validate_window,
)
from netwatch.core.models import (
    DEFAULT_INTERFACE,
    METRIC_NAMES,
    DailySummary,
    MetricLogEntry,
    MetricSeries,
    MetricSnapshot,
    Source,
    TimeSeriesPoint,
)
from netwatch.core.normalize import has_metrics, normalize
from netwatch.core.patterns import NoiseSource, uniform_noise
from netwatch.core.ports import LiveSourcePort, MetricsLogPort
from netwatch.core.summary import summarize_daily

logger = logging.getLogger(__name__)

DEFAULT_LIVE_TIMEOUT = 4.0
DEFAULT_RECENT_SECONDS = 24 * HOUR
MAX_WINDOW_HOURS = 24 * 90


class MetricsOrchestrator:
    """Serves metrics and history without ever failing the dashboard.

    Args:
        metrics_log: Append-only log used as the persisted tier.
        live_source: Optional live probe or capture source.
        cache: Last good live snapshot per interface; a private one is
            created when omitted.
        live_timeout: Seconds to wait for the live source and for log reads.
        recent_seconds: How old a logged snapshot may be and still be served
            by get_metrics.
        noise: Noise source for synthesized values.
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        metrics_log: MetricsLogPort,
        live_source: LiveSourcePort | None = None,
        *,
        cache: SnapshotCache | None = None,
        live_timeout: float = DEFAULT_LIVE_TIMEOUT,
        recent_seconds: float = DEFAULT_RECENT_SECONDS,
        noise: NoiseSource = uniform_noise,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.metrics_log = metrics_log
        self.live_source = live_source
        self.cache = cache if cache is not None else SnapshotCache(clock=clock)
        self.live_timeout = live_timeout
        self.recent_seconds = recent_seconds
        self._noise = noise
        self.clock = clock

    # --- Reads ---

    async def get_metrics(
        self, interface: str | None = None, *, timeout: float | None = None
    ) -> MetricSnapshot:
        """Return the best available snapshot for an interface.

        None selects the default interface; every read filters on one name.
        """
        name = interface or DEFAULT_INTERFACE

        snapshot = await self._fetch_live(name, timeout)
        if snapshot is not None:
            return snapshot

        snapshot = self.cache.get(name)
        if snapshot is not None:
            logger.debug("Serving cached snapshot", extra={"interface": name})
            return replace(snapshot, source=Source.CACHE)

        now = self.clock()
        entries = await self._read_log(name, since=now - self.recent_seconds)
        if entries:
            logger.debug("Serving logged snapshot", extra={"interface": name})
            return replace(entries[0].snapshot, source=Source.CACHE)

        logger.info("Serving synthetic snapshot", extra={"interface": name})
        return synthesize_snapshot(name, now=now, noise=self._noise)

    async def get_history(
        self,
        interface: str | None = None,
        window_hours: int = 24,
        *,
        metric: str | None = None,
        interval_hours: int = 1,
    ) -> dict[str, MetricSeries]:
        """Return ascending series per metric for the last window_hours.

        Args:
            interface: Interface to report; None means the default interface,
                as in get_metrics().
            window_hours: Length of the window in hours.
            metric: Restrict the result to one metric.
            interval_hours: Spacing of synthesized points.

        Raises:
            InvalidRequestError: For a non-positive or oversized window, or
                an unknown metric.
        """
        self._check_window(window_hours, interval_hours)
        metrics = (validate_metric(metric),) if metric else METRIC_NAMES
        name = interface or DEFAULT_INTERFACE
        now = self.clock()

        entries = await self._read_log(name, since=now - window_hours * HOUR)
        if entries:
            return {m: self._series_from_log(m, name, entries) for m in metrics}

        if metric:
            return {
                metric: synthesize_metric(
                    metric,
                    window_hours,
                    interval_hours,
                    interface=name,
                    now=now,
                    noise=self._noise,
                )
            }
        return synthesize_interface(
            name, window_hours, interval_hours, now=now, noise=self._noise
        )

    async def get_interface_history(
        self,
        interface: str | None = None,
        days: int = 30,
        *,
        interval_hours: int = 3,
    ) -> list[MetricSnapshot]:
        """Return newest-first snapshots covering the last `days` days.

        None selects the default interface, as in get_metrics().
        """
        window_hours = days * 24
        self._check_window(window_hours, interval_hours, unit="days", value=days)
        name = interface or DEFAULT_INTERFACE
        now = self.clock()

        entries = await self._read_log(name, since=now - window_hours * HOUR)
        if entries:
            return [replace(e.snapshot, source=Source.CACHE) for e in entries]

        series = synthesize_interface(
            name,
            window_hours,
            interval_hours,
            now=now,
            noise=self._noise,
            descending=True,
        )
        return series_to_snapshots(series)

    async def daily_summaries(
        self, interface: str | None = None, days: int = 14
    ) -> list[DailySummary]:
        """Per-day averages over the interface history, newest day first."""
        snapshots = await self.get_interface_history(interface, days)
        return summarize_daily(snapshots)[:days]

    # --- Writes ---

    async def record_metrics(self, payload: Any) -> MetricSnapshot:
        """Normalize a submitted reading and append it to the log.

        Raises:
            MetricsLogError: If the log cannot be written.
        """
        snapshot = normalize(payload, now=self.clock())
        try:
            await self.metrics_log.append(snapshot)
        except MetricsLogError:
            raise
        except Exception as exc:
            raise MetricsLogError(f"Failed to record metrics: {exc}") from exc
        logger.debug(
            "Recorded snapshot",
            extra={"interface": snapshot.interface, "source": snapshot.source.value},
        )
        return snapshot

    # --- Tiers ---

    async def _fetch_live(
        self, interface: str, timeout: float | None
    ) -> MetricSnapshot | None:
        if self.live_source is None:
            return None
        limit = self.live_timeout if timeout is None else timeout
        try:
            raw = await asyncio.wait_for(self.live_source.fetch(interface), limit)
        except TimeoutError:
            logger.warning(
                "Live source timed out",
                extra={"interface": interface, "timeout": limit},
            )
            return None
        except Exception as exc:
            logger.warning(
                "Live source failed",
                extra={"interface": interface, "error": f"{type(exc).__name__}: {exc}"},
            )
            return None

        if not has_metrics(raw):
            logger.warning(
                "Live source returned no metrics", extra={"interface": interface}
            )
            return None

        snapshot = normalize(
            raw, source=Source.LIVE, interface=interface, now=self.clock()
        )
        self.cache.set(interface, snapshot)
        return snapshot

    async def _read_log(self, interface: str, since: float) -> list[MetricLogEntry]:
        try:
            return await asyncio.wait_for(
                self.metrics_log.query(interface, since), self.live_timeout
            )
        except Exception as exc:
            logger.warning(
                "Metrics log unavailable",
                extra={"interface": interface, "error": f"{type(exc).__name__}: {exc}"},
            )
            return []

    @staticmethod
    def _series_from_log(
        metric: str, interface: str, entries: list[MetricLogEntry]
    ) -> MetricSeries:
        points = sorted(
            (
                TimeSeriesPoint(e.snapshot.timestamp, e.snapshot.value_of(metric))
                for e in entries
            ),
            key=lambda point: point.timestamp,
        )
        return MetricSeries(
            metric=metric,
            interface=interface,
            points=tuple(points),
            source=Source.CACHE,
        )

    @staticmethod
    def _check_window(
        window_hours: int,
        interval_hours: int,
        *,
        unit: str = "hours",
        value: int | None = None,
    ) -> None:
        validate_window(window_hours, interval_hours)
        if window_hours > MAX_WINDOW_HOURS:
            shown = window_hours if value is None else value
            raise InvalidRequestError(
                f"{unit}={shown} exceeds the {MAX_WINDOW_HOURS // 24} day limit"
            )
