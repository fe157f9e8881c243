"""Shared test fixtures for all test modules."""

import logging
from collections.abc import AsyncGenerator, Iterator
from pathlib import Path

import httpx
import pytest

from netwatch.adapters.storage.in_memory import InMemoryMetricsLog
from netwatch.adapters.storage.sqlite import SQLiteMetricsLog
from netwatch.core.cache import SnapshotCache
from netwatch.core.fallback import MetricsOrchestrator
from netwatch.core.patterns import zero_noise
from tests.fakes import FakeClock


@pytest.fixture(autouse=True)
def reset_netwatch_logger() -> Iterator[None]:
    """Undo configure_logging() so caplog sees netwatch records in every test."""
    yield
    logger = logging.getLogger("netwatch")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at 2024-03-05T12:00:00Z."""
    return FakeClock()


@pytest.fixture
def metrics_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for metrics log tests."""
    return str(tmp_path / "metrics.db")


@pytest.fixture
def metrics_log(clock: FakeClock) -> InMemoryMetricsLog:
    """Empty in-memory metrics log on the frozen clock."""
    return InMemoryMetricsLog(clock=clock)


@pytest.fixture
async def sqlite_metrics_log(
    metrics_db_path: str, clock: FakeClock
) -> AsyncGenerator[SQLiteMetricsLog]:
    """File-backed SQLite metrics log, closed after the test."""
    log = SQLiteMetricsLog(metrics_db_path, clock=clock)
    yield log
    await log.close()


@pytest.fixture
def make_orchestrator(clock: FakeClock, metrics_log: InMemoryMetricsLog):
    """Factory fixture building a deterministic orchestrator.

    Usage:
        async def test_something(make_orchestrator):
            orchestrator = make_orchestrator(live_source=StaticLiveSource({...}))
            snapshot = await orchestrator.get_metrics("eth0")
    """

    def _make(live_source=None, log=None, **kwargs) -> MetricsOrchestrator:
        kwargs.setdefault("cache", SnapshotCache(clock=clock))
        kwargs.setdefault("live_timeout", 0.2)
        return MetricsOrchestrator(
            metrics_log if log is None else log,
            live_source,
            noise=zero_noise,
            clock=clock,
            **kwargs,
        )

    return _make


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_app(settings, orchestrator)
            async with asgi_test_client(app) as client:
                response = await client.get("/api/network/metrics")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
