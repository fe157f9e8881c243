"""Application factory wiring settings, storage and live sources together.

Run with:
    uvicorn netwatch.app:create_app --factory
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from netwatch.adapters.frameworks.fastapi import (
    add_error_handlers,
    create_network_router,
)
from netwatch.adapters.logging import configure_logging
from netwatch.adapters.sources import CaptureSource, HTTPProbeSource
from netwatch.adapters.storage import InMemoryMetricsLog, SQLiteMetricsLog
from netwatch.config import Settings
from netwatch.core.cache import SnapshotCache
from netwatch.core.errors import ConfigError
from netwatch.core.fallback import MetricsOrchestrator
from netwatch.core.ports import LiveSourcePort, MetricsLogPort

logger = logging.getLogger(__name__)


def build_metrics_log(settings: Settings) -> MetricsLogPort:
    """In-memory log for ":memory:", SQLite file otherwise."""
    if settings.log_path == ":memory:":
        return InMemoryMetricsLog(retention_seconds=settings.retention_seconds)
    return SQLiteMetricsLog(
        settings.log_path, retention_seconds=settings.retention_seconds
    )


def build_live_source(settings: Settings) -> LiveSourcePort | None:
    if settings.live_mode == "probe":
        if not settings.probe_url:
            raise ConfigError("live_mode=probe requires probe_url")
        return HTTPProbeSource(
            settings.probe_url,
            api_key=settings.probe_api_key,
            max_retries=settings.probe_retries,
        )
    if settings.live_mode == "capture":
        return CaptureSource(
            settings.capture_command, seconds=settings.capture_seconds
        )
    return None


def build_orchestrator(settings: Settings) -> MetricsOrchestrator:
    return MetricsOrchestrator(
        build_metrics_log(settings),
        build_live_source(settings),
        cache=SnapshotCache(
            max_size=settings.cache_size, ttl_seconds=settings.cache_ttl
        ),
        live_timeout=settings.live_timeout,
    )


def create_app(
    settings: Settings | None = None,
    orchestrator: MetricsOrchestrator | None = None,
) -> FastAPI:
    """Create the dashboard API.

    Args:
        settings: Runtime settings; read from the environment when omitted.
        orchestrator: Prebuilt orchestrator, mainly for tests. Built from
            settings when omitted.

    Returns:
        FastAPI app whose lifespan closes the metrics log and live source.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    orchestrator = orchestrator or build_orchestrator(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Starting netwatch",
            extra={"live_mode": settings.live_mode, "log_path": settings.log_path},
        )
        try:
            yield
        finally:
            if isinstance(orchestrator.live_source, HTTPProbeSource):
                await orchestrator.live_source.aclose()
            close = getattr(orchestrator.metrics_log, "close", None)
            if close is not None:
                await close()

    app = FastAPI(title="netwatch", lifespan=lifespan)
    app.state.orchestrator = orchestrator
    app.state.settings = settings
    app.include_router(create_network_router(orchestrator))
    add_error_handlers(app)
    return app
