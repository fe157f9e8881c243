"""Example netwatch dashboard backend with a background sampler.

Run with:
    uvicorn examples.fastapi_example:app --reload

Endpoints:
    /api/network/metrics              - Current reading (live, cache or synthetic)
    /api/network/metrics/history      - Hourly series per metric
    /api/network/interfaces/history   - 3-hourly snapshots, newest first
    /api/network/summary              - Daily averages
    /api/network/health               - Health assessment of the current reading
    /api/metrics                      - POST a reading, GET the metrics log

Sampling:
    Live readings come from a short tshark capture. Every SAMPLE_SECONDS a
    live reading for SAMPLED_INTERFACE is appended to the metrics
    log, so history endpoints switch from synthetic data to recorded
    readings once the app has been running for a while.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI

from netwatch.app import build_orchestrator, create_app
from netwatch.config import Settings
from netwatch.core.errors import MetricsLogError
from netwatch.core.fallback import MetricsOrchestrator
from netwatch.core.models import Source

SAMPLE_SECONDS = 60.0
SAMPLED_INTERFACE = "eth0"

logger = logging.getLogger("netwatch.example")

settings = Settings(
    log_path="netwatch-example.db", live_mode="capture", log_level="DEBUG"
)
orchestrator = build_orchestrator(settings)
app = create_app(settings, orchestrator)


async def sample_once(orchestrator: MetricsOrchestrator, interface: str) -> bool:
    """Append the current reading if it came from the live source.

    Cached and synthetic readings are skipped so the log never records the
    same reading twice. Returns whether a reading was written.
    """
    snapshot = await orchestrator.get_metrics(interface)
    if snapshot.source is not Source.LIVE:
        return False
    try:
        await orchestrator.metrics_log.append(snapshot)
    except MetricsLogError as exc:
        logger.warning(
            "Could not record sampled reading",
            extra={"interface": interface, "error": str(exc)},
        )
        return False
    logger.info("Sampled reading", extra={"interface": interface})
    return True


async def sample_forever() -> None:
    """Record the current reading on a fixed cadence."""
    while True:
        await sample_once(orchestrator, SAMPLED_INTERFACE)
        await asyncio.sleep(SAMPLE_SECONDS)


app_lifespan = app.router.lifespan_context


@contextlib.asynccontextmanager
async def lifespan_with_sampler(app: FastAPI) -> AsyncIterator[None]:
    """Run the sampler for as long as the app is serving."""
    async with app_lifespan(app):
        sampler = asyncio.create_task(sample_forever())
        try:
            yield
        finally:
            sampler.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sampler


app.router.lifespan_context = lifespan_with_sampler
