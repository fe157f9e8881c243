"""FastAPI adapter for the network dashboard endpoints."""

from typing import Any

from fastapi import APIRouter, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse

from netwatch.core.errors import InvalidRequestError, MetricsLogError
from netwatch.core.fallback import MAX_WINDOW_HOURS, MetricsOrchestrator
from netwatch.core.models import DEFAULT_INTERFACE, Source, format_timestamp
from netwatch.core.summary import assess

MAX_DAYS = MAX_WINDOW_HOURS // 24


def _overall_source(sources: set[Source]) -> str:
    if len(sources) == 1:
        return next(iter(sources)).value
    return Source.CACHE.value if sources else Source.SYNTHETIC.value


def create_network_router(orchestrator: MetricsOrchestrator) -> APIRouter:
    """Create a FastAPI router serving current metrics, history and summaries.

    Args:
        orchestrator: Fallback orchestrator every endpoint reads through.

    Returns:
        APIRouter with the /api/network and /api/metrics endpoints configured.
    """
    router = APIRouter()

    @router.get("/api/network/metrics")
    async def get_metrics(
        interface: str | None = Query(default=None, max_length=64),
        since: float | None = Query(default=None, ge=0),
    ) -> Response:
        """Return the current snapshot for an interface.

        Args:
            interface: Interface name; the default interface when omitted.
            since: Unix timestamp. Answers 304 when nothing newer exists.
        """
        snapshot = await orchestrator.get_metrics(interface)
        if since is not None and since >= snapshot.timestamp:
            return Response(status_code=304)
        return JSONResponse(snapshot.to_dict())

    @router.get("/api/network/metrics/history", response_model=None)
    async def get_metrics_history(
        metric: str | None = Query(default=None),
        hours: int = Query(default=24, ge=1, le=MAX_WINDOW_HOURS),
        interface: str | None = Query(default=None, max_length=64),
    ) -> list[dict[str, Any]] | dict[str, Any]:
        """Return hourly series; a bare point list when metric is given."""
        series = await orchestrator.get_history(interface, hours, metric=metric)
        if metric:
            return series[metric].to_list()
        return {
            "interface": interface or DEFAULT_INTERFACE,
            "source": _overall_source({s.source for s in series.values()}),
            "series": {name: s.to_list() for name, s in series.items()},
        }

    @router.get("/api/network/interfaces/history")
    async def get_interface_history(
        interface: str | None = Query(default=None, max_length=64),
        days: int = Query(default=30, ge=1, le=MAX_DAYS),
    ) -> dict[str, Any]:
        """Return the newest-first activity log of an interface."""
        snapshots = await orchestrator.get_interface_history(interface, days)
        return {
            "history": [s.to_dict() for s in snapshots],
            "count": len(snapshots),
            "timestamp": format_timestamp(orchestrator.clock()),
            "source": _overall_source({s.source for s in snapshots}),
        }

    @router.get("/api/network/summary")
    async def get_summary(
        interface: str | None = Query(default=None, max_length=64),
        days: int = Query(default=14, ge=1, le=MAX_DAYS),
    ) -> dict[str, Any]:
        """Return per-day averages, newest day first."""
        summaries = await orchestrator.daily_summaries(interface, days)
        return {
            "interface": interface or DEFAULT_INTERFACE,
            "days": [s.to_dict() for s in summaries],
        }

    @router.get("/api/network/health")
    async def get_health(
        interface: str | None = Query(default=None, max_length=64),
    ) -> dict[str, Any]:
        """Return the current snapshot with its threshold verdict."""
        snapshot = await orchestrator.get_metrics(interface)
        return {"metrics": snapshot.to_dict(), **assess(snapshot).to_dict()}

    @router.post("/api/metrics")
    async def post_metrics(request: Request) -> dict[str, Any]:
        """Record a reading submitted by a probe or the dashboard."""
        try:
            payload = await request.json()
        except ValueError as exc:
            raise InvalidRequestError("Request body must be JSON") from exc
        if not isinstance(payload, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        snapshot = await orchestrator.record_metrics(payload)
        return {"success": True, "data": snapshot.to_dict()}

    @router.get("/api/metrics")
    async def get_logged_metrics(
        interface: str | None = Query(default=None, max_length=64),
        since: float = Query(default=0, ge=0),
    ) -> dict[str, Any]:
        """Return logged readings newer than since, newest first.

        Args:
            interface: Restrict to one interface; every interface when omitted.
            since: Unix timestamp. Returns entries with timestamp > since.
        """
        entries = await orchestrator.metrics_log.query(interface, since)
        return {"data": [e.to_dict() for e in entries]}

    return router


def add_error_handlers(app: FastAPI) -> None:
    """Map netwatch errors onto JSON error responses.

    InvalidRequestError becomes 400 and MetricsLogError becomes 503.
    """

    @app.exception_handler(InvalidRequestError)
    async def invalid_request(request: Request, exc: InvalidRequestError) -> Response:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(MetricsLogError)
    async def log_unavailable(request: Request, exc: MetricsLogError) -> Response:
        return JSONResponse(
            status_code=503, content={"error": "Metrics log unavailable"}
        )
