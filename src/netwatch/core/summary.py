"""Threshold checks and per-day averages over snapshots."""

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timezone

from netwatch.core.models import DailySummary, HealthAssessment, MetricSnapshot

DEGRADED_LATENCY_MS = 100.0
DEGRADED_PACKET_LOSS_PCT = 1.0
POOR_LATENCY_MS = 200.0
POOR_PACKET_LOSS_PCT = 3.0
POOR_DOWNLOAD_MBPS = 5.0


def assess(snapshot: MetricSnapshot) -> HealthAssessment:
    """Classify a reading as good, degraded or poor."""
    poor: list[str] = []
    degraded: list[str] = []

    if snapshot.latency_ms > POOR_LATENCY_MS:
        poor.append(f"latency {snapshot.latency_ms:.1f} ms")
    elif snapshot.latency_ms > DEGRADED_LATENCY_MS:
        degraded.append(f"latency {snapshot.latency_ms:.1f} ms")

    if snapshot.packet_loss_pct > POOR_PACKET_LOSS_PCT:
        poor.append(f"packet loss {snapshot.packet_loss_pct:.2f}%")
    elif snapshot.packet_loss_pct > DEGRADED_PACKET_LOSS_PCT:
        degraded.append(f"packet loss {snapshot.packet_loss_pct:.2f}%")

    # Zero means the source reported no throughput at all
    if 0 < snapshot.download_mbps < POOR_DOWNLOAD_MBPS:
        poor.append(f"download {snapshot.download_mbps:.1f} Mbps")

    if poor:
        return HealthAssessment(status="poor", issues=tuple(poor + degraded))
    if degraded:
        return HealthAssessment(status="degraded", issues=tuple(degraded))
    return HealthAssessment(status="good")


def _mean(values: list[float]) -> float:
    return round(sum(values) / len(values), 2) if values else 0.0


def summarize_daily(snapshots: Iterable[MetricSnapshot]) -> list[DailySummary]:
    """Group snapshots by UTC date and average them, newest day first."""
    by_day: dict[str, list[MetricSnapshot]] = defaultdict(list)
    for snapshot in snapshots:
        day = datetime.fromtimestamp(snapshot.timestamp, tz=timezone.utc).date()
        by_day[day.isoformat()].append(snapshot)

    summaries = []
    for day in sorted(by_day, reverse=True):
        rows = by_day[day]
        summaries.append(
            DailySummary(
                date=day,
                avg_latency_ms=_mean([r.latency_ms for r in rows]),
                avg_packet_loss_pct=_mean([r.packet_loss_pct for r in rows]),
                avg_speed_mbps=_mean([r.download_mbps + r.upload_mbps for r in rows]),
                critical_events=sum(1 for r in rows if assess(r).status == "poor"),
                samples=len(rows),
            )
        )
    return summaries
