"""Unit tests for health thresholds and daily summaries."""

import pytest

from netwatch.core.history import HOUR
from netwatch.core.models import MetricSnapshot
from netwatch.core.summary import assess, summarize_daily
from tests.fakes import NOW


def _reading(**fields: float) -> MetricSnapshot:
    values = {
        "timestamp": NOW,
        "latency_ms": 30.0,
        "packet_loss_pct": 0.2,
        "download_mbps": 80.0,
        "upload_mbps": 20.0,
    }
    values.update(fields)
    return MetricSnapshot(interface="eth0", **values)


class TestAssess:
    """Tests for assess()."""

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_healthy_reading(self) -> None:
        assessment = assess(_reading())
        assert assessment.status == "good"
        assert assessment.issues == ()

    @pytest.mark.core
    @pytest.mark.tier(0)
    @pytest.mark.parametrize(
        "fields",
        [{"latency_ms": 150.0}, {"packet_loss_pct": 2.0}],
    )
    def test_degraded(self, fields: dict[str, float]) -> None:
        """Latency over 100 ms or loss over 1% degrades the link."""
        assessment = assess(_reading(**fields))
        assert assessment.status == "degraded"
        assert len(assessment.issues) == 1

    @pytest.mark.core
    @pytest.mark.tier(0)
    @pytest.mark.parametrize(
        "fields",
        [{"latency_ms": 250.0}, {"packet_loss_pct": 4.0}, {"download_mbps": 2.5}],
    )
    def test_poor(self, fields: dict[str, float]) -> None:
        """Any poor threshold makes the link poor."""
        assert assess(_reading(**fields)).status == "poor"

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_zero_download_is_not_poor(self) -> None:
        """A reading without throughput data is not judged on throughput."""
        assert assess(_reading(download_mbps=0.0)).status == "good"

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_poor_lists_every_issue(self) -> None:
        """Poor readings also report degraded metrics."""
        assessment = assess(_reading(latency_ms=250.0, packet_loss_pct=2.0))
        assert assessment.status == "poor"
        assert assessment.issues == ("latency 250.0 ms", "packet loss 2.00%")

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_boundaries_are_exclusive(self) -> None:
        """Exactly 100 ms and 1% loss are still good."""
        assert assess(_reading(latency_ms=100.0, packet_loss_pct=1.0)).status == (
            "good"
        )


class TestSummarizeDaily:
    """Tests for summarize_daily()."""

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_groups_by_utc_day_newest_first(self) -> None:
        """Readings are grouped per calendar day, most recent day first."""
        readings = [
            _reading(timestamp=NOW),
            _reading(timestamp=NOW - HOUR),
            _reading(timestamp=NOW - 24 * HOUR),
        ]
        summaries = summarize_daily(readings)
        assert [s.date for s in summaries] == ["2024-03-05", "2024-03-04"]
        assert [s.samples for s in summaries] == [2, 1]

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_averages(self) -> None:
        """Averages are rounded to two decimals; speed is download plus upload."""
        readings = [
            _reading(latency_ms=30.0, packet_loss_pct=0.1),
            _reading(timestamp=NOW - HOUR, latency_ms=45.0, packet_loss_pct=0.3),
        ]
        [summary] = summarize_daily(readings)
        assert summary.avg_latency_ms == 37.5
        assert summary.avg_packet_loss_pct == 0.2
        assert summary.avg_speed_mbps == 100.0

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_counts_critical_events(self) -> None:
        """Poor readings count as critical events."""
        readings = [_reading(latency_ms=250.0), _reading(), _reading(download_mbps=1)]
        [summary] = summarize_daily(readings)
        assert summary.critical_events == 2

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_to_dict_uses_dashboard_keys(self) -> None:
        [summary] = summarize_daily([_reading()])
        assert summary.to_dict() == {
            "date": "2024-03-05",
            "avgLatency": 30.0,
            "avgPacketLoss": 0.2,
            "avgSpeed": 100.0,
            "criticalEvents": 0,
            "samples": 1,
        }

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_empty_input(self) -> None:
        assert summarize_daily([]) == []
