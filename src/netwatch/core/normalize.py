"""Conversion of upstream metric payloads into MetricSnapshot.

Upstream shapes seen in practice:

* canonical: ``{"latencyMs", "packetLossPct", "downloadMbps", "uploadMbps", ...}``
* probe: ``{"latency", "packetLoss", "download", "upload", "timestamp"}``
* third party: ``{"latency", "packetLoss", "downloadSpeed", "uploadSpeed"}``,
  optionally nested under ``"metrics"``
* capture: ``{"ioStats": [...]}`` rows or ``{"output": "<tshark text>"}``

normalize() never raises; anything it cannot read becomes 0.
"""

import math
import time
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Any

from netwatch.core.capture import IoStatRow, metrics_from_io_stats, parse_io_stat
from netwatch.core.models import DEFAULT_INTERFACE, MetricSnapshot, Source


class UpstreamShape(str, Enum):
    CANONICAL = "canonical"
    PROBE = "probe"
    THIRD_PARTY = "third_party"
    CAPTURE = "capture"


LATENCY_KEYS = ("latencyMs", "latency_ms", "latency", "avgLatency", "ping")
PACKET_LOSS_KEYS = (
    "packetLossPct",
    "packet_loss_pct",
    "packetLoss",
    "packet_loss",
    "avgPacketLoss",
    "loss",
)
DOWNLOAD_KEYS = (
    "downloadMbps",
    "download_mbps",
    "download",
    "downloadSpeed",
    "download_speed",
)
UPLOAD_KEYS = ("uploadMbps", "upload_mbps", "upload", "uploadSpeed", "upload_speed")
TIMESTAMP_KEYS = ("timestamp", "time", "created_at", "createdAt")
INTERFACE_KEYS = ("interface", "interfaceName", "interface_name")

_CANONICAL_KEYS = frozenset(
    {"latencyMs", "packetLossPct", "downloadMbps", "uploadMbps"}
)
_THIRD_PARTY_KEYS = frozenset({"downloadSpeed", "uploadSpeed"})
_CAPTURE_KEYS = frozenset({"ioStats", "output"})
_METRIC_KEYS = frozenset(LATENCY_KEYS + PACKET_LOSS_KEYS + DOWNLOAD_KEYS + UPLOAD_KEYS)

# Above this an epoch value is taken to be milliseconds
_MS_THRESHOLD = 1e11

# How far past now a reading may be stamped before it is treated as unreadable
MAX_CLOCK_SKEW = 300.0


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _first(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _metric(
    raw: Mapping[str, Any], keys: tuple[str, ...], upper: float | None = None
) -> float:
    number = _to_float(_first(raw, keys))
    if number is None or number < 0:
        return 0.0
    if upper is not None:
        number = min(number, upper)
    return number


def parse_timestamp(
    value: Any, default: float, latest: float | None = None
) -> float:
    """Read seconds, milliseconds, ISO-8601 strings or datetimes.

    Negative, unreadable and (when latest is given) later-than-latest values
    return default.
    """
    number = _read_timestamp(value)
    if number is None or number < 0:
        return default
    if latest is not None and number > latest:
        return default
    return number


def _read_timestamp(value: Any) -> float | None:
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp()
        except ValueError:
            pass
    number = _to_float(value)
    if number is None:
        return None
    return number / 1000 if number > _MS_THRESHOLD else number


def _unwrap(raw: Any) -> Mapping[str, Any] | None:
    if isinstance(raw, MetricSnapshot):
        return None
    if not isinstance(raw, Mapping):
        return None
    nested = raw.get("metrics")
    if isinstance(nested, Mapping):
        return {**{k: v for k, v in raw.items() if k != "metrics"}, **nested}
    return raw


def detect_shape(raw: Any) -> UpstreamShape:
    """Guess which upstream produced a payload."""
    if isinstance(raw, MetricSnapshot):
        return UpstreamShape.CANONICAL
    data = _unwrap(raw)
    if data is None:
        return UpstreamShape.PROBE
    keys = set(data)
    if keys & _CANONICAL_KEYS:
        return UpstreamShape.CANONICAL
    if keys & _CAPTURE_KEYS:
        return UpstreamShape.CAPTURE
    if keys & _THIRD_PARTY_KEYS:
        return UpstreamShape.THIRD_PARTY
    return UpstreamShape.PROBE


def has_metrics(raw: Any) -> bool:
    """True if the payload carries at least one recognised numeric metric."""
    if isinstance(raw, MetricSnapshot):
        return True
    data = _unwrap(raw)
    if not data:
        return False
    if detect_shape(data) is UpstreamShape.CAPTURE:
        return bool(_capture_rows(data))
    return any(
        _to_float(data.get(key)) is not None for key in _METRIC_KEYS if key in data
    )


def _capture_rows(data: Mapping[str, Any]) -> list[IoStatRow]:
    stats = data.get("ioStats")
    if isinstance(stats, list):
        rows = []
        for item in stats:
            if isinstance(item, IoStatRow):
                rows.append(item)
            elif isinstance(item, Mapping):
                frames = _to_float(item.get("frames"))
                size = _to_float(item.get("bytes"))
                duration = _to_float(item.get("duration")) or 1.0
                if frames is None or size is None:
                    continue
                rows.append(
                    IoStatRow(
                        interval=str(item.get("interval", "")),
                        frames=int(frames),
                        bytes=int(size),
                        duration=duration if duration > 0 else 1.0,
                    )
                )
        return rows
    output = data.get("output")
    if isinstance(output, str):
        return parse_io_stat(output)
    return []


def _resolve_source(
    data: Mapping[str, Any], shape: UpstreamShape, explicit: Source | None
) -> Source:
    if explicit is not None:
        return explicit
    if shape is UpstreamShape.CANONICAL:
        try:
            return Source(data.get("source"))
        except ValueError:
            pass
    if data.get("isMockData") is True or data.get("isSynthetic") is True:
        return Source.SYNTHETIC
    return Source.LIVE


def normalize(
    raw: Any,
    expected_shape: UpstreamShape | None = None,
    *,
    source: Source | None = None,
    interface: str | None = None,
    now: float | None = None,
) -> MetricSnapshot:
    """Map an upstream payload onto the canonical MetricSnapshot.

    Args:
        raw: Payload in any supported shape, or an existing MetricSnapshot.
        expected_shape: Shape to parse as; detected when None.
        source: Force the resulting source tier.
        interface: Interface to use when the payload names none.
        now: Timestamp used when the payload carries none.

    Returns:
        A well-formed snapshot; unreadable numeric fields default to 0.
    """
    default_ts = time.time() if now is None else now

    if isinstance(raw, MetricSnapshot):
        if source is None or source is raw.source:
            return raw
        return replace(raw, source=source)

    shape = expected_shape or detect_shape(raw)
    data: Mapping[str, Any] = _unwrap(raw) or {}

    if shape is UpstreamShape.CAPTURE:
        estimated = metrics_from_io_stats(_capture_rows(data))
        values: Mapping[str, Any] = {**data, **estimated}
    else:
        values = data

    name = _first(data, INTERFACE_KEYS)
    return MetricSnapshot(
        timestamp=parse_timestamp(
            _first(data, TIMESTAMP_KEYS),
            default_ts,
            latest=default_ts + MAX_CLOCK_SKEW,
        ),
        interface=str(name) if name else (interface or DEFAULT_INTERFACE),
        latency_ms=_metric(values, LATENCY_KEYS),
        packet_loss_pct=_metric(values, PACKET_LOSS_KEYS, upper=100.0),
        download_mbps=_metric(values, DOWNLOAD_KEYS),
        upload_mbps=_metric(values, UPLOAD_KEYS),
        source=_resolve_source(data, shape, source),
    )
