"""Parsing of capture-tool interval statistics.

The capture tool (tshark) prints a table like::

    | IO Statistics                |
    | Duration: 2.0 secs           |
    | Interval:  1 secs            |
    | Interval | Frames |  Bytes   |
    |  0 <> 1  |     12 |   3456   |
    |  1 <> Dur|      5 |    800   |

Only the frames/bytes columns are read; everything else is ignored.
"""

import re
from dataclasses import dataclass
from typing import Any

_DURATION_RE = re.compile(r"Duration:\s*([\d.]+)")


@dataclass(frozen=True)
class IoStatRow:
    """Frames and bytes seen during one capture interval."""

    interval: str
    frames: int
    bytes: int
    duration: float

    @property
    def bits_per_sec(self) -> float:
        return self.bytes * 8 / self.duration

    @property
    def packets_per_sec(self) -> float:
        return self.frames / self.duration

    @property
    def mbps(self) -> float:
        return self.bits_per_sec / 1_000_000

    def to_dict(self) -> dict[str, Any]:
        return {
            "interval": self.interval,
            "frames": self.frames,
            "bytes": self.bytes,
            "duration": self.duration,
            "mbps": self.mbps,
            "packetsPerSec": self.packets_per_sec,
        }


def _interval_duration(interval: str, total: float | None) -> float:
    start_raw, _, end_raw = interval.partition("<>")
    try:
        start = float(start_raw.strip())
    except ValueError:
        return 1.0
    end_raw = end_raw.strip()
    if end_raw == "Dur":
        end = total if total is not None else start + 1
    else:
        try:
            end = float(end_raw)
        except ValueError:
            return 1.0
    duration = end - start
    return duration if duration > 0 else 1.0


def parse_io_stat(output: str) -> list[IoStatRow]:
    """Parse the interval table of `tshark -q -z io,stat,<n>` output."""
    rows: list[IoStatRow] = []
    in_section = False
    in_table = False
    total: float | None = None

    for line in output.splitlines():
        if "IO Statistics" in line:
            in_section = True
            continue
        if not in_section:
            continue
        match = _DURATION_RE.search(line)
        if match and total is None:
            total = float(match.group(1))
            continue
        if "Interval" in line and "Frames" in line and "Bytes" in line:
            in_table = True
            continue
        if "===" in line and rows:
            break
        if not in_table or "<>" not in line:
            continue

        parts = [part.strip() for part in line.strip().strip("|").split("|")]
        if len(parts) < 3:
            continue
        try:
            frames = int(parts[1])
            size = int(parts[2])
        except ValueError:
            continue
        rows.append(
            IoStatRow(
                interval=parts[0],
                frames=frames,
                bytes=size,
                duration=_interval_duration(parts[0], total),
            )
        )
    return rows


def metrics_from_io_stats(rows: list[IoStatRow]) -> dict[str, float]:
    """Estimate latency, loss and throughput from the last capture interval."""
    if not rows:
        return {"latency": 0.0, "packetLoss": 0.0, "download": 0.0, "upload": 0.0}

    current = rows[-1]
    mbps = current.mbps
    latency = 20.0
    if mbps > 0:
        latency += 80 / (1 + mbps / 10)
    packet_loss = 0.1
    if current.packets_per_sec > 0:
        packet_loss += 0.5 if current.packets_per_sec > 1000 else 0.0
        packet_loss += 0.3 if mbps > 50 else 0.0

    return {
        "latency": round(latency, 1),
        "packetLoss": round(packet_loss, 2),
        "download": round(mbps * 0.7, 2),
        "upload": round(mbps * 0.3, 2),
    }
