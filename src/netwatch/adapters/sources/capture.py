"""Live source that runs the packet capture tool for a short window."""

import asyncio
import logging
import re
from collections.abc import Mapping
from typing import Any

from netwatch.core.capture import parse_io_stat
from netwatch.core.errors import LiveSourceError

logger = logging.getLogger(__name__)

# Interface names as the capture tool accepts them (eth0, wlp2s0, en0.100, any)
_INTERFACE_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:@-]{0,63}$")


class CaptureSource:
    """Implementation of LiveSourcePort using tshark interval statistics.

    Runs ``tshark -i <iface> -a duration:<n> -q -z io,stat,1`` and returns
    ``{"interface": ..., "ioStats": [...]}``. The process is killed if the
    caller times out or is cancelled.

    Args:
        command: Capture executable.
        seconds: Capture duration per fetch.
    """

    def __init__(self, command: str = "tshark", seconds: int = 2) -> None:
        self._command = command
        self._seconds = seconds

    def build_args(self, interface: str) -> list[str]:
        if not _INTERFACE_RE.match(interface):
            raise LiveSourceError(f"Refusing to capture on interface {interface!r}")
        return [
            "-i",
            interface,
            "-a",
            f"duration:{self._seconds}",
            "-q",
            "-z",
            "io,stat,1",
        ]

    async def fetch(self, interface: str) -> Mapping[str, Any] | None:
        """Capture for a few seconds and return the parsed interval rows.

        Raises:
            LiveSourceError: If the tool is missing or exits non-zero.
        """
        args = self.build_args(interface)
        try:
            process = await asyncio.create_subprocess_exec(
                self._command,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise LiveSourceError(f"Cannot start {self._command}: {exc}") from exc

        try:
            stdout, stderr = await process.communicate()
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip()[:500]
            raise LiveSourceError(
                f"{self._command} exited with {process.returncode}: {message}"
            )

        rows = parse_io_stat(stdout.decode(errors="replace"))
        logger.debug(
            "Parsed capture statistics",
            extra={"interface": interface, "rows": len(rows)},
        )
        if not rows:
            return None
        return {"interface": interface, "ioStats": [row.to_dict() for row in rows]}
