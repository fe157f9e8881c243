"""Live sources implementing LiveSourcePort."""

from netwatch.adapters.sources.capture import CaptureSource
from netwatch.adapters.sources.http_probe import HTTPProbeSource
from netwatch.adapters.sources.retry import exponential_backoff, with_retry

__all__ = [
    "CaptureSource",
    "HTTPProbeSource",
    "exponential_backoff",
    "with_retry",
]
