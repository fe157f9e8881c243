"""Metrics log adapters implementing MetricsLogPort."""

from netwatch.adapters.storage.in_memory import InMemoryMetricsLog
from netwatch.adapters.storage.sqlite import SQLiteMetricsLog

__all__ = [
    "InMemoryMetricsLog",
    "SQLiteMetricsLog",
]
