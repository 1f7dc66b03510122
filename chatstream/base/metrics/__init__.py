"""In-process metrics for client operations."""

from .counters import (
    LatencyStatsSnapshot,
    MetricsCollector,
    OperationCounters,
    OperationCountersSnapshot,
)

__all__ = [
    "LatencyStatsSnapshot",
    "MetricsCollector",
    "OperationCounters",
    "OperationCountersSnapshot",
]
