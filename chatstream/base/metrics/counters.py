"""Operation counters and aggregated timing.

Re-exports the implementations under ``metrics/counters_parts`` so callers
have one stable import path.
"""

from .counters_parts import (
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
