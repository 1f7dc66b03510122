"""One-class-per-file parts for operation counters."""

from .latency_stats_snapshot import LatencyStatsSnapshot
from .metrics_collector import MetricsCollector
from .operation_counters import OperationCounters
from .operation_counters_snapshot import OperationCountersSnapshot

__all__ = [
    "LatencyStatsSnapshot",
    "MetricsCollector",
    "OperationCounters",
    "OperationCountersSnapshot",
]
