"""Registry of :class:`OperationCounters` keyed by operation name."""

from __future__ import annotations

from threading import Lock
from typing import Dict

from .operation_counters import OperationCounters
from .operation_counters_snapshot import OperationCountersSnapshot


class MetricsCollector:
    """Lazily creates one counters object per operation name."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: Dict[str, OperationCounters] = {}

    def counters(self, operation: str) -> OperationCounters:
        with self._lock:
            found = self._counters.get(operation)
            if found is None:
                found = self._counters[operation] = OperationCounters(operation)
            return found

    def snapshot(self, reset: bool = False) -> Dict[str, OperationCountersSnapshot]:
        with self._lock:
            items = list(self._counters.items())
        return {name: counters.snapshot(reset=reset) for name, counters in items}


__all__ = ["MetricsCollector"]
