"""Thread-safe in-memory counters for one client operation."""

from __future__ import annotations

import time
from threading import RLock
from typing import Any, Dict, Optional

from .latency_stats_snapshot import LatencyStatsSnapshot
from .operation_counters_snapshot import OperationCountersSnapshot


class OperationCounters:
    """Lifecycle, latency and token counters for one operation name.

    Every ``record_start`` is balanced by exactly one of ``record_success``,
    ``record_failure``, ``record_cancelled`` or ``record_timeout``.
    """

    __slots__ = (
        "_operation",
        "_lock",
        "_total",
        "_success",
        "_failure",
        "_cancelled",
        "_timeout",
        "_in_flight",
        "_failure_by_kind",
        "_prompt_tokens",
        "_completion_tokens",
        "_latency_count",
        "_latency_total",
        "_latency_min",
        "_latency_max",
    )

    def __init__(self, operation: str):
        self._operation = operation
        self._lock = RLock()
        self._reset_locked()
        self._in_flight = 0

    @staticmethod
    def monotonic_ms() -> int:
        return int(time.monotonic() * 1000)

    @property
    def operation(self) -> str:
        return self._operation

    # -------------------------- Record Methods -------------------------- #
    def record_start(self) -> None:
        with self._lock:
            self._total += 1
            self._in_flight += 1

    def record_success(self, latency_ms: int) -> None:
        with self._lock:
            self._success += 1
            self._in_flight = max(0, self._in_flight - 1)
            self._update_latency(latency_ms)

    def record_failure(self, error_kind: str, latency_ms: Optional[int] = None) -> None:
        """Record a failed call under ``error_kind``; latency is optional."""
        with self._lock:
            self._failure += 1
            self._failure_by_kind[error_kind] = self._failure_by_kind.get(error_kind, 0) + 1
            self._in_flight = max(0, self._in_flight - 1)
            if latency_ms is not None:
                self._update_latency(latency_ms)

    def record_cancelled(self) -> None:
        with self._lock:
            self._cancelled += 1
            self._in_flight = max(0, self._in_flight - 1)

    def record_timeout(self) -> None:
        with self._lock:
            self._timeout += 1
            self._in_flight = max(0, self._in_flight - 1)

    def record_tokens(self, prompt_tokens: int, completion_tokens: int) -> None:
        with self._lock:
            self._prompt_tokens += max(0, prompt_tokens)
            self._completion_tokens += max(0, completion_tokens)

    def _update_latency(self, latency_ms: int) -> None:
        if latency_ms < 0:
            return
        if self._latency_min is None or latency_ms < self._latency_min:
            self._latency_min = latency_ms
        if self._latency_max is None or latency_ms > self._latency_max:
            self._latency_max = latency_ms
        self._latency_count += 1
        self._latency_total += latency_ms

    def _reset_locked(self) -> None:
        # in_flight survives resets: those calls are still running.
        self._total = 0
        self._success = 0
        self._failure = 0
        self._cancelled = 0
        self._timeout = 0
        self._failure_by_kind: Dict[str, int] = {}
        self._prompt_tokens = 0
        self._completion_tokens = 0
        self._latency_count = 0
        self._latency_total = 0
        self._latency_min: Optional[int] = None
        self._latency_max: Optional[int] = None

    # -------------------------- Snapshot API -------------------------- #
    def snapshot(self, reset: bool = False) -> OperationCountersSnapshot:
        """Return an immutable snapshot, optionally zeroing the counters."""
        with self._lock:
            avg_ms = self._latency_total / self._latency_count if self._latency_count else None
            snapshot = OperationCountersSnapshot(
                operation=self._operation,
                total=self._total,
                success=self._success,
                failure=self._failure,
                cancelled=self._cancelled,
                timeout=self._timeout,
                in_flight=self._in_flight,
                failure_by_kind=dict(self._failure_by_kind),
                prompt_tokens=self._prompt_tokens,
                completion_tokens=self._completion_tokens,
                total_tokens=self._prompt_tokens + self._completion_tokens,
                latency=LatencyStatsSnapshot(
                    count=self._latency_count,
                    total_ms=self._latency_total,
                    min_ms=self._latency_min,
                    max_ms=self._latency_max,
                    avg_ms=avg_ms,
                ),
                generated_at_ms=self.monotonic_ms(),
            )
            if reset:
                self._reset_locked()
            return snapshot

    def as_dict(self, reset: bool = False) -> Dict[str, Any]:
        return self.snapshot(reset=reset).to_dict()


__all__ = ["OperationCounters"]
