"""Point-in-time view of one operation's counters."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .latency_stats_snapshot import LatencyStatsSnapshot


@dataclass(frozen=True)
class OperationCountersSnapshot:
    """Immutable snapshot of :class:`OperationCounters`.

    ``failure_by_kind`` is keyed by ``ErrorKind`` value. Token totals add up
    the ``usage`` blocks reported by successful calls.
    """

    operation: str
    total: int
    success: int
    failure: int
    cancelled: int
    timeout: int
    in_flight: int
    failure_by_kind: Dict[str, int]
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    latency: LatencyStatsSnapshot
    generated_at_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["OperationCountersSnapshot"]
