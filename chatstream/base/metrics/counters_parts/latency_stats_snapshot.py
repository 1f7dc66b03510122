"""Latency statistics snapshot dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LatencyStatsSnapshot:
    """Immutable snapshot of aggregated latency statistics.

    Attributes:
        count: Number of calls with a recorded latency.
        total_ms: Sum of observed latencies in milliseconds.
        min_ms: Smallest observed latency, or None without samples.
        max_ms: Largest observed latency, or None without samples.
        avg_ms: Arithmetic mean, or None without samples.
    """

    count: int
    total_ms: int
    min_ms: Optional[int]
    max_ms: Optional[int]
    avg_ms: Optional[float]


__all__ = ["LatencyStatsSnapshot"]
