"""Bounded-concurrency dispatch of many requests."""

from .limiter import ConcurrencyLimiter
from .dispatcher import ConcurrentDispatcher, DispatchResult, ResultChannel
from .batch import BatchProcessor

__all__ = [
    "ConcurrencyLimiter",
    "ConcurrentDispatcher",
    "DispatchResult",
    "ResultChannel",
    "BatchProcessor",
]
