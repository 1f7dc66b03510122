"""Resilience wrappers for single-shot calls: retry executor and circuit breaker."""

from .retry import DEFAULT_RETRY_POLICY, RetryExecutor, RetryPolicy, retry
from .circuit_breaker import CircuitBreaker, CircuitSnapshot, CircuitState

__all__ = [
    "DEFAULT_RETRY_POLICY",
    "RetryExecutor",
    "RetryPolicy",
    "retry",
    "CircuitBreaker",
    "CircuitSnapshot",
    "CircuitState",
]
