"""Circuit breaker guarding a failing dependency.

State machine::

    closed --(failure_threshold consecutive failures)--> open
    open --(reset_timeout elapsed, next call)--> half_open
    half_open --(success)--> closed
    half_open --(failure)--> open

While open, calls are rejected with ``CircuitOpenError`` without invoking the
operation. Counters are shared by every thread calling through one breaker and
are guarded by a lock; the operation itself always runs outside the lock.
Cancellations are neither successes nor failures and leave the state alone.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from ...config.defaults import DEFAULT_BREAKER_FAILURE_THRESHOLD, DEFAULT_BREAKER_RESET_TIMEOUT
from ..cancellation import CancelledError
from ..errors import CircuitOpenError
from ..logging import get_logger, log_event

T = TypeVar("T")

_logger = get_logger("chatstream.circuit")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitSnapshot:
    """Point-in-time view of a breaker's counters."""

    state: CircuitState
    failure_count: int
    last_failure_time: Optional[float]
    failure_threshold: int
    reset_timeout: float


class CircuitBreaker:
    def __init__(
        self,
        failure_threshold: int = DEFAULT_BREAKER_FAILURE_THRESHOLD,
        reset_timeout: float = DEFAULT_BREAKER_RESET_TIMEOUT,
        *,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if reset_timeout < 0:
            raise ValueError("reset_timeout must be >= 0")
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def snapshot(self) -> CircuitSnapshot:
        with self._lock:
            return CircuitSnapshot(
                state=self._state,
                failure_count=self._failure_count,
                last_failure_time=self._last_failure_time,
                failure_threshold=self.failure_threshold,
                reset_timeout=self.reset_timeout,
            )

    def execute(self, operation: Callable[[], T]) -> T:
        """Run ``operation`` unless the circuit is open."""
        self._before_call()
        try:
            result = operation()
        except CancelledError:
            raise
        except Exception:
            self._record_failure()
            raise
        self._record_success()
        return result

    def _before_call(self) -> None:
        with self._lock:
            if self._state is not CircuitState.OPEN:
                return
            elapsed = self._clock() - (self._last_failure_time or 0.0)
            if elapsed < self.reset_timeout:
                retry_after = self.reset_timeout - elapsed
            else:
                self._transition(CircuitState.HALF_OPEN)
                self._failure_count = 0
                return
        raise CircuitOpenError(retry_after=retry_after)

    def _record_success(self) -> None:
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                self._transition(CircuitState.CLOSED)
            self._failure_count = 0

    def _record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()
            if self._state is CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
                if self._state is not CircuitState.OPEN:
                    self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        # Caller holds the lock.
        old_state, self._state = self._state, new_state
        log_event(
            _logger,
            "circuit.transition",
            breaker=self.name,
            from_state=old_state.value,
            to_state=new_state.value,
            failures=self._failure_count,
        )

    def reset(self) -> None:
        """Force the breaker back to closed with cleared counters."""
        with self._lock:
            if self._state is not CircuitState.CLOSED:
                self._transition(CircuitState.CLOSED)
            self._failure_count = 0
            self._last_failure_time = None


__all__ = ["CircuitBreaker", "CircuitSnapshot", "CircuitState"]
