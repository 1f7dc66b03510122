from __future__ import annotations

import functools
import random
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, Protocol, TypeVar

from ...config.defaults import (
    DEFAULT_RETRY_BACKOFF_FACTOR,
    DEFAULT_RETRY_INITIAL_DELAY,
    DEFAULT_RETRY_JITTER_FACTOR,
    DEFAULT_RETRY_MAX_ATTEMPTS,
    DEFAULT_RETRY_MAX_DELAY,
    DEFAULT_RETRYABLE_CODES,
)
from ..cancellation import CancellationToken, CancelledError
from ..errors import APIError, RetriesExhaustedError, StreamingRetryUnsupportedError
from ..logging import get_logger, normalized_log_event

T = TypeVar("T")

_logger = get_logger("chatstream.retry")


class AttemptLogger(Protocol):  # pragma: no cover - structural protocol
    def __call__(
        self,
        *,
        attempt: int,
        max_attempts: int,
        delay: float | None,
        error: APIError | None,
    ) -> None: ...


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters and the remote codes worth retrying.

    ``max_attempts`` counts retries: the operation runs at most
    ``max_attempts + 1`` times.
    """

    max_attempts: int = DEFAULT_RETRY_MAX_ATTEMPTS
    initial_delay: float = DEFAULT_RETRY_INITIAL_DELAY
    max_delay: float = DEFAULT_RETRY_MAX_DELAY
    backoff_factor: float = DEFAULT_RETRY_BACKOFF_FACTOR
    jitter_factor: float = DEFAULT_RETRY_JITTER_FACTOR
    retryable_codes: FrozenSet[int] = field(default_factory=lambda: frozenset(DEFAULT_RETRYABLE_CODES))
    attempt_logger: AttemptLogger | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if not 0.0 <= self.jitter_factor <= 1.0:
            raise ValueError("jitter_factor must be within [0, 1]")
        object.__setattr__(self, "retryable_codes", frozenset(int(c) for c in self.retryable_codes))

    def nominal_delay(self, attempt: int) -> float:
        """Backoff before ``attempt`` (1-based retry number), capped at ``max_delay``.

        Exponents past float range saturate at ``max_delay``.
        """
        if self.initial_delay == 0:
            return 0.0
        try:
            delay = self.initial_delay * self.backoff_factor ** (attempt - 1)
        except OverflowError:
            return self.max_delay
        return min(delay, self.max_delay)

    def compute_delay(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        """Nominal delay with symmetric jitter; may be shorter or longer than nominal."""
        delay = self.nominal_delay(attempt)
        delay += delay * self.jitter_factor * (2 * rand() - 1)
        return max(delay, 0.0)

    def is_retryable(self, exc: BaseException) -> bool:
        return isinstance(exc, APIError) and exc.code in self.retryable_codes

    def with_codes(self, codes: Iterable[int]) -> "RetryPolicy":
        """Copy of this policy retrying exactly ``codes``."""
        return RetryPolicy(
            max_attempts=self.max_attempts,
            initial_delay=self.initial_delay,
            max_delay=self.max_delay,
            backoff_factor=self.backoff_factor,
            jitter_factor=self.jitter_factor,
            retryable_codes=frozenset(codes),
            attempt_logger=self.attempt_logger,
        )


DEFAULT_RETRY_POLICY = RetryPolicy()


class RetryExecutor:
    """Runs a single-shot operation with classified backoff retries.

    - Retries only ``APIError`` values whose code is in ``retryable_codes``;
      anything else is re-raised unmodified on first occurrence.
    - Sleeps wait on the cancellation token, so a cancel during backoff
      raises ``CancelledError`` immediately and no further attempt is made.
    - Exhaustion raises ``RetriesExhaustedError`` chained from the last failure.
    """

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        *,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.policy = policy
        self._rand = rand

    def execute(self, operation: Callable[[], T], token: CancellationToken | None = None) -> T:
        policy = self.policy
        waiter = token if token is not None else CancellationToken()
        last_exc: APIError | None = None
        for attempt in range(policy.max_attempts + 1):
            if attempt > 0:
                delay = policy.compute_delay(attempt, self._rand)
                if waiter.wait(delay):
                    raise CancelledError(waiter.reason or "retry cancelled")
            try:
                result = operation()
            except APIError as exc:
                retryable = exc.code in policy.retryable_codes
                self._log_attempt(attempt, exc, retryable)
                if not retryable:
                    raise
                last_exc = exc
                continue
            if policy.attempt_logger:
                policy.attempt_logger(
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    delay=None,
                    error=None,
                )
            return result

        if last_exc is None:  # pragma: no cover - loop always runs at least once
            raise RuntimeError("retry: reached terminal state without captured exception")
        raise RetriesExhaustedError(last_exc, attempts=policy.max_attempts + 1) from last_exc

    def execute_stream(self, *args, **kwargs):
        """Streams cannot be replayed once partially consumed; always refuses."""
        raise StreamingRetryUnsupportedError()

    def _log_attempt(self, attempt: int, exc: APIError, retryable: bool) -> None:
        policy = self.policy
        will_retry = retryable and attempt < policy.max_attempts
        if policy.attempt_logger:
            policy.attempt_logger(
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay=policy.nominal_delay(attempt + 1) if will_retry else None,
                error=exc,
            )
        normalized_log_event(
            _logger,
            "retry.attempt",
            phase="retry",
            attempt=attempt + 1,
            error_code=str(exc.code),
            emitted=False,
            retryable=retryable,
            will_retry=will_retry,
        )


def retry(policy: RetryPolicy = DEFAULT_RETRY_POLICY):
    """Return a decorator applying ``RetryExecutor`` with ``policy``.

    Preserves the wrapped function's signature; the call is made without a
    cancellation token.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        executor = RetryExecutor(policy)

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            return executor.execute(lambda: func(*args, **kwargs))

        return wrapper

    return decorator


__all__ = [
    "AttemptLogger",
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "RetryExecutor",
    "retry",
]
