"""
Errors raised by the resilience layer (retry executor, circuit breaker).
"""
from __future__ import annotations

from typing import Optional

from .chat_stream_error import ChatStreamError
from .error_code import ErrorKind


class RetriesExhaustedError(ChatStreamError):
    """Every attempt failed with a retryable error; wraps the last failure."""

    def __init__(self, last_error: BaseException, attempts: int) -> None:
        super().__init__(
            kind=ErrorKind.RETRIES_EXHAUSTED,
            message=f"max retries exceeded: {last_error}",
            code=getattr(last_error, "code", None),
        )
        self.last_error = last_error
        self.attempts = attempts


class CircuitOpenError(ChatStreamError):
    """The circuit breaker rejected the call without invoking the operation."""

    def __init__(self, retry_after: Optional[float] = None) -> None:
        super().__init__(kind=ErrorKind.CIRCUIT_OPEN, message="circuit breaker is open")
        self.retry_after = retry_after


class StreamingRetryUnsupportedError(ChatStreamError):
    """A streaming call was routed through the retry executor."""

    def __init__(self) -> None:
        super().__init__(kind=ErrorKind.UNSUPPORTED, message="retry not supported for streaming")


__all__ = [
    "RetriesExhaustedError",
    "CircuitOpenError",
    "StreamingRetryUnsupportedError",
]
