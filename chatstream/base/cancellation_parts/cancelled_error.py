"""Cancellation error type.

Defines the public ``CancelledError`` used to signal cooperative cancellation
(explicit cancel, closed stream, or elapsed deadline).
"""

from __future__ import annotations

from ..errors_parts.chat_stream_error import ChatStreamError
from ..errors_parts.error_code import ErrorKind


class CancelledError(ChatStreamError):
    """Raised when an operation observes a cancellation request.

    Distinguishes cooperative cancellation from other runtime failures so
    callers can suppress log noise and so the retry executor and circuit
    breaker never treat it as a remote failure.
    """

    def __init__(self, message: str = "operation cancelled") -> None:
        super().__init__(kind=ErrorKind.CANCELLED, message=message)


__all__ = ["CancelledError"]
