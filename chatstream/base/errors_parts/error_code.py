"""
Remote error codes and normalized error kinds (taxonomy).

``ErrorCode`` enumerates the numeric codes the chat-completion API reports in
``{"error": {"code": ...}}`` bodies and in per-choice error objects.
``ErrorKind`` is the normalized category every :class:`ChatStreamError`
carries; values are lowercase snake_case and are a stable contract for
logging and programmatic branching.
"""
from __future__ import annotations

from enum import Enum, IntEnum


class ErrorCode(IntEnum):
    """Numeric error codes emitted by the remote API."""

    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    INSUFFICIENT_CREDITS = 402
    FORBIDDEN = 403  # moderation flag
    TIMEOUT = 408
    RATE_LIMITED = 429
    MODEL_DOWN = 502
    NO_AVAILABLE_MODEL = 503


class ErrorKind(str, Enum):
    """Enumerated normalized error kinds representing failure categories."""

    AUTH = "auth"
    PAYMENT = "payment"
    MODERATION = "moderation"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    TRANSIENT = "transient"
    UNAVAILABLE = "unavailable"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    DECODE = "decode"
    TRANSPORT = "transport"
    CIRCUIT_OPEN = "circuit_open"
    RETRIES_EXHAUSTED = "retries_exhausted"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


__all__ = ["ErrorCode", "ErrorKind"]
