"""
Error classification helpers mapping exceptions to normalized ErrorKind values.

Implements HTTP status extraction, status-to-kind mapping, and message-based
heuristics as a fallback for exceptions raised outside this package (for
example by ``httpx`` or caller supplied operations).
"""
from __future__ import annotations

from typing import Optional

import httpx

from .api_error import kind_for_code
from .chat_stream_error import ChatStreamError
from .error_code import ErrorKind


def _extract_status(exc: BaseException) -> Optional[int]:
    """Attempt to extract an HTTP status code from an exception.

    Supported attribute shapes (checked in order):
    - ``exc.status_code``
    - ``exc.status``
    - ``exc.response.status_code``
    Returns ``None`` if no valid status can be found.
    """
    for attr in ("status_code", "status"):
        val = getattr(exc, attr, None)
        if isinstance(val, int) and 100 <= val < 600:
            return val
    resp = getattr(exc, "response", None)
    if resp is not None:
        sc = getattr(resp, "status_code", None)
        if isinstance(sc, int) and 100 <= sc < 600:
            return sc
    return None


_PATTERN_GROUPS = (
    (ErrorKind.RATE_LIMIT, ("rate limit",)),
    (ErrorKind.RATE_LIMIT, ("too many requests",)),
    (ErrorKind.TIMEOUT, ("timeout",)),
    (ErrorKind.TIMEOUT, ("timed out",)),
    (ErrorKind.AUTH, ("unauthorized",)),
    (ErrorKind.AUTH, ("api key",)),
    (ErrorKind.PAYMENT, ("insufficient credits",)),
    (ErrorKind.MODERATION, ("moderation",)),
    (ErrorKind.UNAVAILABLE, ("unavailable",)),
    (ErrorKind.UNSUPPORTED, ("not supported",)),
    (ErrorKind.SERVER_ERROR, ("internal error",)),
)


def _heuristic_from_message(msg: str) -> Optional[ErrorKind]:
    for kind, patterns in _PATTERN_GROUPS:
        if any(p in msg for p in patterns):
            return kind
    return None


def classify_exception(exc: BaseException) -> ErrorKind:
    """Classify an exception into a normalized :class:`ErrorKind`.

    Precedence:
        1. ``ChatStreamError`` passthrough.
        2. Timeout exceptions (builtin and httpx).
        3. Other httpx transport failures.
        4. HTTP status mapping.
        5. Substring heuristics.
        6. ``UNKNOWN`` fallback.
    """
    if isinstance(exc, ChatStreamError):
        return exc.kind
    if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.TransportError):
        return ErrorKind.TRANSPORT
    status = _extract_status(exc)
    if status is not None:
        kind = kind_for_code(status)
        if kind is not ErrorKind.UNKNOWN:
            return kind
    kind = _heuristic_from_message(str(exc).lower())
    return kind if kind is not None else ErrorKind.UNKNOWN


__all__ = ["classify_exception", "_extract_status"]
