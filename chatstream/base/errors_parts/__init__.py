"""Errors parts package public surface.

Prefer importing from ``chatstream.base.errors`` for the stable surface.
"""

from .error_code import ErrorCode, ErrorKind
from .chat_stream_error import ChatStreamError, DecodeError, TransportError
from .api_error import APIError, ModerationErrorMetadata, ProviderErrorMetadata
from .resilience_errors import (
    CircuitOpenError,
    RetriesExhaustedError,
    StreamingRetryUnsupportedError,
)
from .classification import classify_exception

__all__ = [
    "ErrorCode",
    "ErrorKind",
    "ChatStreamError",
    "DecodeError",
    "TransportError",
    "APIError",
    "ModerationErrorMetadata",
    "ProviderErrorMetadata",
    "CircuitOpenError",
    "RetriesExhaustedError",
    "StreamingRetryUnsupportedError",
    "classify_exception",
]
