"""Unified error taxonomy public surface.

This module re-exports the one-class-per-file implementations under
``chatstream.base.errors_parts`` to keep a stable import path.
"""

from .cancellation_parts.cancelled_error import CancelledError
from .errors_parts import (
    APIError,
    ChatStreamError,
    CircuitOpenError,
    DecodeError,
    ErrorCode,
    ErrorKind,
    ModerationErrorMetadata,
    ProviderErrorMetadata,
    RetriesExhaustedError,
    StreamingRetryUnsupportedError,
    TransportError,
    classify_exception,
)

__all__ = [
    "APIError",
    "CancelledError",
    "ChatStreamError",
    "CircuitOpenError",
    "DecodeError",
    "ErrorCode",
    "ErrorKind",
    "ModerationErrorMetadata",
    "ProviderErrorMetadata",
    "RetriesExhaustedError",
    "StreamingRetryUnsupportedError",
    "TransportError",
    "classify_exception",
]
