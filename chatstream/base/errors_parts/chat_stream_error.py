"""
Structured error base type.

Every error surfaced to the application derives from ``ChatStreamError`` so a
caller can branch on ``kind``/``code`` and inspect ``metadata`` without
parsing messages.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .error_code import ErrorKind


@dataclass(eq=False)
class ChatStreamError(Exception):
    """Base structured error.

    Attributes:
        kind: Normalized :class:`ErrorKind` for the failure.
        message: Human-readable message suitable for logging.
        code: Remote numeric code when the failure originated server side.
        metadata: Free-form remote metadata (provider name, moderation reasons...).
    """

    kind: ErrorKind
    message: str
    code: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.kind.value}: {self.message}"


class DecodeError(ChatStreamError):
    """A stream payload could not be decoded into the expected structure."""

    def __init__(self, message: str, *, payload: str | None = None) -> None:
        super().__init__(kind=ErrorKind.DECODE, message=message)
        self.payload = payload


class TransportError(ChatStreamError):
    """Connection level failure (connect, read, closed socket)."""

    def __init__(self, message: str) -> None:
        super().__init__(kind=ErrorKind.TRANSPORT, message=message)


__all__ = ["ChatStreamError", "DecodeError", "TransportError"]
