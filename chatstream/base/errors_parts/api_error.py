"""
Remote API error type with typed metadata views.

The remote service reports failures as ``{"error": {"code", "message",
"metadata"}}`` either as an HTTP error body or as a top-level stream event.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .chat_stream_error import ChatStreamError
from .error_code import ErrorCode, ErrorKind

_CODE_KINDS: Dict[int, ErrorKind] = {
    ErrorCode.BAD_REQUEST: ErrorKind.VALIDATION,
    ErrorCode.UNAUTHORIZED: ErrorKind.AUTH,
    ErrorCode.INSUFFICIENT_CREDITS: ErrorKind.PAYMENT,
    ErrorCode.FORBIDDEN: ErrorKind.MODERATION,
    404: ErrorKind.NOT_FOUND,
    ErrorCode.TIMEOUT: ErrorKind.TIMEOUT,
    ErrorCode.RATE_LIMITED: ErrorKind.RATE_LIMIT,
    500: ErrorKind.SERVER_ERROR,
    ErrorCode.MODEL_DOWN: ErrorKind.TRANSIENT,
    ErrorCode.NO_AVAILABLE_MODEL: ErrorKind.UNAVAILABLE,
    504: ErrorKind.TIMEOUT,
}


def kind_for_code(code: Optional[int]) -> ErrorKind:
    """Map a remote numeric code onto a normalized :class:`ErrorKind`."""
    if code is None:
        return ErrorKind.UNKNOWN
    if code in _CODE_KINDS:
        return _CODE_KINDS[code]
    if 500 <= code < 600:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.UNKNOWN


@dataclass
class ModerationErrorMetadata:
    """Moderation details attached to a 403 error."""

    reasons: List[str] = field(default_factory=list)
    flagged_input: str = ""
    provider_name: str = ""
    model_slug: str = ""


@dataclass
class ProviderErrorMetadata:
    """Upstream provider details attached to a remote error."""

    provider_name: str
    raw: Any = None


class APIError(ChatStreamError):
    """Error reported by the remote API (HTTP body or stream event)."""

    def __init__(
        self,
        code: int,
        message: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(
            kind=kind_for_code(code),
            message=message,
            code=code,
            metadata=dict(metadata or {}),
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "APIError":
        """Build from the inner ``error`` object (``{"code", "message", "metadata"}``)."""
        raw_code = payload.get("code")
        try:
            code = int(raw_code) if raw_code is not None else 0
        except (TypeError, ValueError):
            code = 0
        message = str(payload.get("message") or "")
        metadata = payload.get("metadata")
        return cls(code, message, metadata if isinstance(metadata, Mapping) else None)

    def __str__(self) -> str:
        return f"api error {self.code}: {self.message}"

    def is_moderation_error(self) -> bool:
        return self.code == ErrorCode.FORBIDDEN

    def moderation_metadata(self) -> Optional[ModerationErrorMetadata]:
        """Return moderation details, or ``None`` for non-moderation errors."""
        if not self.is_moderation_error() or not self.metadata:
            return None
        meta = ModerationErrorMetadata()
        reasons = self.metadata.get("reasons")
        if isinstance(reasons, list):
            meta.reasons = [r for r in reasons if isinstance(r, str)]
        for attr in ("flagged_input", "provider_name", "model_slug"):
            value = self.metadata.get(attr)
            if isinstance(value, str):
                setattr(meta, attr, value)
        return meta

    def provider_metadata(self) -> Optional[ProviderErrorMetadata]:
        """Return upstream provider details when ``provider_name`` is present."""
        if not self.metadata:
            return None
        name = self.metadata.get("provider_name")
        if not isinstance(name, str) or not name:
            return None
        return ProviderErrorMetadata(provider_name=name, raw=self.metadata.get("raw"))


__all__ = [
    "APIError",
    "ModerationErrorMetadata",
    "ProviderErrorMetadata",
    "kind_for_code",
]
