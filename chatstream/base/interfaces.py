"""Collaborator protocols.

The runtime only depends on these shapes, so tests and alternative
transports can plug in without subclassing anything.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, TypeVar, runtime_checkable

T_co = TypeVar("T_co", covariant=True)


@runtime_checkable
class ByteStream(Protocol):
    """Blocking binary body as produced by a transport."""

    def read(self, size: int = -1) -> bytes:  # pragma: no cover - interface
        """Return up to ``size`` bytes; ``b""`` at end of stream."""
        ...

    def close(self) -> None:  # pragma: no cover - interface
        ...


@runtime_checkable
class ChunkStream(Protocol[T_co]):
    """Forward-only sequence of decoded chunks ending with ``None``."""

    def read(self) -> Optional[T_co]:  # pragma: no cover - interface
        ...

    def close(self) -> None:  # pragma: no cover - interface
        ...


@runtime_checkable
class StreamResponse(Protocol):
    status_code: int
    stream: ByteStream


@runtime_checkable
class Transport(Protocol):
    """What the clients need from an HTTP layer."""

    def post_json(
        self,
        path: str,
        payload: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> dict:  # pragma: no cover - interface
        ...

    def open_stream(
        self,
        path: str,
        payload: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> StreamResponse:  # pragma: no cover - interface
        ...


__all__ = ["ByteStream", "ChunkStream", "StreamResponse", "Transport"]
