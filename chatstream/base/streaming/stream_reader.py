"""Typed stream readers decoding SSE payloads into response chunks.

Each :meth:`read` call yields exactly one of:

* a decoded chunk,
* ``None`` (end of stream: transport exhausted or the ``[DONE]`` sentinel),
* a raised error (``APIError`` for a top-level ``{"error": ...}`` payload,
  ``DecodeError`` for malformed JSON or an unexpected shape, transport and
  cancellation errors from below).

Keep-alive events whose data starts with ``": "`` are skipped inside an
explicit loop, so a long run of them never grows the stack. The sequence is
finite and forward-only; once ``None`` has been returned every later call
returns ``None`` as well.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Generic, Iterator, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import APIError, DecodeError
from ..logging import get_logger, log_event
from ..models import ChatCompletionChunk, CompletionChunk
from .sse_parser import SSEParser

_logger = get_logger("chatstream.stream")

DONE_SENTINEL = "[DONE]"
KEEPALIVE_PREFIX = ": "

ChunkT = TypeVar("ChunkT", bound=BaseModel)


class _StreamReader(Generic[ChunkT]):
    """Shared read loop; subclasses pick the chunk model."""

    chunk_model: Type[ChunkT]

    def __init__(
        self,
        source: Any = None,
        *,
        parser: Optional[SSEParser] = None,
        closer: Any = None,
    ) -> None:
        if parser is None:
            if source is None:
                raise ValueError("either source or parser is required")
            parser = SSEParser(source)
        self._parser = parser
        self._closer = closer if closer is not None else source
        self._finished = False
        self._closed = False
        self._close_lock = threading.Lock()
        self.chunks_read = 0

    @property
    def finished(self) -> bool:
        """Whether end of stream has been observed."""
        return self._finished

    def read(self) -> Optional[ChunkT]:
        """Return the next chunk, or ``None`` at end of stream."""
        while not self._finished:
            event = self._parser.parse_next()
            if event is None:
                self._finished = True
                break
            if event.data == DONE_SENTINEL:
                self._finished = True
                log_event(_logger, "stream.done", level=logging.DEBUG, chunks=self.chunks_read)
                break
            if event.data.startswith(KEEPALIVE_PREFIX):
                continue
            chunk = self._decode(event.data)
            self.chunks_read += 1
            return chunk
        return None

    def _decode(self, data: str) -> ChunkT:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"failed to parse response: {exc.msg}", payload=data) from exc
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict):
                raise APIError.from_payload(error)
        try:
            return self.chunk_model.model_validate(payload)
        except ValidationError as exc:
            raise DecodeError(
                f"failed to parse response: {exc.error_count()} validation error(s)",
                payload=data,
            ) from exc

    def __iter__(self) -> Iterator[ChunkT]:
        while (chunk := self.read()) is not None:
            yield chunk

    def close(self) -> None:
        """Close the underlying source (idempotent)."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._finished = True
        close = getattr(self._closer, "close", None)
        if callable(close):
            close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ChatCompletionStreamReader(_StreamReader[ChatCompletionChunk]):
    """Reads :class:`ChatCompletionChunk` values from a chat SSE stream."""

    chunk_model = ChatCompletionChunk


class CompletionStreamReader(_StreamReader[CompletionChunk]):
    """Reads :class:`CompletionChunk` values from a text-completion SSE stream."""

    chunk_model = CompletionChunk


def collect_text(reader: _StreamReader) -> str:
    """Drain ``reader`` and concatenate the first choice's text deltas."""
    return "".join(chunk.content for chunk in reader)


__all__ = [
    "DONE_SENTINEL",
    "KEEPALIVE_PREFIX",
    "ChatCompletionStreamReader",
    "CompletionStreamReader",
    "collect_text",
]
