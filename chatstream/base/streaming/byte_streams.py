"""Byte source adapters for the SSE parser.

The parser reads lines from a buffered binary reader. Transports hand over
either a file-like object or an iterator of byte chunks (``httpx``'s
``Response.iter_bytes()``); :func:`as_buffered` normalizes both.
"""
from __future__ import annotations

import io
from typing import Callable, Iterable, Iterator, Optional


class IteratorByteStream(io.RawIOBase):
    """Raw binary stream over an iterator of ``bytes`` chunks.

    ``on_close`` runs once when the stream is closed, which lets the owner of
    the iterator (for example an ``httpx.Response``) release its connection.
    """

    def __init__(self, chunks: Iterable[bytes], on_close: Optional[Callable[[], None]] = None) -> None:
        super().__init__()
        self._chunks: Iterator[bytes] = iter(chunks)
        self._pending = b""
        self._on_close = on_close

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        view = memoryview(buffer).cast("B")
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
        n = min(len(view), len(self._pending))
        view[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._on_close is not None:
                self._on_close()
        finally:
            super().close()


def as_buffered(source) -> io.BufferedIOBase:
    """Return a reader with an efficient ``readline`` for ``source``.

    Accepts an already buffered binary reader, a raw binary stream, or an
    iterable of byte chunks.
    """
    if isinstance(source, io.BufferedIOBase):
        return source
    if isinstance(source, io.RawIOBase):
        return io.BufferedReader(source)
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(bytes(source))
    return io.BufferedReader(IteratorByteStream(source))


__all__ = ["IteratorByteStream", "as_buffered"]
