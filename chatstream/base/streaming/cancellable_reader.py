"""Cancellable wrapper around a blocking transport byte stream.

Purpose
-------
Transport bodies expose a plain blocking ``read``; a stalled upstream would
otherwise pin the consumer until the socket times out. ``CancellableReader``
runs each read on a dedicated background worker and returns as soon as either
the read completes or its cancellation token fires. On cancellation the
underlying stream is closed (which also unblocks the worker) and whatever the
abandoned read eventually produces is discarded.

The reader is an ``io.RawIOBase`` so it can sit below ``io.BufferedReader``
and the SSE parser without any adaptation.

Cancellation scope
------------------
The reader owns a child of the caller's token: cancelling the caller's token
cancels the reader, while :meth:`CancellableReader.close` or
:meth:`CancellableReader.cancel` only end this one stream.
"""
from __future__ import annotations

import io
import threading
from concurrent.futures import ThreadPoolExecutor

import httpx

from ..cancellation import CancellationToken, CancelledError
from ..errors import ChatStreamError, TransportError
from ..logging import get_logger, log_event

_logger = get_logger("chatstream.stream")

CLOSED_REASON = "stream closed"


class CancellableReader(io.RawIOBase):
    """Blocking byte stream whose reads can be abandoned via a token."""

    def __init__(self, stream, token: CancellationToken | None = None) -> None:
        super().__init__()
        self._stream = stream
        self._token = CancellationToken(parent=token)
        self._close_lock = threading.Lock()
        self._stream_closed = False
        self._pending = b""
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="chatstream-read")

    @property
    def token(self) -> CancellationToken:
        """The derived token governing this reader."""
        return self._token

    @property
    def stream_closed(self) -> bool:
        """Whether the transport has been closed.

        The ``io`` level ``closed`` flag is left untouched so buffered readers
        keep delegating to :meth:`readinto`, which reports ``CancelledError``
        rather than a generic closed-file error.
        """
        return self._stream_closed

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        view = memoryview(buffer).cast("B")
        self._raise_if_cancelled()
        if self._pending:
            return self._drain_pending(view)

        future = self._executor.submit(self._stream.read, len(view))
        wake = threading.Event()
        future.add_done_callback(lambda _f: wake.set())
        unregister = self._token.add_callback(wake.set)
        try:
            wake.wait()
        finally:
            unregister()

        if self._token.cancelled:
            # Late bytes from the abandoned read are dropped with the future.
            self._raise_if_cancelled()
        try:
            data = future.result()
        except ChatStreamError:
            raise
        except (OSError, ValueError, httpx.HTTPError) as exc:
            raise TransportError(f"error reading stream: {exc}") from exc
        if not data:
            return 0
        self._pending = bytes(data)
        return self._drain_pending(view)

    def _drain_pending(self, view: memoryview) -> int:
        n = min(len(view), len(self._pending))
        view[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n

    def _raise_if_cancelled(self) -> None:
        if self._token.cancelled or self._stream_closed:
            reason = self._token.reason or "stream cancelled"
            self.close()
            raise CancelledError(reason)

    def close(self) -> None:
        """Cancel the derived scope and close the transport (idempotent)."""
        with self._close_lock:
            if self._stream_closed:
                return
            self._stream_closed = True
        self._token.cancel(CLOSED_REASON)
        self._token.detach()
        try:
            self._stream.close()
        finally:
            self._executor.shutdown(wait=False)

    def cancel(self, reason: str | None = None) -> None:
        """Abandon the stream early: fire cancellation, then close."""
        self._token.cancel(reason or "stream cancelled")
        log_event(_logger, "stream.cancel", reason=self._token.reason)
        self.close()


__all__ = ["CancellableReader", "CLOSED_REASON"]
