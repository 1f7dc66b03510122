"""Shared HTTP client pool.

Purpose:
    Provide a centralized, thread-safe pool of reusable ``httpx.Client``
    instances so transports do not allocate a connection pool per call.
    Timeouts derive from :func:`get_timeout_config`.

Lifecycle & cleanup:
    - Clients are cached by ``(base_url, purpose)``. Purposes keep distinct
      pools apart (e.g. "chat" vs "stream", whose read timeouts differ).
    - All clients are closed at interpreter exit via ``atexit``. Tests may
      call :func:`close_all_clients` explicitly.
"""

from __future__ import annotations

import atexit
import logging
import threading
from typing import Dict, Optional, Tuple

import httpx

from ..logging import get_logger, log_event
from ..timeouts import get_timeout_config

STREAM_PURPOSE = "stream"

_CLIENTS: Dict[Tuple[Optional[str], str], httpx.Client] = {}
_LOCK = threading.RLock()
_logger = get_logger("chatstream.http")


def _timeout_for(purpose: str) -> httpx.Timeout:
    cfg = get_timeout_config()
    if purpose == STREAM_PURPOSE:
        # Stream bodies stay open for the whole generation; the idle read
        # limit is optional and cancellation ends stalled streams.
        return httpx.Timeout(
            cfg.http_timeout_seconds,
            connect=cfg.connect_timeout_seconds,
            read=cfg.stream_read_timeout_seconds,
        )
    return httpx.Timeout(cfg.http_timeout_seconds, connect=cfg.connect_timeout_seconds)


def get_httpx_client(base_url: Optional[str], purpose: str) -> httpx.Client:
    """Return a pooled ``httpx.Client`` for the given base URL and purpose.

    The first request for a key creates the client; later requests reuse it.
    Safe for concurrent use.
    """
    key = (base_url, purpose)
    client = _CLIENTS.get(key)
    if client is not None:
        return client

    with _LOCK:
        client = _CLIENTS.get(key)
        if client is not None:
            return client
        timeout = _timeout_for(purpose)
        client = httpx.Client(base_url=base_url, timeout=timeout) if base_url else httpx.Client(timeout=timeout)
        _CLIENTS[key] = client
        return client


def close_all_clients() -> None:
    """Close and clear all pooled HTTP clients."""
    with _LOCK:
        for c in _CLIENTS.values():
            try:
                c.close()
            except (httpx.HTTPError, OSError, RuntimeError) as exc:
                log_event(_logger, "http.client.close_failed", level=logging.WARNING, error=str(exc))
        _CLIENTS.clear()


atexit.register(close_all_clients)

__all__ = ["STREAM_PURPOSE", "get_httpx_client", "close_all_clients"]
