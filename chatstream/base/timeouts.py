"""Unified timeout utilities for the streaming runtime.

This module centralizes timeout values used by the HTTP transport and by
callers that want a wall-clock limit on a stream, a retry loop, or a
dispatch run.

Key Components
--------------
TimeoutConfig
    Dataclass capturing normalized timeout values.

get_timeout_config()
    Returns a process-cached configuration, re-parsed whenever one of the
    supported environment variables (all optional) changes:
        CHATSTREAM_TIMEOUT_CONNECT_SECONDS
        CHATSTREAM_TIMEOUT_HTTP_SECONDS
        CHATSTREAM_TIMEOUT_STREAM_READ_SECONDS
        CHATSTREAM_TIMEOUT_OVERALL_SECONDS

deadline_token(seconds, parent=None)
    Returns a ``CancellationToken`` cancelled with reason ``"timeout"`` once
    ``seconds`` elapse. Because every suspension point of the runtime waits
    on a token, a deadline is just another cancellation source.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
import threading

from .cancellation import CancellationToken

TIMEOUT_REASON = "timeout"


@dataclass(frozen=True)
class TimeoutConfig:
    """Container for normalized timeout values (seconds).

    Attributes:
        connect_timeout_seconds: Time allowed to establish a connection.
        http_timeout_seconds: Timeout for single-shot (non-streaming) calls.
        stream_read_timeout_seconds: Idle timeout between two reads of a
            streamed body. ``None`` disables the transport level read timeout
            and leaves stream lifetime to cancellation tokens.
        overall_timeout_seconds: Optional wall-clock cap on a stream or a retry
            loop; the clients enforce it through :func:`deadline_token`.
    """

    connect_timeout_seconds: float = 10.0
    http_timeout_seconds: float = 60.0
    stream_read_timeout_seconds: float | None = None
    overall_timeout_seconds: float | None = None


_CACHED: TimeoutConfig | None = None
_ENV_GUARD: str | None = None
_ENV_NAMES = (
    "CHATSTREAM_TIMEOUT_CONNECT_SECONDS",
    "CHATSTREAM_TIMEOUT_HTTP_SECONDS",
    "CHATSTREAM_TIMEOUT_STREAM_READ_SECONDS",
    "CHATSTREAM_TIMEOUT_OVERALL_SECONDS",
)


def _parse_env_float(name: str, default: float | None) -> float | None:
    """Parse a positive float from the environment, else return ``default``."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        val = float(raw)
        return val if val > 0 else default
    except ValueError:  # pragma: no cover - defensive
        return default


def get_timeout_config() -> TimeoutConfig:
    """Return process-cached ``TimeoutConfig`` instance.

    The cache is refreshed when any of the supported environment variables
    changes, so tests can adjust values with ``monkeypatch.setenv``.
    """
    global _CACHED, _ENV_GUARD  # noqa: PLW0603 - intentional, documented module cache
    cur_guard = "/".join(os.getenv(name, "") for name in _ENV_NAMES)
    if _CACHED is not None and _ENV_GUARD == cur_guard:
        return _CACHED

    defaults = TimeoutConfig()
    _CACHED = TimeoutConfig(
        connect_timeout_seconds=float(
            _parse_env_float("CHATSTREAM_TIMEOUT_CONNECT_SECONDS", defaults.connect_timeout_seconds)
        ),
        http_timeout_seconds=float(
            _parse_env_float("CHATSTREAM_TIMEOUT_HTTP_SECONDS", defaults.http_timeout_seconds)
        ),
        stream_read_timeout_seconds=_parse_env_float("CHATSTREAM_TIMEOUT_STREAM_READ_SECONDS", None),
        overall_timeout_seconds=_parse_env_float("CHATSTREAM_TIMEOUT_OVERALL_SECONDS", None),
    )
    _ENV_GUARD = cur_guard
    return _CACHED


def deadline_token(
    seconds: float,
    parent: CancellationToken | None = None,
) -> CancellationToken:
    """Return a token that cancels itself after ``seconds``.

    If ``parent`` is given the token is its child, so an explicit cancel of
    the parent still propagates. The timer thread is a daemon and is stopped
    early when the token is cancelled by other means. ``seconds <= 0``
    returns an already cancelled token.
    """
    token = CancellationToken(parent=parent)
    if seconds <= 0:
        token.cancel(TIMEOUT_REASON)
        return token
    timer = threading.Timer(seconds, token.cancel, args=(TIMEOUT_REASON,))
    timer.daemon = True
    token.add_callback(timer.cancel)
    timer.start()
    return token


__all__ = [
    "TIMEOUT_REASON",
    "TimeoutConfig",
    "get_timeout_config",
    "deadline_token",
]
