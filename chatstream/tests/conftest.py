"""Shared fixtures for the chatstream test suite.

Provides log capture on the shared ``chatstream`` logger, SSE body builders
and a blocking byte stream for cancellation tests.
"""
from __future__ import annotations

import json
import os
import logging
import threading
from typing import Iterator, List

import pytest

from chatstream.base.http import close_all_clients
from chatstream.base.logging import BASE_LOGGER_NAME, get_logger


class _ListHandler(logging.Handler):
    """Collect decoded JSON payloads of emitted records."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.events: List[dict] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            payload = json.loads(record.getMessage())
        except ValueError:
            payload = {"msg": record.getMessage()}
        self.events.append(payload)


@pytest.fixture()
def log_events() -> Iterator[List[dict]]:
    """Yield the list of structured events logged during the test."""
    logger = get_logger(BASE_LOGGER_NAME)
    handler = _ListHandler()
    previous_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        yield handler.events
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)


def sse_body(*payloads: str, done: bool = True) -> bytes:
    """Encode ``payloads`` as ``data:`` events, optionally ending with ``[DONE]``."""
    parts = [f"data: {p}\n\n" for p in payloads]
    if done:
        parts.append("data: [DONE]\n\n")
    return "".join(parts).encode("utf-8")


@pytest.fixture()
def make_sse_body():
    return sse_body


class BlockingStream:
    """Byte stream whose ``read`` blocks until data is fed or it is closed."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._chunks: List[bytes] = []
        self._eof = False
        self.closed = False
        self.read_started = threading.Event()

    def feed(self, data: bytes) -> None:
        with self._cond:
            self._chunks.append(data)
            self._cond.notify_all()

    def finish(self) -> None:
        with self._cond:
            self._eof = True
            self._cond.notify_all()

    def read(self, size: int = -1) -> bytes:
        self.read_started.set()
        with self._cond:
            while not self._chunks and not self._eof and not self.closed:
                self._cond.wait()
            if self.closed:
                raise ValueError("read from closed stream")
            if not self._chunks:
                return b""
            chunk = self._chunks.pop(0)
            if 0 <= size < len(chunk):
                self._chunks.insert(0, chunk[size:])
                chunk = chunk[:size]
            return chunk

    def close(self) -> None:
        with self._cond:
            self.closed = True
            self._cond.notify_all()


@pytest.fixture()
def blocking_stream() -> BlockingStream:
    return BlockingStream()


@pytest.fixture(autouse=True)
def _isolate_runtime_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep host configuration out of tests and drop pooled clients afterwards."""
    for name in list(os.environ):
        if name.startswith("CHATSTREAM_"):
            monkeypatch.delenv(name, raising=False)
    from chatstream.config import reset_config_cache

    reset_config_cache()
    yield
    reset_config_cache()
    close_all_clients()
