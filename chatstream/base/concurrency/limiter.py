"""Counting semaphore whose waits are interruptible by a cancellation token.

``threading.Semaphore.acquire`` can only time out; the dispatcher needs a
waiter to leave as soon as the shared token fires. Waiters sleep on a
condition variable that is notified both on release and on cancellation.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from ..cancellation import CancellationToken, CancelledError


class ConcurrencyLimiter:
    """Hands out at most ``max_concurrency`` slots at a time."""

    def __init__(self, max_concurrency: int) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self._cond = threading.Condition()
        self._in_use = 0

    @property
    def in_use(self) -> int:
        with self._cond:
            return self._in_use

    def _wake(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def acquire(self, token: CancellationToken | None = None) -> None:
        """Block until a slot is free; raise ``CancelledError`` if ``token`` fires first."""
        unregister = token.add_callback(self._wake) if token is not None else None
        try:
            with self._cond:
                while True:
                    if token is not None and token.cancelled:
                        raise CancelledError(token.reason or "cancelled while waiting for a slot")
                    if self._in_use < self.max_concurrency:
                        self._in_use += 1
                        return
                    self._cond.wait()
        finally:
            if unregister is not None:
                unregister()

    def release(self) -> None:
        with self._cond:
            if self._in_use == 0:
                raise RuntimeError("release() called more times than acquire()")
            self._in_use -= 1
            # notify_all: a woken waiter may be cancelled and leave without taking the slot.
            self._cond.notify_all()

    @contextmanager
    def slot(self, token: CancellationToken | None = None) -> Iterator[None]:
        self.acquire(token)
        try:
            yield
        finally:
            self.release()


__all__ = ["ConcurrencyLimiter"]
