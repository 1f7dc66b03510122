"""Cooperative cancellation token implementation.

Exposes the ``CancellationToken`` class shared by every suspension point of
the runtime: waiting for a concurrency slot, sleeping between retries, and
blocking transport reads. Waiters either block on :meth:`wait` or register a
callback with :meth:`add_callback`; both wake as soon as ``cancel`` fires.
"""

from __future__ import annotations

from threading import Event, Lock
from typing import Callable, Dict, List

from .state import State
from .cancelled_error import CancelledError


class CancellationToken:
    """A cancellation token with cascading semantics.

    Thread-safe. Child tokens inherit cancellation when the parent is
    cancelled; cancelling a child never affects its parent.
    """

    def __init__(self, *, parent: "CancellationToken | None" = None) -> None:
        self._state = State()
        self._lock = Lock()
        self._event = Event()
        self._children: List[CancellationToken] = []
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._next_handle = 0
        self._parent = parent
        if parent is not None:
            parent.link_child(self)

    @property
    def cancelled(self) -> bool:  # noqa: D401 - short form
        """Whether cancellation has been requested."""
        return self._state.cancelled

    @property
    def reason(self) -> str | None:  # noqa: D401 - short form
        """Reason string supplied at cancel time (if any)."""
        return self._state.reason

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation, wake waiters, and cascade to children."""
        with self._lock:
            if self._state.cancelled:
                return
            self._state.cancelled = True
            self._state.reason = reason
            children = list(self._children)
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
        self._event.set()
        for callback in callbacks:
            callback()
        for child in children:
            child.cancel(reason)

    def link_child(self, token: "CancellationToken") -> "CancellationToken":
        """Link a child token so parent cancellation cascades (returns child)."""
        with self._lock:
            self._children.append(token)
            should_cancel = self._state.cancelled
            reason = self._state.reason
        if should_cancel:
            token.cancel(reason)
        return token

    def unlink_child(self, token: "CancellationToken") -> None:
        """Forget a child (used when a derived scope is closed)."""
        with self._lock:
            if token in self._children:
                self._children.remove(token)

    def detach(self) -> None:
        """Remove this token from its parent's cascade list."""
        if self._parent is not None:
            self._parent.unlink_child(self)

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` once on cancellation; returns an unregister function.

        If the token is already cancelled the callback runs immediately.
        """
        with self._lock:
            if not self._state.cancelled:
                handle = self._next_handle
                self._next_handle += 1
                self._callbacks[handle] = callback

                def _unregister() -> None:
                    with self._lock:
                        self._callbacks.pop(handle, None)

                return _unregister
        callback()
        return lambda: None

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to ``timeout`` seconds; return ``True`` if cancelled."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        """Raise ``CancelledError`` if token is cancelled."""
        if self._state.cancelled:
            raise CancelledError(self._state.reason or "operation cancelled")

    def child(self) -> "CancellationToken":
        """Create and link a child token (shortcut)."""
        return CancellationToken(parent=self)

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return (
            f"CancellationToken(cancelled={self._state.cancelled}, "
            f"reason={self._state.reason!r}, children={len(self._children)})"
        )


__all__ = ["CancellationToken"]
