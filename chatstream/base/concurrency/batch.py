"""Fixed-size batch processing on top of :class:`ConcurrentDispatcher`."""
from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable, Sequence, TypeVar

from ...config.defaults import DEFAULT_BATCH_SIZE
from ..cancellation import CancellationToken
from .dispatcher import ConcurrentDispatcher, DispatchResult

RequestT = TypeVar("RequestT")
T = TypeVar("T")


class BatchProcessor:
    """Runs requests batch by batch, reporting each result to a callback.

    Result indices passed to the callback refer to the position in the full
    request list. Cancellation is checked after each batch; a cancelled run
    raises ``CancelledError`` once the current batch has been reported.
    """

    def __init__(self, dispatcher: ConcurrentDispatcher, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._dispatcher = dispatcher
        self.batch_size = batch_size if batch_size > 0 else DEFAULT_BATCH_SIZE

    def process(
        self,
        requests: Iterable[RequestT],
        operation: Callable[[RequestT, CancellationToken], T],
        callback: Callable[[DispatchResult[T]], None],
        token: CancellationToken | None = None,
    ) -> None:
        items: Sequence[RequestT] = list(requests)
        token = token if token is not None else CancellationToken()
        for start in range(0, len(items), self.batch_size):
            batch = items[start:start + self.batch_size]
            for result in self._dispatcher.dispatch(batch, operation, token):
                callback(replace(result, index=start + result.index))
            token.raise_if_cancelled()


__all__ = ["BatchProcessor"]
