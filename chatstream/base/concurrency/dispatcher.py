"""Bounded-concurrency fan-out of single-shot and streaming calls.

Each call runs at most ``max_concurrency`` worker threads that pull request
indices in input order; a shared :class:`ConcurrencyLimiter` keeps at most
``max_concurrency`` operations in flight across concurrent calls on one
dispatcher. Each worker produces exactly one final :class:`DispatchResult` for its
index, whether the call succeeded, failed, or was cancelled while waiting.

``dispatch`` returns results in input order regardless of completion order.
``dispatch_stream`` returns a :class:`ResultChannel` fed by all workers:
non-final results carry chunks, ordered within one index but interleaved
across indices, and the channel ends only after every index has delivered
its final result.
"""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Sequence, TypeVar

from ...config.defaults import DEFAULT_MAX_CONCURRENCY
from ..cancellation import CancellationToken, CancelledError
from ..interfaces import ChunkStream
from ..logging import LogContext, get_logger, log_event
from .limiter import ConcurrencyLimiter

RequestT = TypeVar("RequestT")
T = TypeVar("T")

_logger = get_logger("chatstream.dispatch")


@dataclass
class DispatchResult(Generic[T]):
    """Outcome for one input index.

    Exactly one of ``payload``/``error`` is meaningful on a final result;
    a streaming success-completion is final with neither set.
    """

    index: int
    payload: Optional[T] = None
    error: Optional[BaseException] = None
    is_final: bool = True

    @property
    def ok(self) -> bool:
        return self.error is None


class ResultChannel(Generic[T]):
    """Fan-in queue of streaming dispatch results.

    Iterate it to consume results as they arrive; iteration ends once every
    worker has emitted its final result.
    """

    _CLOSED = object()

    def __init__(self, expected: int) -> None:
        self.expected = expected
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._exhausted = False
        self._done = threading.Event()

    def put(self, result: DispatchResult[T]) -> None:
        self._queue.put(result)

    def close(self) -> None:
        self._queue.put(self._CLOSED)
        self._done.set()

    @property
    def closed(self) -> bool:
        """Whether all workers have finished (results may still be queued)."""
        return self._done.is_set()

    def get(self, timeout: float | None = None) -> Optional[DispatchResult[T]]:
        """Next result, or ``None`` once the channel is drained and closed.

        Raises ``queue.Empty`` if ``timeout`` elapses first.
        """
        if self._exhausted:
            return None
        item = self._queue.get(timeout=timeout)
        if item is self._CLOSED:
            self._exhausted = True
            return None
        return item

    def __iter__(self) -> Iterator[DispatchResult[T]]:
        while (result := self.get()) is not None:
            yield result

    def collect(self) -> Dict[int, List[DispatchResult[T]]]:
        """Drain the channel, grouping results by index (per-index order kept)."""
        grouped: Dict[int, List[DispatchResult[T]]] = {}
        for result in self:
            grouped.setdefault(result.index, []).append(result)
        return grouped


class ConcurrentDispatcher:
    """Runs many calls at once under one concurrency limit.

    The limiter belongs to the dispatcher, so concurrent ``dispatch`` calls on
    the same instance share the bound.
    """

    def __init__(self, max_concurrency: int = DEFAULT_MAX_CONCURRENCY) -> None:
        if max_concurrency <= 0:
            max_concurrency = DEFAULT_MAX_CONCURRENCY
        self.max_concurrency = max_concurrency
        self._limiter = ConcurrencyLimiter(max_concurrency)

    @property
    def limiter(self) -> ConcurrencyLimiter:
        return self._limiter

    def dispatch(
        self,
        requests: Iterable[RequestT],
        operation: Callable[[RequestT, CancellationToken], T],
        token: CancellationToken | None = None,
    ) -> List[DispatchResult[T]]:
        """Call ``operation(request, token)`` for every request; results in input order."""
        items: Sequence[RequestT] = list(requests)
        token = token if token is not None else CancellationToken()
        results: List[Optional[DispatchResult[T]]] = [None] * len(items)

        def _worker(index: int, request: RequestT) -> None:
            try:
                self._limiter.acquire(token)
            except CancelledError as exc:
                results[index] = DispatchResult(index=index, error=exc)
                return
            try:
                payload = operation(request, token)
            except Exception as exc:
                results[index] = DispatchResult(index=index, error=exc)
            else:
                results[index] = DispatchResult(index=index, payload=payload)
            finally:
                self._limiter.release()

        for t in self._start_pool(items, _worker, "chatstream-dispatch"):
            t.join()

        final = [
            r if r is not None else DispatchResult(index=i, error=RuntimeError("worker produced no result"))
            for i, r in enumerate(results)
        ]
        log_event(
            _logger,
            "dispatch.complete",
            requests=len(final),
            errors=sum(1 for r in final if not r.ok),
            max_concurrency=self.max_concurrency,
        )
        return final

    def dispatch_stream(
        self,
        requests: Iterable[RequestT],
        open_stream: Callable[[RequestT, CancellationToken], ChunkStream[T]],
        token: CancellationToken | None = None,
    ) -> ResultChannel[T]:
        """Open and drain one stream per request, fanning chunks into a channel."""
        items: Sequence[RequestT] = list(requests)
        token = token if token is not None else CancellationToken()
        channel: ResultChannel[T] = ResultChannel(expected=len(items))

        threads = self._start_pool(
            items,
            lambda i, req: self._stream_worker(i, req, open_stream, token, channel),
            "chatstream-stream",
        )

        def _supervise() -> None:
            for t in threads:
                t.join()
            channel.close()
            log_event(_logger, "dispatch.stream.complete", requests=len(items))

        threading.Thread(target=_supervise, name="chatstream-stream-supervisor", daemon=True).start()
        return channel

    def _start_pool(
        self,
        items: Sequence[RequestT],
        work: Callable[[int, RequestT], None],
        name: str,
    ) -> List[threading.Thread]:
        """Start at most ``max_concurrency`` daemon threads draining ``items``.

        Each worker pulls the next index until none remain, so queued items
        still reach ``work`` (and the limiter) after a cancellation.
        """
        pending: "queue.SimpleQueue[int]" = queue.SimpleQueue()
        for index in range(len(items)):
            pending.put(index)

        def _drain() -> None:
            while True:
                try:
                    index = pending.get_nowait()
                except queue.Empty:
                    return
                work(index, items[index])

        threads = [
            threading.Thread(target=_drain, name=f"{name}-{n}", daemon=True)
            for n in range(min(self.max_concurrency, len(items)))
        ]
        for t in threads:
            t.start()
        return threads

    def _stream_worker(
        self,
        index: int,
        request: RequestT,
        open_stream: Callable[[RequestT, CancellationToken], ChunkStream[T]],
        token: CancellationToken,
        channel: ResultChannel[T],
    ) -> None:
        try:
            self._limiter.acquire(token)
        except CancelledError as exc:
            channel.put(DispatchResult(index=index, error=exc))
            return

        stream: Optional[ChunkStream[T]] = None
        try:
            stream = open_stream(request, token)
            while True:
                token.raise_if_cancelled()
                chunk = stream.read()
                if chunk is None:
                    break
                channel.put(DispatchResult(index=index, payload=chunk, is_final=False))
        except Exception as exc:
            channel.put(DispatchResult(index=index, error=exc))
        else:
            channel.put(DispatchResult(index=index))
        finally:
            try:
                if stream is not None:
                    stream.close()
            except Exception as exc:  # final result already delivered
                log_event(
                    _logger,
                    "dispatch.stream.close_failed",
                    LogContext(index=index),
                    level=logging.WARNING,
                    error=str(exc),
                )
            finally:
                self._limiter.release()


__all__ = ["DispatchResult", "ResultChannel", "ConcurrentDispatcher"]
