"""Chat clients composing the transport with the streaming and resilience layers.

``StreamingChatClient`` is the plain client: single-shot calls return a
:class:`ChatCompletion`, streamed calls return a typed stream reader backed
by a cancellable :class:`StreamController`. The other clients wrap any
object with the same ``create``/``stream`` surface:

* ``RetryingChatClient``: classified backoff retries for single-shot calls;
  streaming is refused.
* ``CircuitBreakerChatClient``: rejects calls while the breaker is open.
* ``ConcurrentChatClient``: fans many requests out under a concurrency bound.
* ``ObservableChatClient``: request/response hooks plus per-operation
  latency, token and error counters.

Request payloads and headers are opaque mappings supplied by the caller.
When ``CHATSTREAM_TIMEOUT_OVERALL_SECONDS`` (or ``TimeoutConfig``) sets an
overall timeout, streams and retry loops run under a deadline token and end
with ``CancelledError("timeout")`` once it elapses.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from .base.cancellation import CancellationToken, CancelledError
from .base.concurrency import BatchProcessor, ConcurrentDispatcher, DispatchResult, ResultChannel
from .base.errors import DecodeError, classify_exception
from .base.http import HttpTransport
from .base.interfaces import Transport
from .base.logging import LogContext, get_logger, log_event
from .base.metrics import MetricsCollector, OperationCounters
from .base.models import ChatCompletion, ChatCompletionChunk, Usage
from .base.resilience import CircuitBreaker, RetryExecutor, RetryPolicy
from .base.streaming import (
    CancellationPolicy,
    ChatCompletionStreamReader,
    CompletionStreamReader,
    StreamController,
)
from .base.streaming.cancellable_reader import CLOSED_REASON
from .base.timeouts import TIMEOUT_REASON, TimeoutConfig, deadline_token, get_timeout_config
from .config import RuntimeConfig, get_runtime_config
from .config.defaults import DEFAULT_CHAT_PATH, DEFAULT_COMPLETION_PATH

Payload = Mapping[str, Any]
Headers = Optional[Mapping[str, str]]
RequestHook = Callable[[str, Payload], None]
ResponseHook = Callable[[str, Payload, Any, Optional[BaseException]], None]

CHAT_OPERATION = "chat_completion"
STREAM_OPERATION = "chat_stream"

_logger = get_logger("chatstream.client")


def _release_scope(scope: CancellationToken, reason: str) -> None:
    """Stop a deadline scope's timer and unlink it from its parent."""
    scope.cancel(reason)
    scope.detach()


class StreamingChatClient:
    """Single-shot and streamed chat completions over a :class:`Transport`."""

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        config: RuntimeConfig | None = None,
        provider: str | None = None,
        cancellation_policy: CancellationPolicy | None = None,
        chat_path: str = DEFAULT_CHAT_PATH,
        completion_path: str = DEFAULT_COMPLETION_PATH,
        timeouts: TimeoutConfig | None = None,
    ) -> None:
        self.config = config if config is not None else get_runtime_config()
        self.timeouts = timeouts if timeouts is not None else get_timeout_config()
        self.transport = transport if transport is not None else HttpTransport(self.config.base_url)
        self.provider = provider
        self.cancellation_policy = (
            cancellation_policy if cancellation_policy is not None else self.config.cancellation_policy()
        )
        self.chat_path = chat_path
        self.completion_path = completion_path

    def create(
        self,
        payload: Payload,
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> ChatCompletion:
        if token is not None:
            token.raise_if_cancelled()
        body = self.transport.post_json(self.chat_path, {**payload, "stream": False}, headers)
        try:
            return ChatCompletion.model_validate(body)
        except ValidationError as exc:
            raise DecodeError(
                f"failed to parse response: {exc.error_count()} validation error(s)", payload=str(body)
            ) from exc

    def open_controller(
        self,
        path: str,
        payload: Payload,
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> StreamController:
        """Start a streamed call and wrap its body in a :class:`StreamController`.

        With an overall timeout configured the controller's token is a child
        of a deadline token, which is released when the stream closes.
        """
        if token is not None:
            token.raise_if_cancelled()
        scoped = self.deadline_scope(token)
        try:
            response = self.transport.open_stream(path, {**payload, "stream": True}, headers)
        except BaseException:
            if scoped is not token:
                _release_scope(scoped, CLOSED_REASON)
            raise
        controller = StreamController(
            response.stream,
            scoped,
            provider=self.provider,
            policy=self.cancellation_policy,
        )
        if scoped is not token:
            controller.token.add_callback(lambda: _release_scope(scoped, CLOSED_REASON))
        return controller

    def deadline_scope(self, token: CancellationToken | None) -> CancellationToken | None:
        """``token`` bounded by ``overall_timeout_seconds``; ``token`` itself when unset."""
        seconds = self.timeouts.overall_timeout_seconds
        if seconds is None:
            return token
        return deadline_token(seconds, token)

    def stream(
        self,
        payload: Payload,
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> ChatCompletionStreamReader:
        """Streamed chat completion; close the reader (or cancel ``token``) to abandon it."""
        return self.open_controller(self.chat_path, payload, headers, token).chat_chunks()

    def stream_completion(
        self,
        payload: Payload,
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> CompletionStreamReader:
        """Streamed text completion."""
        return self.open_controller(self.completion_path, payload, headers, token).completion_chunks()


class RetryingChatClient:
    """Retries single-shot calls of ``client`` per ``policy``.

    An overall timeout bounds the whole loop, backoff sleeps included.
    """

    def __init__(self, client: StreamingChatClient, policy: RetryPolicy | None = None) -> None:
        self.client = client
        self.executor = RetryExecutor(policy if policy is not None else client.config.retry_policy())

    def create(
        self,
        payload: Payload,
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> ChatCompletion:
        scoped = self.client.deadline_scope(token)
        try:
            return self.executor.execute(lambda: self.client.create(payload, headers, scoped), scoped)
        finally:
            if scoped is not token:
                _release_scope(scoped, "done")

    def stream(self, payload: Payload, headers: Headers = None, token: CancellationToken | None = None):
        """Always raises ``StreamingRetryUnsupportedError``."""
        return self.executor.execute_stream(payload, headers, token)


class CircuitBreakerChatClient:
    """Routes calls of ``client`` through a :class:`CircuitBreaker`.

    For streams only opening the connection counts toward the breaker; errors
    raised while reading a stream do not.
    """

    def __init__(self, client: StreamingChatClient, breaker: CircuitBreaker | None = None) -> None:
        self.client = client
        self.breaker = breaker if breaker is not None else client.config.circuit_breaker(name="chat")

    def create(
        self,
        payload: Payload,
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> ChatCompletion:
        return self.breaker.execute(lambda: self.client.create(payload, headers, token))

    def stream(
        self,
        payload: Payload,
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> ChatCompletionStreamReader:
        return self.breaker.execute(lambda: self.client.stream(payload, headers, token))


class ConcurrentChatClient:
    """Runs many chat calls of ``client`` at once under one concurrency bound."""

    def __init__(
        self,
        client: StreamingChatClient,
        max_concurrency: int | None = None,
        batch_size: int | None = None,
    ) -> None:
        self.client = client
        cfg = client.config
        self.dispatcher = ConcurrentDispatcher(max_concurrency if max_concurrency is not None else cfg.max_concurrency)
        self.batch_size = batch_size if batch_size is not None else cfg.batch_size

    def create_many(
        self,
        payloads: Sequence[Payload],
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> List[DispatchResult[ChatCompletion]]:
        """One result per payload, in input order."""
        return self.dispatcher.dispatch(
            payloads,
            lambda payload, tok: self.client.create(payload, headers, tok),
            token,
        )

    def stream_many(
        self,
        payloads: Sequence[Payload],
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> ResultChannel[ChatCompletionChunk]:
        """Chunks of all streams fanned into one channel, tagged by payload index."""
        return self.dispatcher.dispatch_stream(
            payloads,
            lambda payload, tok: self.client.stream(payload, headers, tok),
            token,
        )

    def create_batches(
        self,
        payloads: Sequence[Payload],
        callback: Callable[[DispatchResult[ChatCompletion]], None],
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Process ``payloads`` in batches of ``batch_size``, reporting each result."""
        BatchProcessor(self.dispatcher, self.batch_size).process(
            payloads,
            lambda payload, tok: self.client.create(payload, headers, tok),
            callback,
            token,
        )


def _record_outcome(
    counters: OperationCounters,
    started_ms: int,
    error: BaseException | None,
    usage: Usage | None = None,
) -> None:
    latency_ms = counters.monotonic_ms() - started_ms
    if error is None:
        counters.record_success(latency_ms)
        if usage is not None:
            counters.record_tokens(usage.prompt_tokens, usage.completion_tokens)
    elif isinstance(error, CancelledError):
        if error.message == TIMEOUT_REASON:
            counters.record_timeout()
        else:
            counters.record_cancelled()
    else:
        counters.record_failure(classify_exception(error).value, latency_ms)


class ObservedChunkStream:
    """Chunk reader proxy that records the outcome of one streamed call.

    Latency spans open to end-of-stream; token usage comes from the last
    chunk carrying a ``usage`` block. Closing before the end counts as a
    cancellation.
    """

    def __init__(self, reader, counters: OperationCounters, started_ms: int) -> None:
        self._reader = reader
        self._counters = counters
        self._started_ms = started_ms
        self._usage: Usage | None = None
        self._finished = False

    def read(self) -> Optional[ChatCompletionChunk]:
        try:
            chunk = self._reader.read()
        except Exception as exc:
            self._finish(exc)
            raise
        if chunk is None:
            self._finish(None)
        elif chunk.usage is not None:
            self._usage = chunk.usage
        return chunk

    def __iter__(self) -> Iterator[ChatCompletionChunk]:
        while (chunk := self.read()) is not None:
            yield chunk

    def close(self) -> None:
        try:
            self._reader.close()
        finally:
            self._finish(CancelledError(CLOSED_REASON))

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _finish(self, error: BaseException | None) -> None:
        if self._finished:
            return
        self._finished = True
        _record_outcome(self._counters, self._started_ms, error, self._usage)


class ObservableChatClient:
    """Request/response hooks and per-operation metrics around ``client``.

    * Request hooks run before each call as ``hook(operation, payload)``.
    * Response hooks run after it as ``hook(operation, payload, response,
      error)`` with exactly one of ``response``/``error`` set. For streams
      ``response`` is the :class:`ObservedChunkStream` handed to the caller.
    * ``metrics`` holds one :class:`OperationCounters` per operation name
      (``chat_completion``, ``chat_stream``).

    Hook exceptions propagate to the caller.
    """

    def __init__(
        self,
        client: StreamingChatClient,
        metrics: MetricsCollector | None = None,
        *,
        log_requests: bool = False,
    ) -> None:
        self.client = client
        self.metrics = metrics if metrics is not None else MetricsCollector()
        self.log_requests = log_requests
        self._request_hooks: List[RequestHook] = []
        self._response_hooks: List[ResponseHook] = []

    @property
    def config(self) -> RuntimeConfig:
        return self.client.config

    def deadline_scope(self, token: CancellationToken | None) -> CancellationToken | None:
        return self.client.deadline_scope(token)

    def add_request_hook(self, hook: RequestHook) -> None:
        self._request_hooks.append(hook)

    def add_response_hook(self, hook: ResponseHook) -> None:
        self._response_hooks.append(hook)

    def create(
        self,
        payload: Payload,
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> ChatCompletion:
        counters = self._begin(CHAT_OPERATION, payload)
        started = counters.monotonic_ms()
        try:
            response = self.client.create(payload, headers, token)
        except Exception as exc:
            _record_outcome(counters, started, exc)
            self._after(CHAT_OPERATION, payload, None, exc)
            raise
        _record_outcome(counters, started, None, response.usage)
        self._after(CHAT_OPERATION, payload, response, None)
        return response

    def stream(
        self,
        payload: Payload,
        headers: Headers = None,
        token: CancellationToken | None = None,
    ) -> ObservedChunkStream:
        counters = self._begin(STREAM_OPERATION, payload)
        started = counters.monotonic_ms()
        try:
            reader = self.client.stream(payload, headers, token)
        except Exception as exc:
            _record_outcome(counters, started, exc)
            self._after(STREAM_OPERATION, payload, None, exc)
            raise
        observed = ObservedChunkStream(reader, counters, started)
        self._after(STREAM_OPERATION, payload, observed, None)
        return observed

    def _begin(self, operation: str, payload: Payload) -> OperationCounters:
        for hook in self._request_hooks:
            hook(operation, payload)
        if self.log_requests:
            log_event(
                _logger,
                "client.request",
                LogContext(model=payload.get("model")),
                operation=operation,
                messages=len(payload.get("messages") or ()),
            )
        counters = self.metrics.counters(operation)
        counters.record_start()
        return counters

    def _after(
        self,
        operation: str,
        payload: Payload,
        response: Any,
        error: BaseException | None,
    ) -> None:
        if error is not None:
            log_event(
                _logger,
                "client.error",
                LogContext(model=payload.get("model")),
                level=logging.INFO if isinstance(error, CancelledError) else logging.WARNING,
                operation=operation,
                error_kind=classify_exception(error).value,
                error=str(error),
            )
        for hook in self._response_hooks:
            hook(operation, payload, response, error)


__all__ = [
    "StreamingChatClient",
    "RetryingChatClient",
    "CircuitBreakerChatClient",
    "ConcurrentChatClient",
    "ObservableChatClient",
    "ObservedChunkStream",
    "CHAT_OPERATION",
    "STREAM_OPERATION",
]
