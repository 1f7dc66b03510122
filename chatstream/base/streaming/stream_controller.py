"""StreamController: cancellable SSE event source over a transport body.

Combines a :class:`CancellableReader` with an :class:`SSEParser` so callers
get raw events (``read_event``) or typed chunks (``chat_chunks`` /
``completion_chunks``) from one object that also owns cancellation. When a
provider slug is supplied, cancelling logs whether the injected
:class:`CancellationPolicy` expects the upstream to stop generating.
"""
from __future__ import annotations

from typing import Iterator, Optional

from ..cancellation import CancellationToken
from ..logging import LogContext, get_logger, log_event
from .cancellable_reader import CancellableReader
from .cancellation_policy import CancellationPolicy, default_cancellation_policy
from .sse_parser import SSEEvent, SSEParser
from .stream_reader import ChatCompletionStreamReader, CompletionStreamReader

_logger = get_logger("chatstream.stream")


class StreamController:
    """Cancellable event iterator around one streamed response body.

    Responsibilities:
      * Parse ``SSEEvent`` objects from the body.
      * Expose ``cancel(reason)`` and an idempotent ``close()``.
      * Hand out typed chunk readers sharing the same parser.
    """

    def __init__(
        self,
        stream,
        token: CancellationToken | None = None,
        *,
        provider: str | None = None,
        policy: CancellationPolicy | None = None,
    ) -> None:
        self._reader = CancellableReader(stream, token)
        self._parser = SSEParser(self._reader)
        self._provider = provider
        self._policy = policy if policy is not None else default_cancellation_policy()

    @property
    def token(self) -> CancellationToken:
        return self._reader.token

    @property
    def finished(self) -> bool:  # noqa: D401 - short property
        """Whether the underlying event stream is exhausted."""
        return self._parser.closed

    @property
    def upstream_cancellable(self) -> bool:
        """Whether cancelling also stops generation at the upstream provider."""
        return self._policy.supports(self._provider)

    def read_event(self) -> Optional[SSEEvent]:
        return self._parser.parse_next()

    def __iter__(self) -> Iterator[SSEEvent]:
        return iter(self._parser)

    def chat_chunks(self) -> ChatCompletionStreamReader:
        return ChatCompletionStreamReader(parser=self._parser, closer=self)

    def completion_chunks(self) -> CompletionStreamReader:
        return CompletionStreamReader(parser=self._parser, closer=self)

    def cancel(self, reason: str | None = None) -> None:
        """Abandon the stream. Safe to invoke multiple times or after completion."""
        log_event(
            _logger,
            "stream.controller.cancel",
            LogContext(provider=self._provider),
            reason=reason,
            upstream_cancellable=self.upstream_cancellable,
        )
        self._reader.cancel(reason)

    def close(self) -> None:
        self._reader.close()


__all__ = ["StreamController"]
