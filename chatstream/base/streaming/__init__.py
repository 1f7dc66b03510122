"""Streaming package: SSE parsing, typed stream readers and cancellation.

Exposes the streaming primitives under a single namespace.
"""

from .byte_streams import IteratorByteStream, as_buffered
from .sse_parser import SSEEvent, SSEParser
from .stream_reader import (
    DONE_SENTINEL,
    ChatCompletionStreamReader,
    CompletionStreamReader,
    collect_text,
)
from .cancellable_reader import CancellableReader
from .cancellation_policy import CancellationPolicy, default_cancellation_policy
from .stream_controller import StreamController

__all__ = [
    "IteratorByteStream",
    "as_buffered",
    "SSEEvent",
    "SSEParser",
    "DONE_SENTINEL",
    "ChatCompletionStreamReader",
    "CompletionStreamReader",
    "collect_text",
    "CancellableReader",
    "CancellationPolicy",
    "default_cancellation_policy",
    "StreamController",
]
