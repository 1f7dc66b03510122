"""
Runtime base package.

Exports the streaming, resilience and concurrency primitives:
- Streaming: SSE parsing, typed stream readers, cancellable reads
- Resilience: retry executor and circuit breaker
- Concurrency: bounded dispatcher and batch processor
- Metrics: per-operation counters
- Errors, cancellation, timeouts and logging shared by all layers
"""

from .cancellation import CancellationToken, CancelledError
from .errors import (
    APIError,
    ChatStreamError,
    CircuitOpenError,
    DecodeError,
    ErrorCode,
    ErrorKind,
    RetriesExhaustedError,
    StreamingRetryUnsupportedError,
    TransportError,
    classify_exception,
)
from .timeouts import TimeoutConfig, deadline_token, get_timeout_config
from .models import ChatCompletion, ChatCompletionChunk, CompletionChunk, Usage
from .streaming import (
    CancellableReader,
    CancellationPolicy,
    ChatCompletionStreamReader,
    CompletionStreamReader,
    SSEEvent,
    SSEParser,
    StreamController,
    collect_text,
)
from .resilience import CircuitBreaker, CircuitState, RetryExecutor, RetryPolicy, retry
from .concurrency import BatchProcessor, ConcurrentDispatcher, DispatchResult, ResultChannel
from .http import HttpTransport, TransportResponse
from .metrics import MetricsCollector, OperationCounters

__all__ = [
    "CancellationToken",
    "CancelledError",
    "APIError",
    "ChatStreamError",
    "CircuitOpenError",
    "DecodeError",
    "ErrorCode",
    "ErrorKind",
    "RetriesExhaustedError",
    "StreamingRetryUnsupportedError",
    "TransportError",
    "classify_exception",
    "TimeoutConfig",
    "deadline_token",
    "get_timeout_config",
    "ChatCompletion",
    "ChatCompletionChunk",
    "CompletionChunk",
    "Usage",
    "CancellableReader",
    "CancellationPolicy",
    "ChatCompletionStreamReader",
    "CompletionStreamReader",
    "SSEEvent",
    "SSEParser",
    "StreamController",
    "collect_text",
    "CircuitBreaker",
    "CircuitState",
    "RetryExecutor",
    "RetryPolicy",
    "retry",
    "BatchProcessor",
    "ConcurrentDispatcher",
    "DispatchResult",
    "ResultChannel",
    "HttpTransport",
    "TransportResponse",
    "MetricsCollector",
    "OperationCounters",
]
