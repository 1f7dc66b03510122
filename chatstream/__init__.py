"""chatstream package

Client-side runtime for chat-completion APIs that stream results over
server-sent events.

Public API (re-exported):
    - Version: ``__version__``
    - Clients: :class:`StreamingChatClient`, :class:`RetryingChatClient`,
      :class:`CircuitBreakerChatClient`, :class:`ConcurrentChatClient`,
      :class:`ObservableChatClient`
    - Metrics: :class:`MetricsCollector`
    - Streaming: :class:`SSEParser`, :class:`ChatCompletionStreamReader`,
      :class:`CancellableReader`, :class:`StreamController`
    - Resilience: :class:`RetryPolicy`, :class:`RetryExecutor`,
      :class:`CircuitBreaker`
    - Concurrency: :class:`ConcurrentDispatcher`, :class:`BatchProcessor`
    - Errors: :class:`ChatStreamError` and subclasses
    - Configuration: :func:`get_runtime_config`
"""

from .base import (
    APIError,
    BatchProcessor,
    CancellableReader,
    CancellationToken,
    CancelledError,
    ChatCompletion,
    ChatCompletionChunk,
    ChatCompletionStreamReader,
    ChatStreamError,
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    CompletionStreamReader,
    ConcurrentDispatcher,
    DecodeError,
    DispatchResult,
    ErrorCode,
    ErrorKind,
    HttpTransport,
    MetricsCollector,
    RetriesExhaustedError,
    RetryExecutor,
    RetryPolicy,
    SSEEvent,
    SSEParser,
    StreamController,
    StreamingRetryUnsupportedError,
    TransportError,
    deadline_token,
    retry,
)
from .client import (
    CircuitBreakerChatClient,
    ConcurrentChatClient,
    ObservableChatClient,
    RetryingChatClient,
    StreamingChatClient,
)
from .config import RuntimeConfig, get_runtime_config

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "APIError",
    "BatchProcessor",
    "CancellableReader",
    "CancellationToken",
    "CancelledError",
    "ChatCompletion",
    "ChatCompletionChunk",
    "ChatCompletionStreamReader",
    "ChatStreamError",
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "CompletionStreamReader",
    "ConcurrentDispatcher",
    "DecodeError",
    "DispatchResult",
    "ErrorCode",
    "ErrorKind",
    "HttpTransport",
    "MetricsCollector",
    "RetriesExhaustedError",
    "RetryExecutor",
    "RetryPolicy",
    "SSEEvent",
    "SSEParser",
    "StreamController",
    "StreamingRetryUnsupportedError",
    "TransportError",
    "deadline_token",
    "retry",
    "CircuitBreakerChatClient",
    "ConcurrentChatClient",
    "ObservableChatClient",
    "RetryingChatClient",
    "StreamingChatClient",
    "RuntimeConfig",
    "get_runtime_config",
]
