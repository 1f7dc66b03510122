"""Response models public surface.

Re-exports the pydantic models decoded from stream payloads and single-shot
responses.
"""

from .models_parts.usage import Usage
from .models_parts.choice_error import ChoiceError
from .models_parts.chat_chunk import (
    ChatCompletionChunk,
    ChoiceDelta,
    StreamChoice,
    ToolCallDelta,
    ToolCallFunction,
)
from .models_parts.chat_response import ChatCompletion, ResponseChoice
from .models_parts.completion_chunk import CompletionChunk, CompletionStreamChoice

__all__ = [
    "Usage",
    "ChoiceError",
    "ChatCompletionChunk",
    "ChoiceDelta",
    "StreamChoice",
    "ToolCallDelta",
    "ToolCallFunction",
    "ChatCompletion",
    "ResponseChoice",
    "CompletionChunk",
    "CompletionStreamChoice",
]
