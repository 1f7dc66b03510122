"""
Pydantic models for one decoded chat-completion stream chunk.

Shape (extra keys are ignored)::

    {"id", "object", "created", "model",
     "choices": [{"index", "delta": {"role", "content", "tool_calls", ...},
                  "finish_reason", "native_finish_reason", "error"}],
     "usage": {...}}

A terminal chunk may carry ``usage`` with an empty ``choices`` list. Some
upstreams put ``finish_reason`` next to ``choices`` instead of inside the
choice; choices lacking their own finish reason inherit that value.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .choice_error import ChoiceError
from .usage import Usage


class ToolCallFunction(BaseModel):
    name: Optional[str] = None
    arguments: Optional[str] = None


class ToolCallDelta(BaseModel):
    """Incremental tool call fragment (arguments arrive in pieces)."""

    index: Optional[int] = None
    id: Optional[str] = None
    type: Optional[str] = None
    function: Optional[ToolCallFunction] = None


class ChoiceDelta(BaseModel):
    """Partial assistant message carried by a stream choice."""

    model_config = ConfigDict(extra="allow")

    role: Optional[str] = None
    content: Optional[str] = None
    reasoning: Optional[str] = None
    tool_calls: Optional[List[ToolCallDelta]] = None


class StreamChoice(BaseModel):
    index: int = 0
    delta: ChoiceDelta = Field(default_factory=ChoiceDelta)
    finish_reason: Optional[str] = None
    native_finish_reason: Optional[str] = None
    error: Optional[ChoiceError] = None


class ChatCompletionChunk(BaseModel):
    """One decoded unit of a streamed chat completion."""

    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[StreamChoice] = Field(default_factory=list)
    usage: Optional[Usage] = None
    system_fingerprint: Optional[str] = None
    finish_reason: Optional[str] = None

    @model_validator(mode="after")
    def _inherit_finish_reason(self) -> "ChatCompletionChunk":
        if self.finish_reason is not None:
            for choice in self.choices:
                if choice.finish_reason is None:
                    choice.finish_reason = self.finish_reason
        return self

    @property
    def content(self) -> str:
        """Delta text of the first choice (empty string when absent)."""
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""

    def choice_errors(self) -> List[ChoiceError]:
        """Per-choice error objects present on this chunk."""
        return [c.error for c in self.choices if c.error is not None]


__all__ = [
    "ToolCallFunction",
    "ToolCallDelta",
    "ChoiceDelta",
    "StreamChoice",
    "ChatCompletionChunk",
]
