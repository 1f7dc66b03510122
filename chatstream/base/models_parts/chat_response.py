"""Pydantic model for a single-shot (non-streaming) chat completion body."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .chat_chunk import ChoiceDelta
from .choice_error import ChoiceError
from .usage import Usage


class ResponseChoice(BaseModel):
    index: int = 0
    message: ChoiceDelta = Field(default_factory=ChoiceDelta)
    finish_reason: Optional[str] = None
    error: Optional[ChoiceError] = None


class ChatCompletion(BaseModel):
    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[ResponseChoice] = Field(default_factory=list)
    usage: Optional[Usage] = None

    @property
    def content(self) -> str:
        return (self.choices[0].message.content or "") if self.choices else ""


__all__ = ["ResponseChoice", "ChatCompletion"]
