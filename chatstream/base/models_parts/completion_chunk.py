"""Pydantic models for the legacy text-completion stream."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .choice_error import ChoiceError
from .usage import Usage


class CompletionStreamChoice(BaseModel):
    index: int = 0
    text: str = ""
    finish_reason: Optional[str] = None
    error: Optional[ChoiceError] = None


class CompletionChunk(BaseModel):
    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[CompletionStreamChoice] = Field(default_factory=list)
    usage: Optional[Usage] = None

    @property
    def content(self) -> str:
        return self.choices[0].text if self.choices else ""


__all__ = ["CompletionStreamChoice", "CompletionChunk"]
