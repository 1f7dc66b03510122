"""Per-choice error object embedded in a stream chunk."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..errors_parts.api_error import APIError


class ChoiceError(BaseModel):
    """Error reported for a single choice (``choices[i].error``)."""

    code: int
    message: str = ""
    metadata: Optional[Dict[str, Any]] = None

    def to_error(self) -> APIError:
        """Return the equivalent typed :class:`APIError`."""
        return APIError(self.code, self.message, self.metadata)


__all__ = ["ChoiceError"]
