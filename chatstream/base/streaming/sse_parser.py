"""Server-Sent Events parser.

Turns a byte stream into discrete :class:`SSEEvent` records:

* an event is a run of ``field: value`` lines terminated by a blank line;
* ``data`` values accumulate, joined with ``\\n``; ``event`` and ``id`` are
  stored; ``retry`` and unknown fields are ignored;
* comment lines (leading ``:``), lines without a colon and blank lines with
  no pending data are skipped without surfacing anything;
* at end of stream, pending data is returned once as a final event.

The parser is single pass: once the source is exhausted every further call
to :meth:`SSEParser.parse_next` returns ``None``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional

import httpx

from ..errors import ChatStreamError, TransportError
from .byte_streams import as_buffered


@dataclass(frozen=True)
class SSEEvent:
    """One dispatched event (``event`` and ``id`` are ``None`` when absent)."""

    data: str
    event: Optional[str] = None
    id: Optional[str] = None


class SSEParser:
    """Incremental SSE parser over a binary source."""

    def __init__(self, source) -> None:
        self._source = as_buffered(source)
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether end of stream has been reached."""
        return self._closed

    def _readline(self) -> bytes:
        try:
            return self._source.readline()
        except ChatStreamError:
            raise
        except (OSError, ValueError, httpx.HTTPError) as exc:
            raise TransportError(f"error reading stream: {exc}") from exc

    def parse_next(self) -> Optional[SSEEvent]:
        """Return the next event, or ``None`` at end of stream."""
        if self._closed:
            return None

        event_type: Optional[str] = None
        event_id: Optional[str] = None
        data: List[str] = []

        while True:
            raw = self._readline()
            if not raw:
                self._closed = True
                if data:
                    return SSEEvent(data="\n".join(data), event=event_type, id=event_id)
                return None

            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                if data:
                    return SSEEvent(data="\n".join(data), event=event_type, id=event_id)
                continue
            if line.startswith(":"):
                continue

            name, sep, value = line.partition(":")
            if not sep:
                continue
            value = value.strip()
            if name == "data":
                data.append(value)
            elif name == "event":
                event_type = value
            elif name == "id":
                event_id = value

    def __iter__(self) -> Iterator[SSEEvent]:
        while (event := self.parse_next()) is not None:
            yield event


__all__ = ["SSEEvent", "SSEParser"]
