"""Unit tests for the SSE parser.

Covers:
- data accumulation and event/id fields
- comment, blank and colon-less lines produce nothing
- pending data flushed at end of stream, then ``None`` forever
- chunk boundaries falling mid-line
- read failures surfacing as ``TransportError``
"""
from __future__ import annotations

import io

import pytest

from chatstream.base.errors import TransportError
from chatstream.base.streaming import SSEEvent, SSEParser


def test_single_event():
    parser = SSEParser(b"data: hello\n\n")
    assert parser.parse_next() == SSEEvent(data="hello")  # nosec B101 - asserts are appropriate in unit tests
    assert parser.parse_next() is None  # nosec B101
    assert parser.closed  # nosec B101


def test_multiline_data_joined_with_newline():
    parser = SSEParser(b"data: first\ndata: second\n\n")
    assert parser.parse_next().data == "first\nsecond"  # nosec B101


def test_event_and_id_fields_are_kept():
    parser = SSEParser(b"event: message\nid: 42\nretry: 1000\ndata: x\n\n")
    event = parser.parse_next()
    assert event == SSEEvent(data="x", event="message", id="42")  # nosec B101


def test_comments_and_noise_are_skipped():
    body = b": OPENROUTER PROCESSING\n\nnot a field\n\n\n\ndata: payload\n\n"
    events = list(SSEParser(body))
    assert events == [SSEEvent(data="payload")]  # nosec B101


def test_event_fields_without_data_produce_nothing():
    events = list(SSEParser(b"event: ping\n\ndata: a\n\n"))
    assert [e.data for e in events] == ["a"]  # nosec B101


def test_pending_data_flushed_at_eof_then_stays_closed():
    parser = SSEParser(b"data: tail")
    assert parser.parse_next().data == "tail"  # nosec B101
    for _ in range(3):
        assert parser.parse_next() is None  # nosec B101


def test_crlf_line_endings():
    events = list(SSEParser(b"data: one\r\n\r\ndata: two\r\n\r\n"))
    assert [e.data for e in events] == ["one", "two"]  # nosec B101


def test_chunks_split_mid_line():
    chunks = [b"da", b"ta: {\"a\":", b" 1}\n", b"\ndata: b\n", b"\n"]
    events = list(SSEParser(iter(chunks)))
    assert [e.data for e in events] == ['{"a": 1}', "b"]  # nosec B101


def test_invalid_utf8_is_replaced():
    event = SSEParser(b"data: \xff\xfeok\n\n").parse_next()
    assert event.data.endswith("ok")  # nosec B101
    assert "\ufffd" in event.data  # nosec B101


def test_empty_source_yields_nothing():
    parser = SSEParser(io.BytesIO(b""))
    assert parser.parse_next() is None  # nosec B101


class _BrokenStream(io.RawIOBase):
    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        raise ConnectionResetError("connection reset by peer")


def test_read_failure_becomes_transport_error():
    parser = SSEParser(_BrokenStream())
    with pytest.raises(TransportError) as ei:
        parser.parse_next()
    assert "error reading stream" in ei.value.message  # nosec B101
