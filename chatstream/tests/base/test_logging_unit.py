"""Focused tests for chatstream.base.logging.

Covers:
- _parse_level string parsing
- log_event payload shaping (None dropping, context merge)
- normalized_log_event canonical keys
- JsonFormatter hoisting of JSON messages
- configure_logger file handler management
"""
from __future__ import annotations

import json
import logging

from chatstream.base.log_support import JsonFormatter, LogContext
from chatstream.base.logging import (
    BASE_LOGGER_NAME,
    REQUIRED_NORMALIZED_KEYS,
    _parse_level,  # type: ignore[attr-defined]
    configure_logger,
    get_logger,
    log_event,
    normalized_log_event,
)


def test_parse_level_variants():
    assert _parse_level(None) == logging.INFO  # nosec B101
    assert _parse_level("debug") == logging.DEBUG  # nosec B101
    assert _parse_level("WARN") == logging.WARNING  # nosec B101
    assert _parse_level("unknown", default=logging.ERROR) == logging.ERROR  # nosec B101


def test_child_loggers_propagate_to_shared_logger():
    child = get_logger("chatstream.test.child")
    assert child.parent is logging.getLogger(BASE_LOGGER_NAME)  # nosec B101
    assert child.propagate  # nosec B101
    assert not child.handlers  # nosec B101


def test_log_event_drops_none_and_merges_context(log_events):
    logger = get_logger("chatstream.test")
    log_event(logger, "stream.cancel", LogContext(provider="p", index=2), reason=None, chunks=3)
    assert log_events[-1] == {"event": "stream.cancel", "provider": "p", "index": 2, "chunks": 3}  # nosec B101


def test_normalized_log_event_emits_required_keys(log_events):
    logger = get_logger("chatstream.test")
    normalized_log_event(logger, "retry.attempt", phase="retry", attempt=None, emitted=False, phase_extra=None, delay=1.5)
    payload = log_events[-1]
    for key in REQUIRED_NORMALIZED_KEYS:
        if key == "error_code":
            continue
        assert key in payload  # nosec B101
    assert payload["attempt"] is None  # nosec B101
    assert "error_code" not in payload  # nosec B101
    assert payload["delay"] == 1.5  # nosec B101
    assert "phase_extra" not in payload  # nosec B101


def test_normalized_extra_fields_cannot_override_canonical(log_events):
    logger = get_logger("chatstream.test")
    normalized_log_event(logger, "x", phase="dispatch", attempt=1, error_code="503", emitted=True)
    assert log_events[-1]["error_code"] == "503"  # nosec B101


def test_json_formatter_hoists_message_keys():
    record = logging.LogRecord("chatstream.t", logging.INFO, __file__, 1, json.dumps({"event": "e", "n": 1}), None, None)
    out = json.loads(JsonFormatter().format(record))
    assert out["event"] == "e" and out["n"] == 1  # nosec B101
    assert out["level"] == "INFO" and out["logger"] == "chatstream.t"  # nosec B101
    assert "msg" not in out  # nosec B101


def test_json_formatter_keeps_plain_messages():
    record = logging.LogRecord("chatstream.t", logging.WARNING, __file__, 1, "plain text", None, None)
    out = json.loads(JsonFormatter().format(record))
    assert out["msg"] == "plain text"  # nosec B101


def test_configure_logger_file_handler(tmp_path):
    path = tmp_path / "logs" / "chatstream.log"
    logger = configure_logger(level="INFO", file_path=str(path))
    try:
        configure_logger(level="INFO", file_path=str(path))
        file_handlers = [h for h in logger.handlers if getattr(h, "baseFilename", None) == str(path)]
        assert len(file_handlers) == 1  # nosec B101
        log_event(get_logger("chatstream.test.file"), "file.event", value=1)
        file_handlers[0].flush()
        line = path.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["event"] == "file.event"  # nosec B101
    finally:
        configure_logger(file_path=None)
    assert not any(getattr(h, "baseFilename", None) == str(path) for h in logger.handlers)  # nosec B101


def test_env_level_override(monkeypatch):
    monkeypatch.setenv("CHATSTREAM_LOG_LEVEL", "ERROR")
    try:
        assert get_logger().level == logging.ERROR  # nosec B101
    finally:
        monkeypatch.delenv("CHATSTREAM_LOG_LEVEL")
        get_logger()
