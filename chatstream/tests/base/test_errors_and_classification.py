"""Error taxonomy: code mapping, APIError views, exception classification."""
from __future__ import annotations

import httpx
import pytest

from chatstream.base.errors import (
    APIError,
    ChatStreamError,
    DecodeError,
    ErrorCode,
    ErrorKind,
    TransportError,
    classify_exception,
)
from chatstream.base.errors_parts.api_error import kind_for_code


@pytest.mark.parametrize(
    "code,kind",
    [
        (ErrorCode.BAD_REQUEST, ErrorKind.VALIDATION),
        (ErrorCode.UNAUTHORIZED, ErrorKind.AUTH),
        (ErrorCode.INSUFFICIENT_CREDITS, ErrorKind.PAYMENT),
        (ErrorCode.FORBIDDEN, ErrorKind.MODERATION),
        (ErrorCode.TIMEOUT, ErrorKind.TIMEOUT),
        (ErrorCode.RATE_LIMITED, ErrorKind.RATE_LIMIT),
        (ErrorCode.MODEL_DOWN, ErrorKind.TRANSIENT),
        (ErrorCode.NO_AVAILABLE_MODEL, ErrorKind.UNAVAILABLE),
        (599, ErrorKind.SERVER_ERROR),
        (418, ErrorKind.UNKNOWN),
        (None, ErrorKind.UNKNOWN),
    ],
)
def test_kind_for_code(code, kind):
    assert kind_for_code(code) is kind  # nosec B101 - asserts are appropriate in unit tests


def test_api_error_from_payload_and_str():
    err = APIError.from_payload({"code": "429", "message": "Rate limit exceeded", "metadata": {"x": 1}})
    assert err.code == 429  # nosec B101
    assert err.kind is ErrorKind.RATE_LIMIT  # nosec B101
    assert err.metadata == {"x": 1}  # nosec B101
    assert str(err) == "api error 429: Rate limit exceeded"  # nosec B101
    assert isinstance(err, ChatStreamError)  # nosec B101


def test_api_error_from_payload_tolerates_garbage():
    err = APIError.from_payload({"code": "n/a", "metadata": ["not", "a", "dict"]})
    assert (err.code, err.message, err.metadata) == (0, "", {})  # nosec B101


def test_moderation_metadata_view():
    err = APIError(
        403,
        "flagged",
        {
            "reasons": ["violence", 7],
            "flagged_input": "...",
            "provider_name": "openai",
            "model_slug": "gpt-x",
        },
    )
    assert err.is_moderation_error()  # nosec B101
    meta = err.moderation_metadata()
    assert meta.reasons == ["violence"]  # nosec B101
    assert (meta.flagged_input, meta.provider_name, meta.model_slug) == ("...", "openai", "gpt-x")  # nosec B101


def test_moderation_metadata_absent_for_other_codes():
    assert APIError(429, "x", {"reasons": ["a"]}).moderation_metadata() is None  # nosec B101


def test_provider_metadata_view():
    err = APIError(502, "upstream", {"provider_name": "together", "raw": {"detail": "oops"}})
    meta = err.provider_metadata()
    assert meta.provider_name == "together"  # nosec B101
    assert meta.raw == {"detail": "oops"}  # nosec B101
    assert APIError(502, "upstream").provider_metadata() is None  # nosec B101


def test_decode_and_transport_kinds():
    assert DecodeError("bad", payload="{").kind is ErrorKind.DECODE  # nosec B101
    assert TransportError("reset").kind is ErrorKind.TRANSPORT  # nosec B101


class _StatusError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__("boom")
        self.status_code = status_code


@pytest.mark.parametrize(
    "exc,kind",
    [
        (APIError(401, "no"), ErrorKind.AUTH),
        (TimeoutError(), ErrorKind.TIMEOUT),
        (httpx.ReadTimeout("slow"), ErrorKind.TIMEOUT),
        (httpx.ConnectError("refused"), ErrorKind.TRANSPORT),
        (_StatusError(429), ErrorKind.RATE_LIMIT),
        (_StatusError(503), ErrorKind.UNAVAILABLE),
        (RuntimeError("Too Many Requests"), ErrorKind.RATE_LIMIT),
        (RuntimeError("invalid api key"), ErrorKind.AUTH),
        (RuntimeError("something odd"), ErrorKind.UNKNOWN),
    ],
)
def test_classify_exception(exc, kind):
    assert classify_exception(exc) is kind  # nosec B101
