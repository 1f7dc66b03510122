"""httpx-backed transport for the chat-completion API.

``post_json`` performs a single-shot call and returns the decoded body.
``open_stream`` starts a streamed call and hands the live body to the caller
as a blocking byte stream; closing that stream releases the connection.

Non-2xx responses are converted to :class:`APIError` from the
``{"error": {...}}`` body, falling back to the status code and raw text when
the body is not the expected shape. Connection-level failures become
:class:`TransportError`.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from ...config.defaults import DEFAULT_BASE_URL
from ..errors import APIError, DecodeError, TransportError
from ..logging import get_logger, log_event
from ..streaming.byte_streams import IteratorByteStream
from .client import STREAM_PURPOSE, get_httpx_client

_logger = get_logger("chatstream.http")

_JSON_HEADERS = {"Content-Type": "application/json"}
_SSE_HEADERS = {"Content-Type": "application/json", "Accept": "text/event-stream"}


@dataclass
class TransportResponse:
    """Status code plus the open body of a streamed response."""

    status_code: int
    stream: IteratorByteStream

    def close(self) -> None:
        self.stream.close()


def error_from_response(status_code: int, body: bytes | str) -> APIError:
    """Build an ``APIError`` from a failed response body."""
    text = body.decode("utf-8", errors="replace") if isinstance(body, (bytes, bytearray)) else body
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        inner = dict(payload["error"])
        inner.setdefault("code", status_code)
        return APIError.from_payload(inner)
    return APIError(status_code, text.strip() or f"HTTP {status_code}")


class HttpTransport:
    """Thin wrapper over pooled ``httpx`` clients.

    Headers (including authentication) are supplied by the caller per call or
    once via ``default_headers``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        client: httpx.Client | None = None,
        stream_client: httpx.Client | None = None,
        default_headers: Mapping[str, str] | None = None,
        purpose: str = "chat",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client if client is not None else get_httpx_client(self.base_url, purpose)
        if stream_client is not None:
            self._stream_client = stream_client
        elif client is not None:
            self._stream_client = client
        else:
            self._stream_client = get_httpx_client(self.base_url, STREAM_PURPOSE)
        self._default_headers = dict(default_headers or {})

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, base: Mapping[str, str], headers: Optional[Mapping[str, str]]) -> dict:
        return {**base, **self._default_headers, **dict(headers or {})}

    def post_json(
        self,
        path: str,
        payload: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> dict:
        """POST ``payload`` and return the decoded JSON body."""
        url = self._url(path)
        try:
            response = self._client.post(url, json=dict(payload), headers=self._headers(_JSON_HEADERS, headers))
        except httpx.TimeoutException as exc:
            raise TransportError(f"request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"request failed: {exc}") from exc
        if response.status_code >= 400:
            err = error_from_response(response.status_code, response.content)
            log_event(_logger, "http.error", level=logging.WARNING, url=url, status=response.status_code)
            raise err
        try:
            body = response.json()
        except json.JSONDecodeError as exc:
            raise DecodeError(f"failed to parse response: {exc.msg}", payload=response.text) from exc
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            raise APIError.from_payload(body["error"])
        if not isinstance(body, dict):
            raise DecodeError("failed to parse response: expected a JSON object", payload=response.text)
        return body

    def open_stream(
        self,
        path: str,
        payload: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> TransportResponse:
        """Start a streamed POST; the caller owns (and must close) the returned body."""
        url = self._url(path)
        request = self._stream_client.build_request(
            "POST", url, json=dict(payload), headers=self._headers(_SSE_HEADERS, headers)
        )
        try:
            response = self._stream_client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            raise TransportError(f"request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"request failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                body = response.read()
            finally:
                response.close()
            log_event(_logger, "http.error", level=logging.WARNING, url=url, status=response.status_code)
            raise error_from_response(response.status_code, body)

        log_event(_logger, "http.stream.open", level=logging.DEBUG, url=url, status=response.status_code)
        stream = IteratorByteStream(response.iter_bytes(), on_close=response.close)
        return TransportResponse(status_code=response.status_code, stream=stream)


__all__ = ["HttpTransport", "TransportResponse", "error_from_response"]
