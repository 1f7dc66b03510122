"""Client wrappers composed over a mocked HTTP layer."""
from __future__ import annotations

import json
import threading
import time

import httpx
import pytest

from chatstream.base.cancellation import CancellationToken, CancelledError
from chatstream.base.errors import APIError, CircuitOpenError, StreamingRetryUnsupportedError
from chatstream.base.http import HttpTransport
from chatstream.base.metrics import MetricsCollector
from chatstream.base.resilience import CircuitBreaker, RetryPolicy
from chatstream.base.timeouts import TIMEOUT_REASON, TimeoutConfig
from chatstream.client import (
    CircuitBreakerChatClient,
    ConcurrentChatClient,
    ObservableChatClient,
    ObservedChunkStream,
    RetryingChatClient,
    StreamingChatClient,
)
from chatstream.config import RuntimeConfig


def _completion(text: str) -> dict:
    return {"id": "gen-1", "choices": [{"index": 0, "message": {"role": "assistant", "content": text}}]}


def _client(handler, **kw) -> StreamingChatClient:
    transport = HttpTransport("https://api.test/v1", client=httpx.Client(transport=httpx.MockTransport(handler)))
    return StreamingChatClient(transport, config=RuntimeConfig(), **kw)


def test_create_returns_parsed_completion():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=_completion("hello"))

    result = _client(handler).create({"model": "m", "messages": []})
    assert result.content == "hello"  # nosec B101 - asserts are appropriate in unit tests
    assert bodies[0]["stream"] is False  # nosec B101


def test_stream_yields_chunks(make_sse_body):
    payloads = [json.dumps({"choices": [{"delta": {"content": t}}]}) for t in ("a", "b")]

    def handler(request):
        assert json.loads(request.content)["stream"] is True  # nosec B101
        return httpx.Response(200, content=make_sse_body(*payloads))

    reader = _client(handler).stream({"model": "m"})
    assert [c.content for c in reader] == ["a", "b"]  # nosec B101


def test_completion_stream(make_sse_body):
    def handler(request):
        assert request.url.path.endswith("/completions")  # nosec B101
        return httpx.Response(200, content=make_sse_body(json.dumps({"choices": [{"text": "t"}]})))

    assert [c.content for c in _client(handler).stream_completion({"prompt": "p"})] == ["t"]  # nosec B101


class _StubTransport:
    """Transport returning a caller-controlled byte stream."""

    def __init__(self, stream) -> None:
        self._stream = stream

    def post_json(self, path, payload, headers=None):
        raise AssertionError("not used")

    def open_stream(self, path, payload, headers=None):
        return type("Resp", (), {"status_code": 200, "stream": self._stream})()


def test_stream_cancelled_by_token(blocking_stream):
    token = CancellationToken()
    client = StreamingChatClient(_StubTransport(blocking_stream), config=RuntimeConfig(), provider="openai")
    reader = client.stream({}, token=token)
    threading.Timer(0.05, token.cancel, args=("stop",)).start()
    with pytest.raises(CancelledError):
        reader.read()
    assert blocking_stream.closed  # nosec B101


def test_cancelled_token_prevents_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=_completion("x"))

    token = CancellationToken()
    token.cancel("early")
    with pytest.raises(CancelledError):
        _client(handler).create({}, token=token)
    assert calls == []  # nosec B101


def _flaky_handler(failures: int, status: int = 503):
    state = {"calls": 0}

    def handler(request):
        state["calls"] += 1
        if state["calls"] <= failures:
            return httpx.Response(status, json={"error": {"code": status, "message": "busy"}})
        return httpx.Response(200, json=_completion("done"))

    return handler, state


def test_retrying_client_recovers():
    handler, state = _flaky_handler(2)
    policy = RetryPolicy(max_attempts=3, initial_delay=0.001, max_delay=0.001, jitter_factor=0.0)
    client = RetryingChatClient(_client(handler), policy)
    assert client.create({}).content == "done"  # nosec B101
    assert state["calls"] == 3  # nosec B101


def test_retrying_client_refuses_streams():
    handler, _ = _flaky_handler(0)
    with pytest.raises(StreamingRetryUnsupportedError):
        RetryingChatClient(_client(handler)).stream({})


def test_circuit_breaker_client_opens():
    handler, state = _flaky_handler(99, status=500)
    client = CircuitBreakerChatClient(_client(handler), CircuitBreaker(failure_threshold=2, reset_timeout=60.0))
    for _ in range(2):
        with pytest.raises(APIError):
            client.create({})
    with pytest.raises(CircuitOpenError):
        client.create({})
    assert state["calls"] == 2  # nosec B101


def test_concurrent_client_create_many_keeps_order():
    def handler(request):
        return httpx.Response(200, json=_completion(json.loads(request.content)["tag"]))

    client = ConcurrentChatClient(_client(handler), max_concurrency=3)
    results = client.create_many([{"tag": str(i)} for i in range(8)])
    assert [r.payload.content for r in results] == [str(i) for i in range(8)]  # nosec B101


def test_concurrent_client_stream_many(make_sse_body):
    def handler(request):
        tag = json.loads(request.content)["tag"]
        return httpx.Response(200, content=make_sse_body(json.dumps({"choices": [{"delta": {"content": tag}}]})))

    grouped = ConcurrentChatClient(_client(handler), max_concurrency=2).stream_many([{"tag": "x"}, {"tag": "y"}]).collect()
    assert grouped[0][0].payload.content == "x"  # nosec B101
    assert grouped[1][0].payload.content == "y"  # nosec B101
    assert all(results[-1].is_final and results[-1].ok for results in grouped.values())  # nosec B101


def test_concurrent_client_batches():
    def handler(request):
        return httpx.Response(200, json=_completion("ok"))

    seen = []
    ConcurrentChatClient(_client(handler), batch_size=2).create_batches([{}] * 5, seen.append)
    assert [r.index for r in seen] == [0, 1, 2, 3, 4]  # nosec B101


def test_concurrency_defaults_come_from_config():
    handler, _ = _flaky_handler(0)
    base = StreamingChatClient(
        HttpTransport("https://api.test", client=httpx.Client(transport=httpx.MockTransport(handler))),
        config=RuntimeConfig(max_concurrency=4, batch_size=3),
    )
    client = ConcurrentChatClient(base)
    assert (client.dispatcher.max_concurrency, client.batch_size) == (4, 3)  # nosec B101


# -------------------------- overall timeout -------------------------- #
def test_overall_timeout_cancels_a_stalled_stream(blocking_stream):
    client = StreamingChatClient(
        _StubTransport(blocking_stream),
        config=RuntimeConfig(),
        timeouts=TimeoutConfig(overall_timeout_seconds=0.05),
    )
    reader = client.stream({})
    with pytest.raises(CancelledError) as ei:
        reader.read()
    assert ei.value.message == TIMEOUT_REASON  # nosec B101
    assert blocking_stream.closed  # nosec B101


def test_overall_timeout_is_read_from_environment(monkeypatch, blocking_stream):
    monkeypatch.setenv("CHATSTREAM_TIMEOUT_OVERALL_SECONDS", "0.05")
    caller = CancellationToken()
    reader = StreamingChatClient(_StubTransport(blocking_stream), config=RuntimeConfig()).stream({}, token=caller)
    with pytest.raises(CancelledError) as ei:
        reader.read()
    assert ei.value.message == TIMEOUT_REASON  # nosec B101
    assert not caller.cancelled  # nosec B101


def test_overall_timeout_bounds_retry_backoff():
    handler, state = _flaky_handler(99)
    policy = RetryPolicy(max_attempts=50, initial_delay=0.5, max_delay=0.5, jitter_factor=0.0)
    base = StreamingChatClient(
        HttpTransport("https://api.test/v1", client=httpx.Client(transport=httpx.MockTransport(handler))),
        config=RuntimeConfig(),
        timeouts=TimeoutConfig(overall_timeout_seconds=0.1),
    )
    began = time.monotonic()
    with pytest.raises(CancelledError) as ei:
        RetryingChatClient(base, policy).create({})
    assert ei.value.message == TIMEOUT_REASON  # nosec B101
    assert state["calls"] == 1  # nosec B101
    assert time.monotonic() - began < 0.45  # nosec B101


def test_finished_retry_releases_deadline_without_touching_caller():
    handler, _ = _flaky_handler(0)
    base = StreamingChatClient(
        HttpTransport("https://api.test/v1", client=httpx.Client(transport=httpx.MockTransport(handler))),
        config=RuntimeConfig(),
        timeouts=TimeoutConfig(overall_timeout_seconds=30.0),
    )
    caller = CancellationToken()
    assert RetryingChatClient(base).create({}, token=caller).content == "done"  # nosec B101
    assert not caller.cancelled  # nosec B101


# -------------------------- observability -------------------------- #
def _usage_completion(text: str) -> dict:
    body = _completion(text)
    body["usage"] = {"prompt_tokens": 3, "completion_tokens": 5, "total_tokens": 8}
    return body


def test_observable_create_runs_hooks_and_records_usage():
    calls = []
    client = ObservableChatClient(_client(lambda request: httpx.Response(200, json=_usage_completion("hi"))))
    client.add_request_hook(lambda op, payload: calls.append(("request", op, payload["model"])))
    client.add_response_hook(lambda op, payload, resp, err: calls.append(("response", op, resp.content, err)))

    assert client.create({"model": "m"}).content == "hi"  # nosec B101
    assert calls == [("request", "chat_completion", "m"), ("response", "chat_completion", "hi", None)]  # nosec B101

    snap = client.metrics.snapshot()["chat_completion"]
    assert (snap.total, snap.success, snap.failure, snap.in_flight) == (1, 1, 0, 0)  # nosec B101
    assert (snap.prompt_tokens, snap.completion_tokens, snap.total_tokens) == (3, 5, 8)  # nosec B101
    assert snap.latency.count == 1  # nosec B101


def test_observable_create_records_errors_by_kind(log_events):
    handler, _ = _flaky_handler(99, status=429)
    errors = []
    client = ObservableChatClient(_client(handler))
    client.add_response_hook(lambda op, payload, resp, err: errors.append((resp, err)))

    with pytest.raises(APIError):
        client.create({"model": "m"})

    snap = client.metrics.counters("chat_completion").snapshot()
    assert (snap.failure, snap.failure_by_kind) == (1, {"rate_limit": 1})  # nosec B101
    assert errors[0][0] is None and isinstance(errors[0][1], APIError)  # nosec B101
    event = next(e for e in log_events if e.get("event") == "client.error")
    assert (event["operation"], event["error_kind"], event["model"]) == ("chat_completion", "rate_limit", "m")  # nosec B101


def test_observable_stream_records_whole_stream(make_sse_body):
    payloads = [
        json.dumps({"choices": [{"delta": {"content": "a"}}]}),
        json.dumps({"choices": [], "usage": {"prompt_tokens": 2, "completion_tokens": 1, "total_tokens": 3}}),
    ]
    responses = []
    client = ObservableChatClient(_client(lambda request: httpx.Response(200, content=make_sse_body(*payloads))))
    client.add_response_hook(lambda op, payload, resp, err: responses.append((op, resp)))

    reader = client.stream({"model": "m"})
    assert isinstance(reader, ObservedChunkStream)  # nosec B101
    assert responses == [("chat_stream", reader)]  # nosec B101
    assert client.metrics.counters("chat_stream").snapshot().in_flight == 1  # nosec B101

    assert len(list(reader)) == 2  # nosec B101
    reader.close()
    snap = client.metrics.snapshot()["chat_stream"]
    assert (snap.success, snap.cancelled, snap.in_flight) == (1, 0, 0)  # nosec B101
    assert (snap.prompt_tokens, snap.completion_tokens) == (2, 1)  # nosec B101


def test_observable_stream_closed_early_counts_as_cancelled(make_sse_body):
    body = make_sse_body(json.dumps({"choices": [{"delta": {"content": "a"}}]}), done=False)
    client = ObservableChatClient(_client(lambda request: httpx.Response(200, content=body)))
    with client.stream({}) as reader:
        assert reader.read().content == "a"  # nosec B101
    snap = client.metrics.snapshot()["chat_stream"]
    assert (snap.success, snap.cancelled) == (0, 1)  # nosec B101


def test_observable_stream_timeout_is_counted(blocking_stream):
    base = StreamingChatClient(
        _StubTransport(blocking_stream),
        config=RuntimeConfig(),
        timeouts=TimeoutConfig(overall_timeout_seconds=0.05),
    )
    client = ObservableChatClient(base)
    reader = client.stream({})
    with pytest.raises(CancelledError):
        reader.read()
    snap = client.metrics.snapshot()["chat_stream"]
    assert (snap.timeout, snap.cancelled, snap.failure) == (1, 0, 0)  # nosec B101


def test_observable_client_composes_with_concurrency():
    metrics = MetricsCollector()
    observed = ObservableChatClient(
        _client(lambda request: httpx.Response(200, json=_completion("ok"))),
        metrics,
        log_requests=True,
    )
    results = ConcurrentChatClient(observed, max_concurrency=2).create_many([{"model": "m"}] * 4)
    assert all(r.ok for r in results)  # nosec B101
    snap = metrics.snapshot()["chat_completion"]
    assert (snap.total, snap.success, snap.in_flight) == (4, 4, 0)  # nosec B101
