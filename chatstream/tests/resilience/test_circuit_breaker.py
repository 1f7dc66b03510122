from __future__ import annotations

import threading

import pytest

from chatstream.base.cancellation import CancelledError
from chatstream.base.errors import CircuitOpenError, ErrorKind
from chatstream.base.resilience import CircuitBreaker, CircuitState


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _Op:
    def __init__(self) -> None:
        self.calls = 0
        self.fail = True

    def __call__(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("upstream down")
        return "ok"


def _trip(breaker: CircuitBreaker, op: _Op, times: int) -> None:
    for _ in range(times):
        with pytest.raises(RuntimeError):
            breaker.execute(op)


def test_opens_after_threshold_and_recovers_after_timeout():
    clock = _Clock()
    breaker = CircuitBreaker(failure_threshold=2, reset_timeout=30.0, clock=clock)
    op = _Op()
    _trip(breaker, op, 2)
    assert breaker.state is CircuitState.OPEN  # nosec B101 - asserts are appropriate in unit tests

    clock.advance(10.0)
    with pytest.raises(CircuitOpenError) as ei:
        breaker.execute(op)
    assert op.calls == 2  # nosec B101
    assert ei.value.message == "circuit breaker is open"  # nosec B101
    assert ei.value.kind is ErrorKind.CIRCUIT_OPEN  # nosec B101
    assert ei.value.retry_after == pytest.approx(20.0)  # nosec B101

    clock.advance(20.0)
    op.fail = False
    assert breaker.execute(op) == "ok"  # nosec B101
    assert op.calls == 3  # nosec B101
    assert breaker.state is CircuitState.CLOSED  # nosec B101
    assert breaker.snapshot().failure_count == 0  # nosec B101


def test_half_open_failure_reopens():
    clock = _Clock()
    breaker = CircuitBreaker(failure_threshold=3, reset_timeout=5.0, clock=clock)
    op = _Op()
    _trip(breaker, op, 3)
    clock.advance(5.0)
    _trip(breaker, op, 1)
    assert breaker.state is CircuitState.OPEN  # nosec B101
    with pytest.raises(CircuitOpenError):
        breaker.execute(op)
    assert op.calls == 4  # nosec B101


def test_success_resets_consecutive_failures():
    breaker = CircuitBreaker(failure_threshold=2, reset_timeout=5.0, clock=_Clock())
    op = _Op()
    _trip(breaker, op, 1)
    op.fail = False
    breaker.execute(op)
    op.fail = True
    _trip(breaker, op, 1)
    assert breaker.state is CircuitState.CLOSED  # nosec B101


def test_cancellation_is_not_a_failure():
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout=5.0, clock=_Clock())

    def cancelled():
        raise CancelledError("stop")

    with pytest.raises(CancelledError):
        breaker.execute(cancelled)
    assert breaker.state is CircuitState.CLOSED  # nosec B101
    assert breaker.snapshot().failure_count == 0  # nosec B101


def test_reset_closes_breaker():
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout=60.0, clock=_Clock())
    _trip(breaker, _Op(), 1)
    breaker.reset()
    snap = breaker.snapshot()
    assert (snap.state, snap.failure_count, snap.last_failure_time) == (CircuitState.CLOSED, 0, None)  # nosec B101


def test_counters_are_consistent_under_concurrency():
    breaker = CircuitBreaker(failure_threshold=10_000, reset_timeout=60.0)
    op = _Op()

    def worker():
        for _ in range(50):
            with pytest.raises(RuntimeError):
                breaker.execute(op)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert breaker.snapshot().failure_count == 500  # nosec B101


def test_transitions_are_logged(log_events):
    clock = _Clock()
    breaker = CircuitBreaker(failure_threshold=1, reset_timeout=1.0, name="chat", clock=clock)
    _trip(breaker, _Op(), 1)
    transitions = [(e["from_state"], e["to_state"]) for e in log_events if e.get("event") == "circuit.transition"]
    assert transitions == [("closed", "open")]  # nosec B101
    assert all(e.get("breaker") == "chat" for e in log_events if e.get("event") == "circuit.transition")  # nosec B101


@pytest.mark.parametrize("kwargs", [{"failure_threshold": 0}, {"reset_timeout": -1.0}])
def test_validation(kwargs):
    with pytest.raises(ValueError):
        CircuitBreaker(**kwargs)
