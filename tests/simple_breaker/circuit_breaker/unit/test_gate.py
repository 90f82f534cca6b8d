import threading

import pytest

from simple_breaker.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitOpenError,
    CircuitState,
    OperationFailedError,
)
from tests.simple_breaker.support.fakes import FakeClock, RecordingListener


def _fail() -> None:
    raise RuntimeError("nope")


def _exhaust(breaker: CircuitBreaker) -> None:
    for _ in range(breaker.config.failure_threshold):
        with pytest.raises(OperationFailedError):
            breaker.execute(_fail)


def _gated(
    *,
    failure_threshold: int = 5,
    recovery_timeout: float = 10.0,
    listener: RecordingListener | None = None,
) -> CircuitBreaker:
    return CircuitBreaker(
        "svc",
        config=CircuitBreakerConfig(
            failure_threshold=failure_threshold,
            open_on_exhaustion=True,
            recovery_timeout=recovery_timeout,
        ),
        listeners=[listener] if listener is not None else None,
    )


def test_gate_is_disabled_by_default() -> None:
    breaker = CircuitBreaker()
    ran = 0

    def _counted_fail() -> None:
        nonlocal ran
        ran += 1
        raise RuntimeError("nope")

    for _ in range(10):
        with pytest.raises(OperationFailedError):
            breaker.execute(_counted_fail)

    assert ran == 10
    assert breaker.total_call_count == 10
    assert breaker.state == CircuitState.CLOSED


def test_exhaustion_opens_and_rejects_without_invoking(fake_clock: FakeClock) -> None:
    listener = RecordingListener()
    breaker = _gated(listener=listener)

    _exhaust(breaker)
    assert breaker.state == CircuitState.OPEN
    assert breaker.snapshot().opened_at == fake_clock.now()
    assert (
        "state",
        ("svc", CircuitState.CLOSED, CircuitState.OPEN),
    ) in listener.events

    ran = False

    def _ok() -> str:
        nonlocal ran
        ran = True
        return "ok"

    fake_clock.advance(4.0)
    with pytest.raises(CircuitOpenError) as excinfo:
        breaker.execute(_ok)

    assert ran is False
    assert excinfo.value.retry_after == pytest.approx(6.0)
    assert excinfo.value.breaker_name == "svc"
    assert breaker.total_call_count == 5
    assert breaker.service_level == 0
    assert ("rejected", "svc") in listener.events


def test_probe_success_closes_and_scores_normally(fake_clock: FakeClock) -> None:
    listener = RecordingListener()
    breaker = _gated(listener=listener)
    _exhaust(breaker)
    listener.events.clear()

    fake_clock.advance(10.0)
    assert breaker.execute(lambda: "ok") == "ok"

    assert breaker.state == CircuitState.CLOSED
    assert breaker.snapshot().opened_at is None
    assert breaker.service_level == 20
    assert breaker.total_call_count == 6
    assert listener.events == [
        ("succeeded", ("svc", 20.0)),
        ("state", ("svc", CircuitState.OPEN, CircuitState.HALF_OPEN)),
        ("state", ("svc", CircuitState.HALF_OPEN, CircuitState.CLOSED)),
    ]


def test_probe_failure_reopens_and_restarts_timeout(fake_clock: FakeClock) -> None:
    listener = RecordingListener()
    breaker = _gated(recovery_timeout=5.0, listener=listener)
    _exhaust(breaker)
    listener.events.clear()

    fake_clock.advance(5.0)
    with pytest.raises(OperationFailedError):
        breaker.execute(_fail)

    assert breaker.state == CircuitState.OPEN
    assert breaker.snapshot().opened_at == fake_clock.now()
    assert listener.events == [
        ("failed", ("svc", "RuntimeError", 0.0)),
        ("state", ("svc", CircuitState.OPEN, CircuitState.HALF_OPEN)),
        ("state", ("svc", CircuitState.HALF_OPEN, CircuitState.OPEN)),
    ]

    with pytest.raises(CircuitOpenError) as excinfo:
        breaker.execute(_fail)
    assert excinfo.value.retry_after == pytest.approx(5.0)


def test_half_open_allows_single_probe_and_rejects_concurrent(
    fake_clock: FakeClock,
) -> None:
    breaker = _gated(failure_threshold=1, recovery_timeout=0.0)
    _exhaust(breaker)

    started = threading.Event()
    release = threading.Event()
    results: list[str] = []

    def _probe() -> str:
        started.set()
        release.wait(timeout=5.0)
        return "ok"

    def _run_probe() -> None:
        results.append(breaker.execute(_probe))

    thread = threading.Thread(target=_run_probe)
    thread.start()
    assert started.wait(timeout=5.0)

    with pytest.raises(CircuitOpenError) as excinfo:
        breaker.execute(lambda: "ok")
    assert excinfo.value.retry_after == 0.0

    release.set()
    thread.join(timeout=5.0)

    assert results == ["ok"]
    assert breaker.state == CircuitState.CLOSED
    assert breaker.execute(lambda: "again") == "again"


def test_interrupted_probe_releases_probe_slot(fake_clock: FakeClock) -> None:
    breaker = _gated(failure_threshold=1, recovery_timeout=0.0)
    _exhaust(breaker)

    def _interrupt() -> None:
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        breaker.execute(_interrupt)

    assert breaker.state == CircuitState.OPEN
    assert breaker.execute(lambda: "ok") == "ok"
    assert breaker.state == CircuitState.CLOSED


def test_gate_does_not_change_scoring_of_admitted_calls(
    fake_clock: FakeClock,
) -> None:
    gated = _gated()
    plain = CircuitBreaker()
    pattern = ["bad", "bad", "good", "bad", "good", "good", "bad"]

    for breaker in (gated, plain):
        for outcome in pattern:
            if outcome == "good":
                breaker.execute(lambda: None)
            else:
                with pytest.raises(OperationFailedError):
                    breaker.execute(_fail)

    assert gated.service_level == plain.service_level == 80
    assert gated.total_call_count == plain.total_call_count == len(pattern)
    assert gated.state == CircuitState.CLOSED
