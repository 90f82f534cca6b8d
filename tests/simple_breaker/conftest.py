from __future__ import annotations

import pytest

import simple_breaker.circuit_breaker.breaker as breaker_mod
from tests.simple_breaker.support.fakes import FakeClock, FakeLogger


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Patch the breaker timer and wall clock with a hand-driven clock."""
    clock = FakeClock()
    monkeypatch.setattr(breaker_mod, "_monotonic", clock.monotonic)
    monkeypatch.setattr(breaker_mod, "_utcnow", clock.now)
    return clock
