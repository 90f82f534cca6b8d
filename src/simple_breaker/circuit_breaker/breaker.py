"""Core circuit breaker implementation."""

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import ParamSpec, TypeVar

import structlog

from simple_breaker.circuit_breaker.exceptions import (
    CircuitOpenError,
    OperationFailedError,
)
from simple_breaker.circuit_breaker.metrics import BreakerListener
from simple_breaker.circuit_breaker.state import BreakerSnapshot, CircuitState
from simple_breaker.logging import log_exception

T = TypeVar("T")
P = ParamSpec("P")

MAX_SERVICE_LEVEL = 100.0

logger = structlog.stdlib.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _monotonic() -> float:
    return time.monotonic()


def _clamp(level: float) -> float:
    return min(max(level, 0.0), MAX_SERVICE_LEVEL)


@dataclass(frozen=True, slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Attributes:
        failure_threshold: Consecutive failures that take a healthy breaker to
            a service level of 0. Each call moves the service level by
            ``100 / failure_threshold``.
        open_on_exhaustion: Open the gate and reject calls once the service
            level reaches 0.
        recovery_timeout: Seconds to wait while ``OPEN`` before allowing a probe.
    """

    failure_threshold: int = 5
    open_on_exhaustion: bool = False
    recovery_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout must be >= 0")

    @property
    def step(self) -> float:
        """Service level change applied per call outcome."""
        return MAX_SERVICE_LEVEL / self.failure_threshold


class CircuitBreaker:
    """Stateful proxy around an operation that may fail.

    Every admitted call is timed, counted and scored: success raises the
    service level by one step, failure lowers it by one step, clamped to
    ``[0, 100]``. Failures surface as ``OperationFailedError``.
    """

    def __init__(
        self,
        name: str = "default",
        *,
        config: CircuitBreakerConfig | None = None,
        listeners: Sequence[BreakerListener] | None = None,
    ) -> None:
        """Build a circuit breaker with optional custom dependencies.

        Args:
            name: Breaker name used in errors, logs and listener events.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            listeners: Optional listener hooks for breaker events.
        """
        self.name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self._listeners = tuple(listeners) if listeners is not None else ()
        self._lock = threading.Lock()
        self._probe_in_flight = False
        self._failure_count = 0
        self._snapshot = BreakerSnapshot(
            name=name,
            state=CircuitState.CLOSED,
            service_level=MAX_SERVICE_LEVEL,
            total_call_count=0,
            latency=timedelta(0),
            opened_at=None,
        )

    @property
    def service_level(self) -> float:
        """Current health score in ``[0, 100]``."""
        return self._snapshot.service_level

    @property
    def total_call_count(self) -> int:
        """Number of completed calls, successful or failed."""
        return self._snapshot.total_call_count

    @property
    def latency(self) -> timedelta:
        """Elapsed time of the most recently completed call."""
        return self._snapshot.latency

    @property
    def state(self) -> CircuitState:
        """Current gate state, ``CLOSED`` unless the opt-in gate has opened."""
        return self._snapshot.state

    def snapshot(self) -> BreakerSnapshot:
        """Return the current immutable breaker snapshot."""
        return self._snapshot

    def _notify(self, hook: str, *args: object) -> None:
        for listener in self._listeners:
            try:
                getattr(listener, hook)(self.name, *args)
            except Exception:
                log_exception(
                    logger,
                    "circuit_breaker.listener_failed",
                    breaker=self.name,
                    listener=listener.__class__.__qualname__,
                    hook=hook,
                )

    def _notify_transitions(
        self, previous: BreakerSnapshot, current: BreakerSnapshot, is_probe: bool
    ) -> None:
        if is_probe:
            self._notify("on_state_change", CircuitState.OPEN, CircuitState.HALF_OPEN)
            self._notify("on_state_change", CircuitState.HALF_OPEN, current.state)
        elif previous.state != current.state:
            self._notify("on_state_change", previous.state, current.state)

    @staticmethod
    def _retry_after(snapshot: BreakerSnapshot, now: datetime, timeout: float) -> float:
        opened_at = now if snapshot.opened_at is None else snapshot.opened_at
        elapsed = (now - opened_at).total_seconds()
        return max(timeout - elapsed, 0.0)

    def _admit(self) -> bool:
        """Return whether the call is a half-open probe, or raise if rejected."""
        with self._lock:
            snapshot = self._snapshot
            if snapshot.state == CircuitState.CLOSED:
                return False

            retry_after = self._retry_after(
                snapshot, _utcnow(), self.config.recovery_timeout
            )
            if retry_after <= 0 and not self._probe_in_flight:
                self._probe_in_flight = True
                return True

        self._notify("on_call_rejected", retry_after)
        raise CircuitOpenError(self.name, retry_after=retry_after)

    def _release_probe(self) -> None:
        with self._lock:
            self._probe_in_flight = False

    def _record(
        self, *, succeeded: bool, latency: timedelta, is_probe: bool
    ) -> tuple[BreakerSnapshot, BreakerSnapshot]:
        config = self.config
        threshold = config.failure_threshold
        with self._lock:
            previous = self._snapshot
            if succeeded:
                failure_count = self._failure_count - 1
            else:
                failure_count = self._failure_count + 1
            self._failure_count = min(max(failure_count, 0), threshold)

            state = previous.state
            opened_at = previous.opened_at
            if is_probe:
                self._probe_in_flight = False
                if succeeded:
                    state, opened_at = CircuitState.CLOSED, None
                else:
                    state, opened_at = CircuitState.OPEN, _utcnow()
            elif (
                config.open_on_exhaustion
                and not succeeded
                and state == CircuitState.CLOSED
                and self._failure_count >= threshold
            ):
                state, opened_at = CircuitState.OPEN, _utcnow()

            current = replace(
                previous,
                state=state,
                service_level=_clamp(
                    MAX_SERVICE_LEVEL * (threshold - self._failure_count) / threshold
                ),
                total_call_count=previous.total_call_count + 1,
                latency=latency,
                opened_at=opened_at,
            )
            self._snapshot = current
        return previous, current

    def execute(
        self,
        operation: Callable[P, T],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke a callable once under circuit breaker protection.

        Args:
            operation: Callable to execute. Usually takes no arguments.
            *args: Positional arguments forwarded to ``operation``.
            **kwargs: Keyword arguments forwarded to ``operation``.

        Returns:
            The result of ``operation``, unchanged. ``None`` for operations
            that return nothing.

        Raises:
            OperationFailedError: When ``operation`` raises any ``Exception``.
                The original exception is chained and exposed as ``cause``.
            CircuitOpenError: When the gate is enabled, open, and the call is
                rejected without being attempted.
        """
        is_probe = self._admit()

        start = _monotonic()
        try:
            result = operation(*args, **kwargs)
        except Exception as exc:
            latency = timedelta(seconds=max(_monotonic() - start, 0.0))
            previous, current = self._record(
                succeeded=False, latency=latency, is_probe=is_probe
            )
            self._notify("on_call_failed", exc, latency, current.service_level)
            self._notify_transitions(previous, current, is_probe)
            raise OperationFailedError(self.name, exc) from exc
        except BaseException:
            if is_probe:
                self._release_probe()
            raise

        latency = timedelta(seconds=max(_monotonic() - start, 0.0))
        previous, current = self._record(
            succeeded=True, latency=latency, is_probe=is_probe
        )
        self._notify("on_call_succeeded", latency, current.service_level)
        self._notify_transitions(previous, current, is_probe)
        return result
