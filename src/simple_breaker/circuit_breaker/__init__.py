"""Synchronous circuit breaker with a damped service-level score.

Key behavior notes:
  - Every admitted call is attempted exactly once and always counted. Success
    raises the service level by ``100 / failure_threshold`` (20 by default) and
    failure lowers it by the same step, clamped to ``[0, 100]``.
  - Failures of the protected operation surface as ``OperationFailedError``;
    the native exception is chained, never re-raised directly.
  - The fail-fast gate is opt-in (``open_on_exhaustion``). When enabled, the
    circuit opens once the service level reaches 0 and at most one in-flight
    probe call is permitted per ``CircuitBreaker`` instance after the
    recovery timeout. ``HALF_OPEN`` is emitted to listeners only.
"""

from simple_breaker.circuit_breaker.breaker import (
    MAX_SERVICE_LEVEL,
    CircuitBreaker,
    CircuitBreakerConfig,
)
from simple_breaker.circuit_breaker.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
    OperationFailedError,
)
from simple_breaker.circuit_breaker.metrics import (
    BreakerListener,
    LoggingBreakerListener,
)
from simple_breaker.circuit_breaker.state import BreakerSnapshot, CircuitState

__all__ = [
    "MAX_SERVICE_LEVEL",
    "BreakerListener",
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "LoggingBreakerListener",
    "OperationFailedError",
]
