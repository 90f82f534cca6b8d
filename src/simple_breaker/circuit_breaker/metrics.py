"""Observability hooks for circuit breakers."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Protocol

from simple_breaker.circuit_breaker.state import CircuitState
from simple_breaker.logging import (
    StructuredLogger,
    log_error,
    log_info,
    log_warning,
)


class BreakerListener(Protocol):
    """Listener protocol for circuit breaker events.

    Notes:
        Hooks run after the call's bookkeeping has been applied and outside the
        breaker lock. ``on_state_change(OPEN → HALF_OPEN)`` is emitted per probe
        attempt; snapshots never hold ``HALF_OPEN``.
    """

    def on_state_change(self, name: str, old: CircuitState, new: CircuitState) -> None:
        """Handle circuit state transitions."""

    def on_call_rejected(self, name: str, retry_after: float) -> None:
        """Handle call rejection while the circuit is open."""

    def on_call_succeeded(
        self, name: str, latency: timedelta, service_level: float
    ) -> None:
        """Handle successful protected call completion."""

    def on_call_failed(
        self,
        name: str,
        exc: Exception,
        latency: timedelta,
        service_level: float,
    ) -> None:
        """Handle failed protected call completion."""


class LoggingBreakerListener:
    """Listener that writes one structured log event per breaker hook."""

    def __init__(
        self, logger: StructuredLogger | logging.Logger | logging.LoggerAdapter
    ) -> None:
        """Create a listener bound to a structlog or stdlib logger.

        Args:
            logger: Destination for breaker events.
        """
        self._logger = logger

    def on_state_change(self, name: str, old: CircuitState, new: CircuitState) -> None:
        """Log a state transition; opening the circuit is logged as an error."""
        log = log_error if new == CircuitState.OPEN else log_info
        log(
            self._logger,
            "circuit_breaker.state_changed",
            breaker=name,
            old_state=str(old),
            new_state=str(new),
        )

    def on_call_rejected(self, name: str, retry_after: float) -> None:
        log_warning(
            self._logger,
            "circuit_breaker.call_rejected",
            breaker=name,
            retry_after=retry_after,
        )

    def on_call_succeeded(
        self, name: str, latency: timedelta, service_level: float
    ) -> None:
        log_info(
            self._logger,
            "circuit_breaker.call_succeeded",
            breaker=name,
            latency=latency,
            service_level=service_level,
        )

    def on_call_failed(
        self,
        name: str,
        exc: Exception,
        latency: timedelta,
        service_level: float,
    ) -> None:
        log_warning(
            self._logger,
            "circuit_breaker.call_failed",
            breaker=name,
            error_type=exc.__class__.__name__,
            error=str(exc),
            latency=latency,
            service_level=service_level,
        )
