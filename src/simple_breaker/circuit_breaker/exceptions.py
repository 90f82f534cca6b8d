"""Circuit breaker exceptions.

Callers can distinguish between:
  - The protected operation having failed (``OperationFailedError``).
  - A call being rejected because the opt-in gate is open.
"""


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class OperationFailedError(CircuitBreakerError):
    """Raised by ``CircuitBreaker.execute`` when the protected operation fails.

    The native exception is never re-raised; it is chained as ``__cause__``
    and exposed as ``cause``.

    Attributes:
        breaker_name: Name of the breaker that ran the operation.
        cause: Exception raised by the operation.
    """

    def __init__(self, breaker_name: str, cause: Exception) -> None:
        """Initialize an operation-failed exception payload.

        Args:
            breaker_name: Breaker that ran the failing operation.
            cause: Original exception raised by the operation.
        """
        self.breaker_name = breaker_name
        self.cause = cause
        super().__init__(
            f"operation_failed: {breaker_name} {cause.__class__.__name__}: {cause}"
        )


class CircuitOpenError(CircuitBreakerError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        retry_after: Seconds until a half-open probe may be attempted.
    """

    def __init__(self, breaker_name: str, retry_after: float) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            breaker_name: Breaker rejecting the call.
            retry_after: Seconds until the next probe window opens.
        """
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        super().__init__(f"circuit_open: {breaker_name} retry_after={retry_after:g}s")
