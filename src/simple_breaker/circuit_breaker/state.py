"""Circuit breaker state primitives."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time view of breaker internals useful for metrics/logging.

    Attributes:
        name: Breaker name.
        state: Gate state. Only ``CLOSED`` and ``OPEN`` are ever stored.
        service_level: Health score in ``[0, 100]``.
        total_call_count: Number of completed ``execute`` calls.
        latency: Elapsed time of the most recently completed call.
        opened_at: Timestamp when the gate entered ``OPEN``, if open.
    """

    name: str
    state: CircuitState
    service_level: float
    total_call_count: int
    latency: timedelta
    opened_at: datetime | None
