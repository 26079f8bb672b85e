"""Circuit breaker state primitives."""

from dataclasses import dataclass
from datetime import datetime
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
        state: Current breaker state.
        failure_count: Consecutive failures since the last success.
        last_failure_at: Timestamp of the most recent counted failure, if any.
        opened_at: Timestamp when the breaker last entered ``OPEN``, if open.
    """

    name: str
    state: CircuitState
    failure_count: int
    last_failure_at: datetime | None
    opened_at: datetime | None


@dataclass(frozen=True)
class CallAdmission:
    """Outcome of asking storage whether a call may proceed.

    Attributes:
        admitted: Whether the caller may invoke the guarded operation.
        is_probe: Whether the admitted call is the single half-open trial.
        retry_after: Seconds until a trial may be attempted when rejected.
        snapshot: Snapshot observed while deciding.
    """

    admitted: bool
    is_probe: bool
    retry_after: float
    snapshot: BreakerSnapshot
