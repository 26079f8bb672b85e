"""Framework-agnostic async circuit breaker.

This package implements the circuit breaker pattern from *Release It!*.

Key behavior notes:
  - State is local to one process and owned by the breaker storage; every
    transition happens under a single per-breaker lock.
  - The ``OPEN → HALF_OPEN`` transition is evaluated lazily by the next call
    once ``recovery_timeout`` has elapsed since the last failure. There is no
    background timer.
  - Half-open probing is conservative: exactly one in-flight trial call is
    permitted. Any trial failure reopens the circuit immediately.
  - Every call is raced against ``call_timeout``. The loser of the race is
    cancelled and never touches breaker state.
  - If an excluded exception is raised during a probe, the probe is treated as
    if it never happened: the circuit returns to ``OPEN`` without restarting
    the recovery window, and a later call may attempt a fresh probe.
"""

from weather_gateway.circuit_breaker.breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
)
from weather_gateway.circuit_breaker.exceptions import (
    CallTimeoutError,
    CircuitBreakerError,
    CircuitOpenError,
)
from weather_gateway.circuit_breaker.metrics import BreakerListener
from weather_gateway.circuit_breaker.state import (
    BreakerSnapshot,
    CallAdmission,
    CircuitState,
)
from weather_gateway.circuit_breaker.storage import (
    AbstractBreakerStorage,
    InMemoryBreakerStorage,
)

__all__ = [
    "AbstractBreakerStorage",
    "BreakerListener",
    "BreakerSnapshot",
    "CallAdmission",
    "CallTimeoutError",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "InMemoryBreakerStorage",
]
