from __future__ import annotations

from weather_gateway.circuit_breaker import BreakerListener, CircuitState
from weather_gateway.logging import (
    StructuredLogger,
    log_info,
    log_warning,
)


class LoggingBreakerListener(BreakerListener):
    """Listener that turns breaker events into structured log events."""

    def __init__(self, *, logger: StructuredLogger) -> None:
        """Create a listener that writes to ``logger``.

        Args:
            logger: Structured logger receiving breaker events.
        """
        self._logger = logger

    async def on_state_change(
        self,
        name: str,
        old: CircuitState,
        new: CircuitState,
    ) -> None:
        """Log every breaker transition; opening is a warning."""
        log_fn = log_warning if new == CircuitState.OPEN else log_info
        log_fn(
            self._logger,
            "circuit_breaker.state_changed",
            breaker=name,
            old_state=str(old),
            new_state=str(new),
        )

    async def on_call_rejected(self, name: str) -> None:
        """Log a fast-failed call."""
        log_info(self._logger, "circuit_breaker.call_rejected", breaker=name)

    async def on_call_succeeded(self, name: str, elapsed: float) -> None:
        """No-op for this listener."""
        _ = (name, elapsed)

    async def on_call_failed(self, name: str, exc: Exception, elapsed: float) -> None:
        """Log a counted failure with its exception type."""
        log_warning(
            self._logger,
            "circuit_breaker.call_failed",
            breaker=name,
            error_type=exc.__class__.__name__,
            error=str(exc),
            elapsed_seconds=round(elapsed, 3),
        )
