"""Core circuit breaker implementation."""

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import ParamSpec, TypeVar

from weather_gateway.circuit_breaker.exceptions import (
    CallTimeoutError,
    CircuitOpenError,
)
from weather_gateway.circuit_breaker.metrics import BreakerListener
from weather_gateway.circuit_breaker.state import BreakerSnapshot, CircuitState
from weather_gateway.circuit_breaker.storage import (
    AbstractBreakerStorage,
    InMemoryBreakerStorage,
)

T = TypeVar("T")
P = ParamSpec("P")


@dataclass(slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Attributes:
        failure_threshold: Consecutive failures required while ``CLOSED``
            before opening.
        recovery_timeout: Seconds since the last failure to stay ``OPEN``
            before allowing a trial call.
        call_timeout: Seconds a single call may run before it is abandoned and
            counted as a failure. ``0`` disables the guard.
        expected_exceptions: Exceptions that count as failures.
        excluded_exceptions: Exceptions that must not count as failures.
    """

    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    call_timeout: float = 5.0
    expected_exceptions: tuple[type[Exception], ...] = (Exception,)
    excluded_exceptions: tuple[type[Exception], ...] = ()

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout must be >= 0")
        if self.call_timeout < 0:
            raise ValueError("call_timeout must be >= 0")


class CircuitBreaker:
    """Stateful proxy around a dangerous async operation."""

    def __init__(
        self,
        name: str,
        *,
        config: CircuitBreakerConfig | None = None,
        storage: AbstractBreakerStorage | None = None,
        listeners: Sequence[BreakerListener] | None = None,
    ) -> None:
        """Build a circuit breaker with optional custom dependencies.

        Args:
            name: Unique breaker name used for storage and metrics.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            storage: State storage backend. Defaults to in-memory storage.
            listeners: Optional listener hooks for breaker events.
        """
        self.name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self._storage = InMemoryBreakerStorage() if storage is None else storage
        self._listeners = tuple(listeners) if listeners is not None else ()

    async def _emit_state_change(self, old: CircuitState, new: CircuitState) -> None:
        if old == new:
            return
        for listener in self._listeners:
            try:
                await listener.on_state_change(self.name, old, new)
            except Exception:
                continue

    async def _emit_call_rejected(self) -> None:
        for listener in self._listeners:
            try:
                await listener.on_call_rejected(self.name)
            except Exception:
                continue

    async def _emit_call_succeeded(self, elapsed: float) -> None:
        for listener in self._listeners:
            try:
                await listener.on_call_succeeded(self.name, elapsed)
            except Exception:
                continue

    async def _emit_call_failed(self, exc: Exception, elapsed: float) -> None:
        for listener in self._listeners:
            try:
                await listener.on_call_failed(self.name, exc, elapsed)
            except Exception:
                continue

    async def status(self) -> CircuitState:
        """Return the current breaker state without changing it."""
        snapshot = await self._storage.get_state(self.name)
        return snapshot.state

    async def snapshot(self) -> BreakerSnapshot:
        """Return the full breaker snapshot without changing it."""
        return await self._storage.get_state(self.name)

    async def reset(self) -> None:
        """Force the breaker back to a healthy ``CLOSED`` state."""
        before = await self._storage.get_state(self.name)
        await self._storage.reset(self.name)
        await self._emit_state_change(before.state, CircuitState.CLOSED)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run a zero-argument async operation under breaker protection."""
        return await self.call(operation)

    async def _run_guarded(
        self,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        timeout = self.config.call_timeout
        if timeout <= 0:
            return await func(*args, **kwargs)
        try:
            async with asyncio.timeout(timeout) as deadline:
                return await func(*args, **kwargs)
        except TimeoutError as exc:
            # An operation may raise its own TimeoutError before the deadline.
            if not deadline.expired():
                raise
            raise CallTimeoutError(self.name, timeout) from exc

    async def call(
        self,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke an async callable under circuit breaker protection.

        The callable is raced against ``config.call_timeout``. A call that
        loses the race is cancelled, so its eventual outcome can never reach
        breaker state; the timeout itself is recorded once as a failure.

        Args:
            func: Dangerous async callable to execute.
            *args: Positional arguments forwarded to ``func``.
            **kwargs: Keyword arguments forwarded to ``func``.

        Returns:
            The result of ``func`` when allowed and successful.

        Raises:
            CircuitOpenError: When the circuit is open and the call is rejected.
            CallTimeoutError: When ``func`` exceeds the call timeout.
            Exception: The original exception from ``func`` when it is attempted
                and fails.
        """
        task = asyncio.current_task()
        if task is not None:
            callable_name = getattr(func, "__qualname__", None)
            if callable_name is None:
                callable_name = getattr(func, "__name__", None)
            if callable_name is None:
                callable_name = func.__class__.__qualname__
            task.set_name(f"circuit_breaker:{self.name}:{str(callable_name)}")

        admission = await self._storage.admit(
            self.name, self.config.recovery_timeout
        )
        if not admission.admitted:
            await self._emit_call_rejected()
            raise CircuitOpenError(self.name, retry_after=admission.retry_after)

        is_probe = admission.is_probe
        if is_probe:
            await self._emit_state_change(CircuitState.OPEN, CircuitState.HALF_OPEN)

        settled = False
        start = time.monotonic()
        try:
            result = await self._run_guarded(func, *args, **kwargs)
        except self.config.excluded_exceptions:
            raise
        except (CallTimeoutError, *self.config.expected_exceptions) as exc:
            elapsed = max(time.monotonic() - start, 0.0)
            before, after = await self._storage.record_failure(
                self.name, self.config.failure_threshold
            )
            settled = True
            await self._emit_call_failed(exc, elapsed)
            await self._emit_state_change(before.state, after.state)
            raise
        else:
            elapsed = max(time.monotonic() - start, 0.0)
            before, after = await self._storage.record_success(self.name)
            settled = True
            await self._emit_state_change(before.state, after.state)
            await self._emit_call_succeeded(elapsed)
            return result
        finally:
            if is_probe and not settled:
                released = await self._storage.release_probe(self.name)
                await self._emit_state_change(CircuitState.HALF_OPEN, released.state)
