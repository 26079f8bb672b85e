"""State storage for circuit breakers.

Storage is intentionally decoupled from breaker logic, but it is the single
owner of breaker state: every read-modify-write happens under one per-breaker
lock, so concurrent calls can neither lose failure increments nor both claim
the half-open trial.

State is local to the running process. ``HALF_OPEN`` is stored while a trial
call is in flight and is cleared by the trial's success, failure or release.
"""

import asyncio
import sys
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from weather_gateway.circuit_breaker.state import (
    BreakerSnapshot,
    CallAdmission,
    CircuitState,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AbstractBreakerStorage(ABC):
    """Abstract breaker storage interface."""

    @abstractmethod
    async def get_state(self, name: str) -> BreakerSnapshot:
        """Return the current breaker snapshot for ``name``."""

    @abstractmethod
    async def admit(self, name: str, recovery_timeout: float) -> CallAdmission:
        """Decide whether a call may run, claiming the trial slot if due."""

    @abstractmethod
    async def record_success(
        self, name: str
    ) -> tuple[BreakerSnapshot, BreakerSnapshot]:
        """Record a successful call and return ``(before, after)`` snapshots."""

    @abstractmethod
    async def record_failure(
        self, name: str, failure_threshold: int
    ) -> tuple[BreakerSnapshot, BreakerSnapshot]:
        """Record a failed call and return ``(before, after)`` snapshots."""

    @abstractmethod
    async def release_probe(self, name: str) -> BreakerSnapshot:
        """Return a ``HALF_OPEN`` breaker to ``OPEN`` without new failures."""

    @abstractmethod
    async def reset(self, name: str) -> BreakerSnapshot:
        """Reset breaker ``name`` to a healthy ``CLOSED`` state."""


class InMemoryBreakerStorage(AbstractBreakerStorage):
    """In-memory storage with per-breaker cooperative + optional thread locks."""

    def __init__(self) -> None:
        """Initialize in-memory snapshot and lock registries."""
        self._snapshots: dict[str, BreakerSnapshot] = {}
        self._async_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._thread_locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
        is_gil_enabled = getattr(sys, "_is_gil_enabled", None)
        self._gil_enabled = True if is_gil_enabled is None else bool(is_gil_enabled())

    def _default_snapshot(self, name: str) -> BreakerSnapshot:
        return BreakerSnapshot(
            name=name,
            state=CircuitState.CLOSED,
            failure_count=0,
            last_failure_at=None,
            opened_at=None,
        )

    def _current(self, name: str) -> BreakerSnapshot:
        snapshot = self._snapshots.get(name)
        if snapshot is None:
            snapshot = self._default_snapshot(name)
            self._snapshots[name] = snapshot
        return snapshot

    @asynccontextmanager
    async def _locked(self, name: str) -> AsyncIterator[None]:
        async_lock = self._async_locks[name]
        if self._gil_enabled:
            await async_lock.acquire()
            try:
                yield
            finally:
                async_lock.release()
            return

        thread_lock = self._thread_locks[name]
        thread_lock.acquire()
        try:
            await async_lock.acquire()
        except BaseException:
            thread_lock.release()
            raise
        try:
            yield
        finally:
            async_lock.release()
            thread_lock.release()

    async def get_state(self, name: str) -> BreakerSnapshot:
        """Return the current snapshot, creating a default one if missing."""
        async with self._locked(name):
            return self._current(name)

    async def admit(self, name: str, recovery_timeout: float) -> CallAdmission:
        """Admit, reject, or promote the caller to the half-open trial.

        ``OPEN`` rejects while ``now - last_failure_at <= recovery_timeout``.
        Once that window has elapsed, the first caller flips the breaker to
        ``HALF_OPEN`` and becomes the trial; callers arriving while the trial
        is in flight are rejected with ``retry_after=0``.
        """
        async with self._locked(name):
            snapshot = self._current(name)
            if snapshot.state == CircuitState.CLOSED:
                return CallAdmission(
                    admitted=True, is_probe=False, retry_after=0.0, snapshot=snapshot
                )

            if snapshot.state == CircuitState.HALF_OPEN:
                return CallAdmission(
                    admitted=False, is_probe=False, retry_after=0.0, snapshot=snapshot
                )

            now = _utcnow()
            failed_at = snapshot.last_failure_at or snapshot.opened_at or now
            elapsed = (now - failed_at).total_seconds()
            if elapsed <= recovery_timeout:
                return CallAdmission(
                    admitted=False,
                    is_probe=False,
                    retry_after=max(recovery_timeout - elapsed, 0.0),
                    snapshot=snapshot,
                )

            probing = BreakerSnapshot(
                name=name,
                state=CircuitState.HALF_OPEN,
                failure_count=snapshot.failure_count,
                last_failure_at=snapshot.last_failure_at,
                opened_at=snapshot.opened_at,
            )
            self._snapshots[name] = probing
            return CallAdmission(
                admitted=True, is_probe=True, retry_after=0.0, snapshot=probing
            )

    async def record_success(
        self, name: str
    ) -> tuple[BreakerSnapshot, BreakerSnapshot]:
        """Record a successful call.

        Already-healthy snapshots are returned untouched to avoid hot-path
        writes.
        """
        async with self._locked(name):
            snapshot = self._current(name)
            if (
                snapshot.state == CircuitState.CLOSED
                and snapshot.failure_count == 0
                and snapshot.last_failure_at is None
            ):
                return snapshot, snapshot
            updated = self._default_snapshot(name)
            self._snapshots[name] = updated
            return snapshot, updated

    async def record_failure(
        self, name: str, failure_threshold: int
    ) -> tuple[BreakerSnapshot, BreakerSnapshot]:
        """Increment the failure count and trip the breaker when due.

        A failure while ``HALF_OPEN`` reopens immediately regardless of the
        count. A failure while ``CLOSED`` opens once the count reaches
        ``failure_threshold``. A failure while already ``OPEN`` (a call admitted
        before the trip) refreshes ``last_failure_at``.
        """
        async with self._locked(name):
            snapshot = self._current(name)
            now = _utcnow()
            failure_count = snapshot.failure_count + 1
            state = snapshot.state
            opened_at = snapshot.opened_at

            if state == CircuitState.HALF_OPEN or (
                state == CircuitState.CLOSED and failure_count >= failure_threshold
            ):
                state = CircuitState.OPEN
                opened_at = now

            updated = BreakerSnapshot(
                name=name,
                state=state,
                failure_count=failure_count,
                last_failure_at=now,
                opened_at=opened_at,
            )
            self._snapshots[name] = updated
            return snapshot, updated

    async def release_probe(self, name: str) -> BreakerSnapshot:
        """Abandon an in-flight trial, keeping the original open window."""
        async with self._locked(name):
            snapshot = self._current(name)
            if snapshot.state != CircuitState.HALF_OPEN:
                return snapshot
            updated = BreakerSnapshot(
                name=name,
                state=CircuitState.OPEN,
                failure_count=snapshot.failure_count,
                last_failure_at=snapshot.last_failure_at,
                opened_at=snapshot.opened_at,
            )
            self._snapshots[name] = updated
            return updated

    async def reset(self, name: str) -> BreakerSnapshot:
        """Reset breaker state and counters to a healthy default snapshot."""
        async with self._locked(name):
            updated = self._default_snapshot(name)
            self._snapshots[name] = updated
            return updated
