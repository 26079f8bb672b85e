"""Cache-aside resolution for one resource type.

``fetch`` checks the cache, falls back to the breaker-guarded remote fetch on a
miss, writes the mapped payload back on a best-effort basis, and tags the
result with its origin. Concurrent misses for the same key are not coalesced:
each one fetches and writes independently and the last writer wins.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Generic, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PayloadDecodeError

from weather_gateway.cache import CacheStore, build_cache_key
from weather_gateway.circuit_breaker import CircuitBreaker, CircuitState
from weather_gateway.errors import (
    CacheUnavailableError,
    KeyValidationError,
    UpstreamUnavailableError,
)
from weather_gateway.logging import (
    StructuredLogger,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

T = TypeVar("T")

MAX_KEY_LENGTH = 256

RemoteFetch = Callable[[str, date | None], Awaitable[object]]
ResponseMapper = Callable[[object, str], T]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FetchOrigin(StrEnum):
    """Where a fetched payload came from."""

    CACHE = "cache"
    LIVE = "live"


@dataclass(frozen=True)
class FetchOutcome(Generic[T]):
    """Normalized payload plus the origin it was served from."""

    payload: T
    origin: FetchOrigin


def validate_key(key: object) -> str:
    """Return the stripped logical key or raise ``KeyValidationError``."""
    if not isinstance(key, str):
        raise KeyValidationError("key must be a string")
    stripped = key.strip()
    if not stripped:
        raise KeyValidationError("key must be non-empty")
    if len(stripped) > MAX_KEY_LENGTH:
        raise KeyValidationError(f"key must be at most {MAX_KEY_LENGTH} characters")
    return stripped


class CacheAsideOrchestrator(Generic[T]):
    """Resolve one resource type through cache, breaker and remote fetch."""

    def __init__(
        self,
        *,
        resource_type: str,
        store: CacheStore,
        breaker: CircuitBreaker,
        remote_fetch: RemoteFetch,
        mapper: ResponseMapper[T],
        payload_type: type[T] | object,
        ttl_seconds: int,
        time_bucketed: bool = False,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Wire one resource type's collaborators.

        Args:
            resource_type: Cache key prefix and log label, for example
                ``"weather"``.
            store: Cache store shared across resource types.
            breaker: Breaker dedicated to this resource type's upstream.
            remote_fetch: Async callable ``(key, day)`` returning the raw
                provider payload.
            mapper: Pure function ``(raw, key)`` producing the normalized
                payload.
            payload_type: Type annotation of the normalized payload, used to
                serialize cache records.
            ttl_seconds: Cache expiry for written records. ``0`` disables both
                cache reads and writes.
            time_bucketed: Whether cache keys carry a ``YYYY-MM-DD`` segment.
            logger: Structured logger for cache and upstream events.
        """
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.resource_type = resource_type
        self.breaker = breaker
        self.ttl_seconds = ttl_seconds
        self.time_bucketed = time_bucketed
        self._store = store
        self._remote_fetch = remote_fetch
        self._mapper = mapper
        self._adapter: TypeAdapter[T] = TypeAdapter(payload_type)
        self._logger = (
            get_logger("weather_gateway.orchestrator") if logger is None else logger
        )

    @property
    def caching_enabled(self) -> bool:
        return self.ttl_seconds > 0

    async def status(self) -> CircuitState:
        """Return this resource type's breaker state."""
        return await self.breaker.status()

    async def fetch(self, key: str, *, day: date | None = None) -> FetchOutcome[T]:
        """Resolve ``key`` from cache or, on a miss, from the live upstream.

        Raises:
            KeyValidationError: When ``key`` is malformed. No I/O happens.
            UpstreamUnavailableError: When the live path fails for any reason,
                including an open circuit or a call timeout. The original
                error is chained as ``__cause__``.
        """
        logical_key = validate_key(key)
        bucket = self._bucket(day)
        cache_key = build_cache_key(self.resource_type, logical_key, bucket)

        if self.caching_enabled:
            cached = await self._read_cache(cache_key)
            if cached is not None:
                log_info(self._logger, "cache.hit", cache_key=cache_key)
                return FetchOutcome(payload=cached, origin=FetchOrigin.CACHE)
            log_info(self._logger, "cache.miss", cache_key=cache_key)

        try:
            payload = await self.breaker.call(
                self._fetch_live, logical_key, bucket, cache_key
            )
        except Exception as exc:
            breaker_state = await self.breaker.status()
            log_fn = log_error if breaker_state == CircuitState.OPEN else log_warning
            log_fn(
                self._logger,
                "upstream.unavailable",
                resource_type=self.resource_type,
                cache_key=cache_key,
                breaker_state=str(breaker_state),
                cause=exc.__class__.__name__,
                error=str(exc),
            )
            raise UpstreamUnavailableError(self.resource_type) from exc

        log_info(self._logger, "upstream.fetched", cache_key=cache_key)
        return FetchOutcome(payload=payload, origin=FetchOrigin.LIVE)

    def _bucket(self, day: date | None) -> date | None:
        if not self.time_bucketed:
            if day is not None:
                raise KeyValidationError(
                    f"resource {self.resource_type!r} is not date-bucketed"
                )
            return None
        if day is None:
            return _utcnow().date()
        if isinstance(day, datetime):
            return day.date()
        return day

    async def _fetch_live(
        self, logical_key: str, bucket: date | None, cache_key: str
    ) -> T:
        raw = await self._remote_fetch(logical_key, bucket)
        payload = self._mapper(raw, logical_key)
        if self.caching_enabled:
            await self._write_cache(cache_key, payload)
        return payload

    async def _read_cache(self, cache_key: str) -> T | None:
        try:
            raw = await self._store.get(cache_key)
        except CacheUnavailableError as exc:
            log_warning(
                self._logger, "cache.read_failed", cache_key=cache_key, error=str(exc)
            )
            return None
        if raw is None:
            return None
        try:
            return self._adapter.validate_json(raw)
        except PayloadDecodeError as exc:
            log_warning(
                self._logger,
                "cache.decode_failed",
                cache_key=cache_key,
                error_count=exc.error_count(),
            )
            return None

    async def _write_cache(self, cache_key: str, payload: T) -> None:
        serialized = self._adapter.dump_json(payload).decode("utf-8")
        try:
            await self._store.set(cache_key, serialized, self.ttl_seconds)
        except CacheUnavailableError as exc:
            log_warning(
                self._logger, "cache.write_failed", cache_key=cache_key, error=str(exc)
            )
