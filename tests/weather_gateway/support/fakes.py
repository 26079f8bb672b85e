from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime, timedelta

from weather_gateway.cache import CacheStore, InMemoryCacheStore
from weather_gateway.errors import CacheUnavailableError, RemoteFetchError


class FakeLogger:
    """Capture structured logger events for assertions."""

    def __init__(self) -> None:
        self.events: list[str] = []
        self.calls: list[tuple[str, str, dict[str, object]]] = []

    def _record(self, level: str, event: str, **kwargs: object) -> None:
        self.events.append(event)
        self.calls.append((level, event, kwargs))

    def info(self, event: str, **kwargs: object) -> None:
        self._record("info", event, **kwargs)

    def warning(self, event: str, **kwargs: object) -> None:
        self._record("warning", event, **kwargs)

    def error(self, event: str, **kwargs: object) -> None:
        self._record("error", event, **kwargs)

    def exception(self, event: str, **kwargs: object) -> None:
        self._record("exception", event, **kwargs)

    def fields_for(self, event: str) -> list[dict[str, object]]:
        return [fields for _, name, fields in self.calls if name == event]


class FakeClock:
    """Settable UTC clock for monkeypatching module-level ``_utcnow``."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = datetime(2025, 7, 24, 12, 0, tzinfo=UTC) if start is None else start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now = self._now + timedelta(seconds=seconds)


class RecordingCacheStore(InMemoryCacheStore):
    """In-memory store that records writes and can be told to fail."""

    def __init__(self, *, fail_reads: bool = False, fail_writes: bool = False) -> None:
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.reads: list[str] = []
        self.writes: list[tuple[str, str, int]] = []

    async def get(self, key: str) -> str | None:
        self.reads.append(key)
        if self.fail_reads:
            raise CacheUnavailableError("connection refused")
        return await super().get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.writes.append((key, value, ttl_seconds))
        if self.fail_writes:
            raise CacheUnavailableError("connection reset")
        await super().set(key, value, ttl_seconds)


class SlowCacheStore(CacheStore):
    """Store whose reads yield to the event loop before reporting a miss."""

    def __init__(self) -> None:
        self.writes: list[str] = []

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(0)
        return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await asyncio.sleep(0)
        self.writes.append(key)


class FakeRemote:
    """Remote fetch double returning a fixed payload or raising."""

    def __init__(
        self,
        payload: object = None,
        *,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.payload = payload
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, date | None]] = []

    async def __call__(self, key: str, day: date | None) -> object:
        self.calls.append((key, day))
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.payload


def provider_error() -> RemoteFetchError:
    return RemoteFetchError("provider request failed with status 503", http_status=503)
