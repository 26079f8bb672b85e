"""Key/value cache store capability.

Stores only move serialized strings with an expiry. Expiry enforcement belongs
to the store; callers treat any value returned by ``get`` as valid.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod

from redis.asyncio import Redis
from redis.exceptions import RedisError

from weather_gateway.errors import CacheUnavailableError


def _monotonic() -> float:
    return time.monotonic()


def _validate_ttl(ttl_seconds: int) -> None:
    if ttl_seconds < 1:
        raise ValueError("ttl_seconds must be >= 1")


class CacheStore(ABC):
    """Abstract cache store interface."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value for ``key`` or ``None`` when absent.

        Raises:
            CacheUnavailableError: When the store cannot be reached.
        """

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` expiring after ``ttl_seconds``.

        Raises:
            CacheUnavailableError: When the store cannot be reached.
        """


class RedisCacheStore(CacheStore):
    """Cache store over ``redis.asyncio`` using native key expiry."""

    def __init__(self, client: Redis) -> None:
        """Wrap an existing async Redis client.

        Args:
            client: Async Redis client. Connection pooling and socket
                timeouts are configured on the client.
        """
        self._client = client

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float | None = None) -> RedisCacheStore:
        """Build a store with its own client for ``url``."""
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    async def get(self, key: str) -> str | None:
        try:
            raw = await self._client.get(key)
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
        except (RedisError, OSError, UnicodeDecodeError) as exc:
            raise CacheUnavailableError(f"cache get failed for {key!r}: {exc}") from exc
        if raw is None:
            return None
        return str(raw)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        _validate_ttl(ttl_seconds)
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except (RedisError, OSError) as exc:
            raise CacheUnavailableError(f"cache set failed for {key!r}: {exc}") from exc

    async def aclose(self) -> None:
        """Close the underlying client and its connection pool."""
        await self._client.aclose()


class InMemoryCacheStore(CacheStore):
    """Process-local store with lazy expiry, for development and tests."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if _monotonic() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        _validate_ttl(ttl_seconds)
        self._entries[key] = (value, _monotonic() + ttl_seconds)

    def keys(self) -> list[str]:
        """Return stored keys, including ones that expired but were not read."""
        return list(self._entries)
