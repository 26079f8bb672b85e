"""Cache store capability and key derivation."""

from weather_gateway.cache.keys import build_cache_key, normalize_key
from weather_gateway.cache.store import (
    CacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
)

__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "build_cache_key",
    "normalize_key",
]
