"""Cache key derivation.

Keys are shared with anything that inspects the store directly, so the
format is fixed: ``<resource_type>:<lowercased key>[:YYYY-MM-DD]``.
"""

from __future__ import annotations

from datetime import date


def normalize_key(key: str) -> str:
    """Case-normalize a logical key for cache addressing."""
    return key.strip().lower()


def build_cache_key(resource_type: str, key: str, day: date | None = None) -> str:
    """Build the cache key for one logical resource.

    Args:
        resource_type: Resource type prefix, for example ``"weather"``.
        key: Logical request key, normalized here.
        day: Optional date bucket for time-sensitive resources.
    """
    cache_key = f"{resource_type}:{normalize_key(key)}"
    if day is not None:
        cache_key = f"{cache_key}:{day.isoformat()}"
    return cache_key
