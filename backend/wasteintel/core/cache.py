"""
cache.py — In-Memory TTL Cache Utilities

Purpose:
- Provide a simple caching layer for expensive chart aggregations:
    * Hazardous waste breakdown (10 minutes)
    * Recovery-rate distribution (5 minutes)
    * Company map coordinates (5 minutes, served stale on query failure)
- In-process Python dict (non-distributed, non-persistent).

Key Notes:
- Each serverless / uvicorn worker has its own cache; entries can differ
  between workers for up to one TTL.
- Cache keys should be deterministic: (namespace, identifier) strings.

This module should be a *utility helper*, not a stateful service.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    ttl_seconds: Optional[float]

    def is_fresh(self, now: float) -> bool:
        if self.ttl_seconds is None:
            return True
        return (now - self.stored_at) < self.ttl_seconds


# Key: str identifier
_cache_store: Dict[str, CacheEntry] = {}


def make_key(namespace: str, identifier: Any) -> str:
    """
    Utility to construct consistent cache keys.

    Example:
        make_key("charts", "hazardous-breakdown") → "charts:hazardous-breakdown"
    """
    return f"{namespace}:{identifier}"


def cache_get(key: str, allow_stale: bool = False) -> Any:
    """
    Retrieve cached object if present and fresh.
    Returns None if not cached or expired (unless allow_stale=True).
    """
    entry = _cache_store.get(key)
    if entry is None:
        return None
    if allow_stale or entry.is_fresh(time.monotonic()):
        return entry.value
    return None


def cache_stored_at(key: str) -> Optional[float]:
    """Wall-clock timestamp of the last write for `key`, if any."""
    entry = _cache_store.get(key)
    if entry is None:
        return None
    return time.time() - (time.monotonic() - entry.stored_at)


def cache_set(key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
    """
    Store object in cache. ttl_seconds=None keeps it until cleared.
    """
    _cache_store[key] = CacheEntry(value=value, stored_at=time.monotonic(), ttl_seconds=ttl_seconds)


def cache_delete(key: str) -> None:
    _cache_store.pop(key, None)


def cache_clear(namespace: str = None) -> None:
    """
    Clears cache entirely, or optionally clears only a specific namespace.

    Example:
        cache_clear("charts") clears keys starting with "charts:"
    """
    if namespace is None:
        _cache_store.clear()
    else:
        prefix = f"{namespace}:"
        for key in list(_cache_store.keys()):
            if key.startswith(prefix):
                del _cache_store[key]
