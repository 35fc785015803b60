"""Lightweight in-memory TTL cache for aggregate queries.

Team statistics are recomputed from every report of a tenant; repeated
dashboard loads within a short window are served from here. Writers that
change the aggregates (new report, hire, delete) call ``invalidate_tenant``.
"""

import time
from collections.abc import Hashable
from typing import Any

_cache: dict[Hashable, tuple[float, Any]] = {}

# Default TTL in seconds
DEFAULT_TTL = 30


def get(key: Hashable, ttl: float = DEFAULT_TTL) -> Any | None:
    """Return cached value if present and not expired, else None."""
    entry = _cache.get(key)
    if entry is None:
        return None
    stored_at, value = entry
    if time.monotonic() - stored_at > ttl:
        _cache.pop(key, None)
        return None
    return value


def put(key: Hashable, value: Any) -> None:
    _cache[key] = (time.monotonic(), value)


def invalidate(key: Hashable) -> None:
    _cache.pop(key, None)


def invalidate_tenant(tenant_id: Any) -> None:
    """Drop every ``("team", <name>, tenant_id, ...)`` entry."""
    for key in list(_cache):
        if isinstance(key, tuple) and len(key) >= 3 and key[0] == "team" and key[2] == tenant_id:
            _cache.pop(key, None)


def clear() -> None:
    _cache.clear()
