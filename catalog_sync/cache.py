"""
Small TTL cache owned by whoever injects it (the API app state, tests).

Entries carry their store time. Expiry is checked on read, and every write
also drops expired entries so keys that are never read again do not pile up.
There is no background sweeper.
"""

from __future__ import annotations

import hashlib
import time
from typing import Any, Callable


def cache_key(**params: Any) -> str:
    """Deterministic key for a set of parameters (order-independent)."""
    ck = "&".join(sorted(f"{k}={v}" for k, v in params.items()))
    return hashlib.sha1(ck.encode("utf-8")).hexdigest()


class TTLCache:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._cache: dict[str, tuple[float, Any]] = {}

    def get(self, key: str, default: Any = None) -> Any:
        hit = self._cache.get(key)
        if hit is None:
            return default
        if (self._clock() - hit[0]) >= self._ttl:
            del self._cache[key]
            return default
        return hit[1]

    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        self._purge(now)
        self._cache[key] = (now, value)

    def _purge(self, now: float) -> None:
        stale = [k for k, (ts, _) in self._cache.items() if (now - ts) >= self._ttl]
        for k in stale:
            del self._cache[k]

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
