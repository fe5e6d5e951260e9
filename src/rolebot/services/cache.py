from __future__ import annotations

import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """In-memory cache whose entries expire ``ttl`` seconds after being set.

    ``lookup`` separates a miss from a cached ``None``; ``get`` does not.
    """

    def __init__(self, default_ttl_seconds: int = 120, clock: Callable[[], float] = time.monotonic) -> None:
        self._default_ttl = max(1, int(default_ttl_seconds))
        self._clock = clock
        self._store: Dict[K, Tuple[V, float]] = {}

    def lookup(self, key: K) -> Tuple[bool, Optional[V]]:
        hit = self._store.get(key)
        if hit is None:
            return False, None
        value, expires_at = hit
        if expires_at <= self._clock():
            del self._store[key]
            return False, None
        return True, value

    def get(self, key: K) -> Optional[V]:
        return self.lookup(key)[1]

    def set(self, key: K, value: V, ttl_seconds: Optional[int] = None) -> None:
        ttl = self._default_ttl if ttl_seconds is None else max(1, int(ttl_seconds))
        self._store[key] = (value, self._clock() + ttl)

    def invalidate(self, key: K) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for _, expires_at in self._store.values() if expires_at > now)
