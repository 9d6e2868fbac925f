"""In-memory TTL cache with LRU eviction for restaurant metadata.

Availability is never cached here: every slot query goes to the API so a
fresh snapshot is returned for each (restaurant, date, party size).
"""

import time
from collections import OrderedDict


def cache_key(kind: str, restaurant_id: str) -> str:
    """Build a namespaced key, e.g. ``details:rest-1``."""
    return f"{kind}:{restaurant_id}"


class CacheMetrics:
    """Tracks cache hit/miss statistics."""

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


class InMemoryCache:
    """TTL-based cache with LRU eviction.

    Args:
        max_size: Maximum number of entries before eviction.
        ttl_seconds: Default maximum age of an entry.
    """

    def __init__(self, max_size: int = 100, ttl_seconds: float = 300.0) -> None:
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._store: OrderedDict[str, tuple[float, object]] = OrderedDict()
        self.metrics = CacheMetrics()

    def get(self, key: str, max_age_seconds: float | None = None) -> object | None:
        """Return the value for *key* if present and younger than the TTL."""
        max_age = self.ttl_seconds if max_age_seconds is None else max_age_seconds
        entry = self._store.get(key)
        if entry is None:
            self.metrics.misses += 1
            return None

        stored_at, value = entry
        if time.monotonic() - stored_at > max_age:
            del self._store[key]
            self.metrics.misses += 1
            return None

        self._store.move_to_end(key)
        self.metrics.hits += 1
        return value

    def set(self, key: str, value: object) -> None:
        """Store a value, evicting the least recently used entry if full."""
        if key not in self._store and len(self._store) >= self.max_size:
            self._store.popitem(last=False)
        self._store[key] = (time.monotonic(), value)
        self._store.move_to_end(key)

    def invalidate(self, key: str) -> bool:
        """Remove a specific key. Returns True if the key existed."""
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()

    @property
    def size(self) -> int:
        return len(self._store)
