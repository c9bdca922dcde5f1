import time
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from storage.cache_store import CacheStore


class InMemoryTTLStore(CacheStore):
    """
    Process-local store. Good for a single worker and for tests; several processes
    need a shared store such as SQLCacheStore to see the same health state.
    """
    supports_tags = True

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = Lock()
        self._entries: Dict[str, Tuple[str, float, Optional[str]]] = {}  # key -> (value, expires_at, tag)

    def get(self, key, default=None):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            value, expires_at, _ = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return default
            return value

    def put(self, key, value, ttl_seconds, tag=None):
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds, tag)

    def flush_tag(self, tag):
        with self._lock:
            for key in [k for k, (_, _, t) in self._entries.items() if t == tag]:
                del self._entries[key]

    def __len__(self):
        now = self._clock()
        with self._lock:
            return sum(1 for _, expires_at, _ in self._entries.values() if expires_at > now)


class UntaggedStore(CacheStore):
    """Wraps another store and hides its tag support, like memcached-style backends."""
    supports_tags = False

    def __init__(self, inner: CacheStore):
        self._inner = inner

    def get(self, key, default=None):
        return self._inner.get(key, default)

    def put(self, key, value, ttl_seconds, tag=None):
        self._inner.put(key, value, ttl_seconds)
