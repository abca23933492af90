"""Lightweight in-memory TTL cache.

Used by the API to hold one dashboard engine per dataset for a bounded time,
mirroring how long a mounted dashboard keeps its loaded table before a fresh
mount reloads it.  Evicted values can be handed to a callback so owners can
release them (an engine cancels its load and drops its row set).
"""

import threading
import time
from typing import Any, Callable, Optional


class TTLCache:
    """Thread-safe in-memory cache with time-to-live (TTL) expiry.

    Entries expire after ``ttl_seconds`` seconds. A maximum of ``maxsize``
    entries are retained; when the cache is full the entry closest to expiry
    is evicted.

    Usage::

        engines = TTLCache(maxsize=8, ttl_seconds=900, on_evict=lambda k, v: v.close())
        engine = engines.get_or_create("capital", build_engine)
    """

    def __init__(self, maxsize: int = 128, ttl_seconds: float = 300.0,
                 on_evict: Optional[Callable[[Any, Any], None]] = None) -> None:
        """Initialise the cache.

        Args:
            maxsize: Maximum number of entries to store (default 128).
            ttl_seconds: Seconds before a cached entry expires (default 300).
            on_evict: Called as ``on_evict(key, value)`` for every entry that
                expires, is evicted, deleted or cleared.  Never called while
                the internal lock is held.
        """
        self._maxsize = maxsize
        self._ttl = ttl_seconds
        self._on_evict = on_evict
        # Maps key -> (value, expires_at)
        self._store: dict[Any, tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def _lookup(self, key: Any, now: float, dropped: list) -> Any | None:
        # Caller holds the lock
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if now > expires_at:
            del self._store[key]
            dropped.append((key, value))
            return None
        return value

    def _insert(self, key: Any, value: Any, now: float, dropped: list) -> None:
        # Caller holds the lock
        if key in self._store:
            old_value = self._store[key][0]
            if old_value is not value:
                dropped.append((key, old_value))
        elif len(self._store) >= self._maxsize:
            oldest_key = min(self._store, key=lambda k: self._store[k][1])
            dropped.append((oldest_key, self._store.pop(oldest_key)[0]))
        self._store[key] = (value, now + self._ttl)

    def _release(self, dropped: list) -> None:
        if self._on_evict is None:
            return
        for key, value in dropped:
            self._on_evict(key, value)

    def get(self, key: Any) -> Any | None:
        """Return cached value for *key*, or ``None`` if absent or expired."""
        dropped: list = []
        with self._lock:
            value = self._lookup(key, time.monotonic(), dropped)
            if value is None:
                self._misses += 1
            else:
                self._hits += 1
        self._release(dropped)
        return value

    def set(self, key: Any, value: Any) -> None:
        """Store *value* under *key* with the configured TTL."""
        dropped: list = []
        with self._lock:
            self._insert(key, value, time.monotonic(), dropped)
        self._release(dropped)

    def get_or_create(self, key: Any, factory: Callable[[], Any]) -> Any:
        """Return the live value for *key*, building it with *factory* on a miss.

        The factory runs under the cache lock so two callers racing on the
        same missing key get the same new value.  Keep factories cheap.
        """
        dropped: list = []
        with self._lock:
            now = time.monotonic()
            value = self._lookup(key, now, dropped)
            if value is None:
                self._misses += 1
                value = factory()
                self._insert(key, value, now, dropped)
            else:
                self._hits += 1
        self._release(dropped)
        return value

    def delete(self, key: Any) -> None:
        """Remove a single entry from the cache (no-op if not present)."""
        with self._lock:
            entry = self._store.pop(key, None)
        if entry is not None:
            self._release([(key, entry[0])])

    def clear(self) -> None:
        """Remove all entries from the cache and reset the counters."""
        with self._lock:
            dropped = [(k, v) for k, (v, _) in self._store.items()]
            self._store.clear()
            self._hits = 0
            self._misses = 0
        self._release(dropped)

    def stats(self) -> dict[str, int]:
        """Return ``hits``, ``misses`` and ``size`` (expired entries purged first)."""
        with self._lock:
            now = time.monotonic()
            dropped = [(k, v) for k, (v, exp) in self._store.items() if now > exp]
            for k, _ in dropped:
                del self._store[k]
            stats = {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._store),
            }
        self._release(dropped)
        return stats
