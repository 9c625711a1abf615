"""Per-entity read-through caches backed by `cachetools.TTLCache`."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional, Protocol

from cachetools import TTLCache

_LOGGER = logging.getLogger("lessons.cache")


class EntityCache(Protocol):
    """Minimal map interface the controllers rely on."""

    def get(self, key: int) -> Optional[Any]: ...

    def put(self, key: int, value: Any) -> None: ...

    def remove(self, key: int) -> None: ...

    def clear(self) -> None: ...


class TTLEntityCache:
    """Thread-safe TTL map keyed by entity id.

    Entries expire `ttl_seconds` after they were stored; once `max_entries`
    is reached the least recently used entry is dropped.
    """

    def __init__(self, name: str, max_entries: int = 1000, ttl_seconds: float = 300,
                 timer: Callable[[], float] = time.monotonic):
        self.name = name
        self._data: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl_seconds, timer=timer)
        self._lock = threading.Lock()

    def get(self, key: int) -> Optional[Any]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: int, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: int) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            self._data.expire()
            return len(self._data)


def read_through(cache: EntityCache, key: int, loader: Callable[[], Any]) -> Any:
    """Return the cached value for `key`, loading and storing it on a miss.

    Errors raised by `loader` propagate and nothing is cached.
    """
    cached = cache.get(key)
    if cached is not None:
        return cached
    value = loader()
    cache.put(key, value)
    _LOGGER.debug("cache_miss cache=%s key=%s", getattr(cache, "name", "?"), key)
    return value
