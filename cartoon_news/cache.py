"""Time-boxed in-memory cache."""

import threading
import time
from collections.abc import Callable
from typing import Any

from .models import CacheEntry


class TTLCache:
    """Key/value cache whose entries go stale ``ttl`` seconds after storage.

    Stale entries are evicted lazily when read; nothing sweeps the map.
    """

    def __init__(
        self,
        default_ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str, ttl: float | None = None, default: Any = None) -> Any:
        """Return the fresh value for ``key`` or ``default``."""
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if self.clock() - entry.stored_at > ttl:
                del self._entries[key]
                return default
            return entry.data

    def set(self, key: str, data: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(data=data, stored_at=self.clock())

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
