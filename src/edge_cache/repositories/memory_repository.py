"""In-process implementation of CacheStore."""

import threading
import time
from typing import Callable

from edge_cache.entities import CacheEntryEntity, CacheKey


class InMemoryCacheRepository:
    """Thread-safe dictionary store for single-process deployments.

    Satisfies the CacheStore protocol. Entries live until overwritten
    or until the process exits.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[CacheKey, CacheEntryEntity] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: CacheKey) -> CacheEntryEntity | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: CacheKey, entry: CacheEntryEntity) -> CacheEntryEntity:
        stored = entry.stamped(self._clock())
        with self._lock:
            self._entries[key] = stored
        return stored

    def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
