"""Cache storage protocol.

Defines the capability boundary the proxy needs from a key-value
cache: content-addressed get and put by canonical request key.

Implementations can include:
- Redis hashes (default)
- In-process dictionary (single worker, tests)
- Any other store that is safe for concurrent get/put
"""

from typing import Protocol, runtime_checkable

from edge_cache.entities import CacheEntryEntity, CacheKey


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Any type that implements these methods satisfies the protocol,
    no explicit inheritance needed.

    Example:
        ```python
        from edge_cache.protocols import CacheStore

        store: CacheStore = RedisCacheRepository.create()
        store: CacheStore = InMemoryCacheRepository()
        ```
    """

    def get(self, key: CacheKey) -> CacheEntryEntity | None:
        """Look up the entry stored for a key.

        Must not block indefinitely. Any internal error is reported
        as a miss.

        Args:
            key: Canonical cache key

        Returns:
            The stored entry, or None if absent
        """
        ...

    def put(self, key: CacheKey, entry: CacheEntryEntity) -> CacheEntryEntity:
        """Store an entry, replacing whatever the key held.

        Last write wins. The store attaches the storage timestamp used
        for later age computation.

        Args:
            key: Canonical cache key
            entry: Entry to store (its stored_at is ignored)

        Returns:
            The entry as stored, with stored_at set

        Raises:
            CacheStoreError: If the write fails
        """
        ...

    def health_check(self) -> bool:
        """Check if the store is accessible.

        Returns:
            True if healthy, False otherwise
        """
        ...
