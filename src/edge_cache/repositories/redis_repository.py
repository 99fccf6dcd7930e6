"""Redis implementation of CacheStore.

Each cached response lives in one Redis hash keyed by the canonical
request key. It satisfies the CacheStore protocol.
"""

import json
import math
import time
from typing import Callable

import redis

from edge_cache.config import get_redis_client, settings
from edge_cache.entities import CacheEntryEntity, CacheKey
from edge_cache.errors import CacheStoreError
from edge_cache.logging import get_logger

logger = get_logger(__name__)


class RedisCacheRepository:
    """Redis implementation using one hash per cache key.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.

    Hash fields:
    - status: origin status code
    - headers: JSON object of stored headers
    - body: raw body bytes
    - stored_at: Unix timestamp written on put
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
        retention: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the Redis cache repository.

        Args:
            redis_client: Redis client instance. If None, creates default.
            key_prefix: Namespace prepended to every Redis key.
            retention: Redis expiry in seconds, 0 keeps entries until overwritten.
            clock: Source of storage timestamps.
        """
        self._client = redis_client or get_redis_client()
        self._key_prefix = key_prefix or settings.cache_key_prefix
        self._retention = settings.cache_retention if retention is None else retention
        self._clock = clock

    @classmethod
    def create(
        cls,
        key_prefix: str | None = None,
        retention: int | None = None,
    ) -> "RedisCacheRepository":
        """Factory method to create RedisCacheRepository with defaults.

        Args:
            key_prefix: Redis key namespace. If None, uses settings.
            retention: Expiry in seconds. If None, uses settings.

        Returns:
            Configured RedisCacheRepository
        """
        return cls(key_prefix=key_prefix, retention=retention)

    def _redis_key(self, key: CacheKey) -> str:
        return f"{self._key_prefix}:{key}"

    def get(self, key: CacheKey) -> CacheEntryEntity | None:
        """Look up a cache entry in Redis.

        Connection errors and corrupt hashes are logged and reported
        as a miss.

        Args:
            key: Canonical cache key

        Returns:
            The stored entry, or None if absent or unreadable
        """
        try:
            raw: dict[bytes, bytes] = self._client.hgetall(self._redis_key(key))  # type: ignore[assignment]
        except redis.RedisError as e:
            logger.warning("cache_get_failed", key=str(key), error=str(e))
            return None

        if not raw:
            return None

        try:
            headers = json.loads(raw.get(b"headers", b"{}"))
            if not isinstance(headers, dict):
                raise TypeError(f"headers must be a JSON object, got {type(headers).__name__}")
            return CacheEntryEntity(
                status_code=int(raw[b"status"]),
                headers=headers,
                body=raw.get(b"body", b""),
                stored_at=_parse_timestamp(raw.get(b"stored_at")),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("cache_entry_corrupt", key=str(key), error=str(e))
            return None

    def put(self, key: CacheKey, entry: CacheEntryEntity) -> CacheEntryEntity:
        """Store an entry in Redis, overwriting the previous one.

        Args:
            key: Canonical cache key
            entry: Entry to store

        Returns:
            The entry with its storage timestamp

        Raises:
            CacheStoreError: If Redis rejects the write
        """
        stored = entry.stamped(self._clock())
        redis_key = self._redis_key(key)

        pipe = self._client.pipeline()
        pipe.hset(
            redis_key,
            mapping={
                "status": str(stored.status_code),
                "headers": json.dumps(dict(stored.headers)),
                "body": stored.body,
                "stored_at": str(stored.stored_at),
            },
        )
        if self._retention:
            pipe.expire(redis_key, self._retention)
        else:
            pipe.persist(redis_key)

        try:
            pipe.execute()
        except redis.RedisError as e:
            raise CacheStoreError(f"Failed to store {key}", {"key": str(key)}) from e

        return stored

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client


def _parse_timestamp(raw: bytes | None) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    # nan and inf have no meaningful age
    return value if math.isfinite(value) else None
