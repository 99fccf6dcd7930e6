"""Repository layer for data access.

This layer abstracts external dependencies (Redis, the origin API,
error analytics) behind protocol-based interfaces. This enables:
- Easy swapping of implementations (Redis -> in-memory, etc.)
- Unit testing with mock implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from edge_cache.protocols import CacheStore, OriginFetcher

from .error_sink import HttpErrorSink, LoggingErrorSink
from .memory_repository import InMemoryCacheRepository
from .redis_repository import RedisCacheRepository
from .retrying_fetcher import RetryingFetcher

__all__ = [
    "CacheStore",
    "OriginFetcher",
    "HttpErrorSink",
    "InMemoryCacheRepository",
    "LoggingErrorSink",
    "RedisCacheRepository",
    "RetryingFetcher",
]
