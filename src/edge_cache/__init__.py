"""Edge Cache - stale-while-revalidate caching proxy for JSON origin APIs.

This package provides a layered architecture for edge caching:

Layers:
    - protocols: Interface contracts (CacheStore, OriginFetcher)
    - repositories: Redis/in-memory stores, the retrying origin fetcher, error sinks
    - services: Revalidation engine, request dispatch, background tasks
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from edge_cache.config import ProxyConfig, settings
    from edge_cache.repositories import InMemoryCacheRepository, RetryingFetcher
    from edge_cache.services import RevalidationEngine

    config = ProxyConfig.from_settings(settings)
    engine = RevalidationEngine.create(
        store=InMemoryCacheRepository(),
        fetcher=RetryingFetcher.create(),
        config=config,
    )
    ```

For HTTP API:
    ```python
    from edge_cache.api.app import app
    ```
"""

from edge_cache.config import VERSION, ProxyConfig, Settings, get_redis_client, settings
from edge_cache.entities import (
    CacheEntryEntity,
    CacheKey,
    Diagnostics,
    FreshnessPolicy,
    FreshnessTable,
    OriginSet,
    ProxyRequest,
    ProxyResponse,
    RetryPlan,
)
from edge_cache.errors import CacheStoreError, EdgeCacheError, FetchError, UpstreamError
from edge_cache.handlers import ProxyHandler
from edge_cache.protocols import CacheStore, OriginFetcher
from edge_cache.repositories import InMemoryCacheRepository, RedisCacheRepository, RetryingFetcher
from edge_cache.services import BackgroundTaskRunner, ProxyService, RevalidationEngine

__version__ = VERSION

__all__ = [
    # Configuration
    "settings",
    "Settings",
    "ProxyConfig",
    "get_redis_client",
    # Protocols (interfaces)
    "CacheStore",
    "OriginFetcher",
    # Services (business logic)
    "RevalidationEngine",
    "ProxyService",
    "BackgroundTaskRunner",
    # Handlers (HTTP)
    "ProxyHandler",
    # Repositories (data access)
    "RedisCacheRepository",
    "InMemoryCacheRepository",
    "RetryingFetcher",
    # Entities (domain models)
    "CacheEntryEntity",
    "CacheKey",
    "Diagnostics",
    "FreshnessPolicy",
    "FreshnessTable",
    "OriginSet",
    "ProxyRequest",
    "ProxyResponse",
    "RetryPlan",
    # Errors
    "EdgeCacheError",
    "FetchError",
    "UpstreamError",
    "CacheStoreError",
]
