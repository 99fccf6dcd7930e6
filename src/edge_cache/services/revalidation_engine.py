"""Stale-while-revalidate decision engine.

Classifies a cached entry as fresh, stale or expired and decides what
the caller receives:

- fresh: the stored entry, no network call
- stale: the stored entry immediately, plus one background
  fetch-and-store whose failures are only logged
- expired or absent: a synchronous fetch; on failure any stored entry
  (however old) is served with a revalidation warning, and only a
  key with nothing cached surfaces the failure
"""

import time
from datetime import datetime, timezone
from typing import Callable, Mapping

from edge_cache.config import ProxyConfig
from edge_cache.entities import (
    CacheEntryEntity,
    CacheKey,
    CacheOutcome,
    CacheStatus,
    Diagnostics,
    Freshness,
    FreshnessPolicy,
    FreshnessTable,
    OriginSet,
    ProxyRequest,
    ProxyResponse,
    RetryPlan,
    layer_headers,
)
from edge_cache.errors import CacheStoreError, FetchError, UpstreamError
from edge_cache.logging import get_logger
from edge_cache.models import ProxyMetrics
from edge_cache.protocols import CacheStore, OriginFetcher
from edge_cache.services.background import BackgroundTaskRunner

logger = get_logger(__name__)


class RevalidationEngine:
    """Serves cacheable requests from the store and the origin.

    Depends on PROTOCOLS, not concrete implementations:
    - CacheStore: Redis, in-memory, ...
    - OriginFetcher: httpx with retry/failover, or a test double

    Example:
        ```python
        engine = RevalidationEngine.create(
            store=InMemoryCacheRepository(),
            fetcher=RetryingFetcher.create(),
            config=ProxyConfig.from_settings(settings),
        )
        response, diagnostics = await engine.handle(request, config.origins, config.freshness)
        ```
    """

    def __init__(
        self,
        store: CacheStore,
        fetcher: OriginFetcher,
        retry_plan: RetryPlan,
        standard_headers: Mapping[str, str] | None = None,
        runner: BackgroundTaskRunner | None = None,
        metrics: ProxyMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Cache storage backend (required).
            fetcher: Origin client (required).
            retry_plan: Backoff plan for every origin fetch.
            standard_headers: Cross-cutting headers added to every response.
            runner: Task runner for background revalidation.
            metrics: Counters for background failures.
            clock: Source of "now" for age computation.
        """
        self._store = store
        self._fetcher = fetcher
        self._retry_plan = retry_plan
        self._standard_headers = dict(standard_headers or {})
        self._runner = runner or BackgroundTaskRunner()
        self._metrics = metrics or ProxyMetrics()
        self._clock = clock

    @classmethod
    def create(
        cls,
        store: CacheStore,
        fetcher: OriginFetcher,
        config: ProxyConfig,
        runner: BackgroundTaskRunner | None = None,
        metrics: ProxyMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> "RevalidationEngine":
        """Factory method wiring the engine from the runtime config."""
        return cls(
            store=store,
            fetcher=fetcher,
            retry_plan=config.retry_plan,
            standard_headers=config.standard_headers,
            runner=runner,
            metrics=metrics,
            clock=clock,
        )

    async def handle(
        self,
        request: ProxyRequest,
        origins: OriginSet,
        freshness: FreshnessTable,
    ) -> tuple[ProxyResponse, Diagnostics]:
        """Answer a cacheable request.

        Args:
            request: The incoming GET/HEAD request
            origins: Primary and optional failover origin
            freshness: Per-resource TTL table

        Returns:
            The response to send and how it was produced

        Raises:
            UpstreamError: If the origin is unreachable and nothing is cached
        """
        key = CacheKey.from_request(request.method, request.path, request.query)
        policy = freshness.resolve(key.resource_name)
        entry = self._store.get(key)

        if entry is not None:
            age = entry.age(self._clock())
            state = policy.classify(age)

            if state is Freshness.FRESH:
                return self._respond(entry, Diagnostics(CacheOutcome.HIT, CacheStatus.FRESH, str(key), age))

            if state is Freshness.STALE:
                self._runner.spawn(
                    self._revalidate(key, origins, policy),
                    name=f"revalidate {key}",
                )
                return self._respond(
                    entry,
                    Diagnostics(
                        CacheOutcome.HIT,
                        CacheStatus.STALE,
                        str(key),
                        age,
                        revalidation_scheduled=True,
                    ),
                )

            # Kept for the stale-error fallback below
            logger.info("cache_entry_expired", key=str(key), age=age)

        return await self._fetch_and_respond(key, origins, policy, entry)

    async def _fetch_and_respond(
        self,
        key: CacheKey,
        origins: OriginSet,
        policy: FreshnessPolicy,
        entry: CacheEntryEntity | None,
    ) -> tuple[ProxyResponse, Diagnostics]:
        try:
            response = await self._fetcher.fetch(origins, key.url, self._retry_plan)
        except FetchError as e:
            if entry is None:
                raise UpstreamError(
                    "Origin unreachable and no cached copy available",
                    {"key": str(key), "attempts": e.attempts},
                ) from e
            logger.warning("serving_stale_on_fetch_error", key=str(key), error=e.message)
            return self._stale_error(key, entry)
        except Exception:
            if entry is None:
                raise
            logger.exception("serving_stale_on_unexpected_error", key=str(key))
            return self._stale_error(key, entry)

        if response.ok:
            stored = self._store_response(key, response, policy)
            return self._respond(stored, Diagnostics(CacheOutcome.MISS, CacheStatus.UPDATED, str(key)))

        if entry is not None:
            logger.warning("serving_stale_on_origin_status", key=str(key), status=response.status_code)
            return self._stale_error(key, entry)

        logger.warning("origin_error_uncached", key=str(key), status=response.status_code)
        return self._respond(response, Diagnostics(CacheOutcome.BYPASS, key=str(key)))

    async def _revalidate(self, key: CacheKey, origins: OriginSet, policy: FreshnessPolicy) -> None:
        """Fetch and store in the background. Never raises."""
        try:
            response = await self._fetcher.fetch(origins, key.url, self._retry_plan)
            if not response.ok:
                self._metrics.record_revalidation_failure()
                logger.warning("background_revalidation_rejected", key=str(key), status=response.status_code)
                return
            self._store_response(key, response, policy)
            logger.info("background_revalidation_succeeded", key=str(key))
        except Exception as e:
            self._metrics.record_revalidation_failure()
            logger.warning("background_revalidation_failed", key=str(key), error=str(e), exc_info=True)

    def _store_response(
        self,
        key: CacheKey,
        response: ProxyResponse,
        policy: FreshnessPolicy,
    ) -> CacheEntryEntity:
        cached_at = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        entry = CacheEntryEntity(
            status_code=response.status_code,
            headers=layer_headers(
                response.headers,
                policy.cache_control_headers(),
                {"X-Cache-Time": cached_at.isoformat().replace("+00:00", "Z")},
            ),
            body=response.body,
        )
        try:
            return self._store.put(key, entry)
        except CacheStoreError as e:
            # The fresh response is still served, only caching is lost
            logger.error("cache_put_failed", key=str(key), error=e.message)
            return entry

    def _stale_error(self, key: CacheKey, entry: CacheEntryEntity) -> tuple[ProxyResponse, Diagnostics]:
        return self._respond(
            entry,
            Diagnostics(CacheOutcome.HIT, CacheStatus.STALE_ERROR, str(key), entry.age(self._clock())),
        )

    def _respond(
        self,
        source: CacheEntryEntity | ProxyResponse,
        diagnostics: Diagnostics,
    ) -> tuple[ProxyResponse, Diagnostics]:
        response = ProxyResponse(
            status_code=source.status_code,
            headers=source.headers,
            body=source.body,
        ).with_headers(self._standard_headers, diagnostics.to_headers())
        return response, diagnostics

    @property
    def runner(self) -> BackgroundTaskRunner:
        return self._runner
