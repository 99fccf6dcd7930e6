"""Request classification and dispatch.

Cacheable requests (GET/HEAD under the cache prefix) go through the
revalidation engine. Everything else is forwarded to the primary
origin unmodified and never cached.
"""

from edge_cache.config import ProxyConfig
from edge_cache.entities import CacheOutcome, Diagnostics, ProxyRequest, ProxyResponse
from edge_cache.errors import FetchError, UpstreamError
from edge_cache.models import ProxyMetrics
from edge_cache.protocols import OriginFetcher
from edge_cache.services.revalidation_engine import RevalidationEngine

CACHEABLE_METHODS = frozenset({"GET", "HEAD"})


class ProxyService:
    """Routes each request to the cache path or the passthrough path.

    Example:
        ```python
        service = ProxyService.create(engine=engine, fetcher=fetcher, config=config)
        response, diagnostics = await service.handle(request)
        ```
    """

    def __init__(
        self,
        engine: RevalidationEngine,
        fetcher: OriginFetcher,
        config: ProxyConfig,
        metrics: ProxyMetrics | None = None,
    ) -> None:
        self._engine = engine
        self._fetcher = fetcher
        self._config = config
        self._metrics = metrics or ProxyMetrics()

    @classmethod
    def create(
        cls,
        engine: RevalidationEngine,
        fetcher: OriginFetcher,
        config: ProxyConfig,
        metrics: ProxyMetrics | None = None,
    ) -> "ProxyService":
        return cls(engine=engine, fetcher=fetcher, config=config, metrics=metrics)

    def is_cacheable(self, request: ProxyRequest) -> bool:
        return request.method.upper() in CACHEABLE_METHODS and request.path.startswith(self._config.cache_prefix)

    @staticmethod
    def is_preflight(request: ProxyRequest) -> bool:
        """CORS preflight: OPTIONS carrying Access-Control-Request-Method."""
        if request.method.upper() != "OPTIONS":
            return False
        return any(name.lower() == "access-control-request-method" for name in request.headers)

    def preflight(self) -> ProxyResponse:
        return ProxyResponse(status_code=204, headers=self._config.standard_headers)

    async def handle(self, request: ProxyRequest) -> tuple[ProxyResponse, Diagnostics]:
        """Serve one request.

        Raises:
            UpstreamError: If the origin is unreachable and nothing can be served
        """
        try:
            if self.is_cacheable(request):
                response, diagnostics = await self._engine.handle(
                    request,
                    self._config.origins,
                    self._config.freshness,
                )
            else:
                response, diagnostics = await self.passthrough(request)
        except UpstreamError:
            self._metrics.record_upstream_error()
            raise

        self._metrics.record(diagnostics)
        return response, diagnostics

    async def passthrough(self, request: ProxyRequest) -> tuple[ProxyResponse, Diagnostics]:
        try:
            response = await self._fetcher.forward(
                self._config.origins,
                request.method.upper(),
                request.url,
                request.headers,
                request.body,
            )
        except FetchError as e:
            raise UpstreamError("Origin unreachable", {"path": request.path}) from e

        diagnostics = Diagnostics(CacheOutcome.PASSTHROUGH)
        return response.with_headers(self._config.standard_headers, diagnostics.to_headers()), diagnostics

    @property
    def config(self) -> ProxyConfig:
        return self._config

    @property
    def metrics(self) -> ProxyMetrics:
        return self._metrics
