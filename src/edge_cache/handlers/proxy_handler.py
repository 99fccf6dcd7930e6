"""HTTP handlers for the proxy.

Handlers convert between Starlette requests/responses and the proxy
service. They own the HTTP concerns: correlation ids, response timing,
and turning exceptions into structured error bodies.
"""

import time
from datetime import datetime, timezone

from fastapi import Request, Response, status

from edge_cache.config import ProxyConfig, Settings
from edge_cache.dto import ErrorResponse, HealthCheckResponse, MetricsResponse
from edge_cache.entities import ProxyRequest, ProxyResponse
from edge_cache.errors import EdgeCacheError
from edge_cache.logging import get_logger, set_request_id
from edge_cache.protocols import CacheStore
from edge_cache.repositories import HttpErrorSink, LoggingErrorSink
from edge_cache.services import BackgroundTaskRunner, ProxyService

logger = get_logger(__name__)


class ProxyHandler:
    """HTTP handlers for proxied and introspection requests.

    This handler delegates cache decisions to ProxyService and handles
    HTTP-specific concerns like:
    - Building framework-independent ProxyRequest values
    - Adding X-Response-Time
    - Mapping errors to 502 (upstream) or 500 (internal) bodies

    Example:
        ```python
        handler = ProxyHandler(proxy_service=service, store=store, runner=runner, settings=settings)

        @app.api_route("/{path:path}", methods=["GET", "POST"])
        async def proxy(request: Request) -> Response:
            return await handler.proxy(request)
        ```
    """

    def __init__(
        self,
        proxy_service: ProxyService,
        store: CacheStore,
        runner: BackgroundTaskRunner,
        settings: Settings,
        error_sink: HttpErrorSink | LoggingErrorSink | None = None,
    ) -> None:
        """Initialize the proxy handler.

        Args:
            proxy_service: Dispatches cacheable and passthrough requests (required).
            store: Cache store, used for health checks.
            runner: Task runner for error reporting.
            settings: Deployment settings (environment, metrics flag).
            error_sink: Where unexpected errors are reported.
        """
        self._service = proxy_service
        self._store = store
        self._runner = runner
        self._settings = settings
        self._error_sink = error_sink or LoggingErrorSink()

    @property
    def config(self) -> ProxyConfig:
        return self._service.config

    async def proxy(self, request: Request) -> Response:
        """Handle any proxied request.

        Args:
            request: The incoming Starlette request

        Returns:
            The proxied, cached or error response
        """
        start_time = time.perf_counter()
        request_id = set_request_id(request.headers.get("X-Request-ID"))

        proxy_request = ProxyRequest(
            method=request.method,
            path=request.url.path,
            query=request.url.query,
            headers=dict(request.headers),
            body=await request.body(),
        )

        try:
            if self._service.is_preflight(proxy_request):
                result = self._service.preflight()
            else:
                result, diagnostics = await self._service.handle(proxy_request)
                logger.info(
                    "request_served",
                    method=proxy_request.method,
                    path=proxy_request.url,
                    status=result.status_code,
                    cache=diagnostics.cache.value,
                    cache_status=diagnostics.status.value if diagnostics.status else None,
                )
        except EdgeCacheError as e:
            logger.warning("request_failed", path=proxy_request.url, code=e.code, error=e.message)
            result = self._error_result(e.status_code, e.to_response(request_id))
        except Exception as e:
            logger.exception("unhandled_error", path=proxy_request.url)
            self._service.metrics.record_internal_error()
            self._runner.spawn(
                self._error_sink.report(e, proxy_request.path, request_id),
                name=f"report-error {request_id}",
            )
            result = self._error_result(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                ErrorResponse(
                    code="INTERNAL_ERROR",
                    message="Internal Server Error",
                    error=str(e),
                    request_id=request_id,
                ),
            )

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        return _to_http(result.with_headers({"X-Response-Time": f"{elapsed_ms}ms"}))

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        cache_healthy = self._store.health_check()
        return HealthCheckResponse(
            status="healthy" if cache_healthy else "degraded",
            version=self.config.version,
            timestamp=_now_iso(),
            environment=self._settings.environment,
            origin=self.config.origins.primary,
            failover_origin=self.config.origins.failover,
            cache_healthy=cache_healthy,
            features={
                "stale_while_revalidate": True,
                "retry_logic": True,
                "failover": self.config.origins.has_failover,
                "security_headers": True,
                "metrics": self._settings.enable_metrics,
            },
        )

    async def metrics(self) -> MetricsResponse:
        """Handle GET /metrics requests."""
        return MetricsResponse(
            version=self.config.version,
            timestamp=_now_iso(),
            freshness=self.config.freshness.to_dict(),
            retry_plan=self.config.retry_plan.to_dict(),
            counters=self._service.metrics.to_dict(),
            background_tasks=self._runner.pending,
        )

    def _error_result(self, status_code: int, body: ErrorResponse) -> ProxyResponse:
        return ProxyResponse(
            status_code=status_code,
            headers={**self.config.standard_headers, "Content-Type": "application/json"},
            body=body.model_dump_json().encode(),
        )

    @property
    def metrics_enabled(self) -> bool:
        return self._settings.enable_metrics


def _to_http(result: ProxyResponse) -> Response:
    return Response(content=result.body, status_code=result.status_code, headers=dict(result.headers))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
