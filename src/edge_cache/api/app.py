from typing import Callable

from fastapi import FastAPI, Request, Response

from edge_cache.api.dependencies import HandlerDep, lifespan
from edge_cache.config import VERSION, Settings, get_settings
from edge_cache.dto import HealthCheckResponse, MetricsResponse
from edge_cache.protocols import CacheStore, OriginFetcher

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    settings: Settings | None = None,
    store: CacheStore | None = None,
    fetcher: OriginFetcher | None = None,
    clock: Callable[[], float] | None = None,
) -> FastAPI:
    """Build the proxy application.

    Args:
        settings: Deployment settings. Defaults to the environment.
        store: Cache store override. Defaults to CACHE_BACKEND.
        fetcher: Origin fetcher override. Defaults to RetryingFetcher.
        clock: Time source for cache ages. Defaults to time.time.

    Returns:
        The FastAPI application
    """
    app = FastAPI(
        title="Edge Cache",
        description="Stale-while-revalidate caching proxy for JSON origin APIs",
        version=VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings or get_settings()
    app.state.store = store
    app.state.fetcher = fetcher
    app.state.clock = clock

    @app.get("/", response_model=HealthCheckResponse)
    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check endpoint."""
        return await handler.health_check()

    @app.get("/metrics", response_model=None)
    async def metrics(request: Request, handler: HandlerDep) -> MetricsResponse | Response:
        """Metrics endpoint, proxied to the origin when ENABLE_METRICS is off."""
        if not handler.metrics_enabled:
            return await handler.proxy(request)
        return await handler.metrics()

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def proxy(request: Request, handler: HandlerDep) -> Response:
        """Cached or passthrough request to the origin."""
        return await handler.proxy(request)

    return app


app = create_app()


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "edge_cache.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    main()
