"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Components passed to create_app() (tests) take precedence
      over the ones built from settings
"""

import time
from contextlib import asynccontextmanager
from typing import Annotated, Callable

from fastapi import Depends, FastAPI, Request

from edge_cache.config import ProxyConfig, Settings
from edge_cache.handlers import ProxyHandler
from edge_cache.logging import configure_logging, get_logger
from edge_cache.models import ProxyMetrics
from edge_cache.protocols import CacheStore
from edge_cache.repositories import (
    HttpErrorSink,
    InMemoryCacheRepository,
    LoggingErrorSink,
    RedisCacheRepository,
    RetryingFetcher,
)
from edge_cache.services import BackgroundTaskRunner, ProxyService, RevalidationEngine

logger = get_logger(__name__)

# Upper bound on waiting for background revalidations at shutdown
SHUTDOWN_DRAIN_TIMEOUT = 10.0


def get_handler(request: Request) -> ProxyHandler:
    """Dependency injection for ProxyHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The ProxyHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "proxy_handler", None)
    if handler is None:
        raise RuntimeError("ProxyHandler not initialized. Check lifespan setup.")
    return handler


def build_store(settings: Settings, clock: Callable[[], float] = time.time) -> CacheStore:
    """Create the cache store selected by CACHE_BACKEND, stamping entries with clock."""
    if settings.cache_backend == "memory":
        return InMemoryCacheRepository(clock=clock)
    return RedisCacheRepository.create(
        key_prefix=settings.cache_key_prefix,
        retention=settings.cache_retention,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores them in app.state:
    1. Store and fetcher (data access)
    2. Engine and proxy service (business logic)
    3. Handler (HTTP endpoints) - stored in app.state.proxy_handler

    Cleanup:
        Waits for background revalidations, closes HTTP clients and
        removes the components from app.state
    """
    settings: Settings = app.state.settings
    configure_logging(settings.log_level, settings.log_format)

    config = ProxyConfig.from_settings(settings)
    clock = app.state.clock if app.state.clock is not None else time.time
    store = app.state.store if app.state.store is not None else build_store(settings, clock)
    fetcher = app.state.fetcher
    if fetcher is None:
        fetcher = RetryingFetcher.create(
            retry_plan=config.retry_plan,
            timeout=settings.origin_timeout,
        )
    error_sink = HttpErrorSink(settings.error_sink_url) if settings.error_sink_url else LoggingErrorSink()

    runner = BackgroundTaskRunner()
    metrics = ProxyMetrics()
    engine = RevalidationEngine.create(
        store=store,
        fetcher=fetcher,
        config=config,
        runner=runner,
        metrics=metrics,
        clock=clock,
    )
    proxy_service = ProxyService.create(engine=engine, fetcher=fetcher, config=config, metrics=metrics)

    app.state.proxy_config = config
    app.state.runner = runner
    app.state.proxy_handler = ProxyHandler(
        proxy_service=proxy_service,
        store=store,
        runner=runner,
        settings=settings,
        error_sink=error_sink,
    )

    logger.info(
        "edge_cache_started",
        origin=config.origins.primary,
        failover=config.origins.failover,
        cache_backend=settings.cache_backend,
        cache_prefix=config.cache_prefix,
        cache_healthy=store.health_check(),
    )

    yield

    await runner.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)
    if isinstance(fetcher, RetryingFetcher):
        await fetcher.close()
    if isinstance(error_sink, HttpErrorSink):
        await error_sink.close()

    del app.state.proxy_handler
    del app.state.runner
    del app.state.proxy_config
    logger.info("edge_cache_stopped")


# Type alias for cleaner dependency injection
HandlerDep = Annotated[ProxyHandler, Depends(get_handler)]
