"""
Tests for the edge cache HTTP API.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from edge_cache.api.app import create_app
from edge_cache.config import Settings
from edge_cache.entities import CacheKey
from edge_cache.repositories import InMemoryCacheRepository, RetryingFetcher
from tests.conftest import PRIMARY, json_response


def make_settings(**overrides) -> Settings:
    values = {
        "origin_url": PRIMARY,
        "failover_origin_url": None,
        "cache_backend": "memory",
        "enable_metrics": True,
        "error_sink_url": None,
        "log_format": "console",
        "freshness_overrides": "",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def app(clock, origin, sleep, retry_plan):
    return create_app(
        settings=make_settings(),
        store=InMemoryCacheRepository(clock=clock),
        fetcher=RetryingFetcher(retry_plan=retry_plan, transport=httpx.MockTransport(origin), sleep=sleep),
        clock=clock,
    )


@pytest.fixture
def client(app):
    """Create a test client with the lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["origin"] == PRIMARY


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["cache_healthy"] is True
    assert data["features"]["stale_while_revalidate"] is True


def test_cache_miss_then_hit(client, origin):
    """Test that a stored response is served from cache."""
    origin.script(PRIMARY, json_response(200, {"a": 1}))

    first = client.get("/cache/commodities.json")
    second = client.get("/cache/commodities.json")

    assert first.status_code == 200
    assert first.headers["X-Cache"] == "MISS"
    assert first.headers["X-Cache-Status"] == "updated"
    assert first.headers["Cache-Control"] == "public, max-age=86400, stale-while-revalidate=86400"
    assert second.headers["X-Cache"] == "HIT"
    assert second.headers["X-Cache-Status"] == "fresh"
    assert second.headers["Age"] == "0"
    assert second.json() == {"a": 1}
    assert len(origin.calls) == 1


def test_stale_response_has_warning(client, origin, clock):
    """Test stale-while-revalidate over HTTP."""
    origin.script(PRIMARY, json_response(200, {"a": 1}))
    client.get("/cache/galnet-news.json")
    clock.advance(5000)

    response = client.get("/cache/galnet-news.json")

    assert response.headers["X-Cache"] == "HIT"
    assert response.headers["X-Cache-Status"] == "stale"
    assert response.headers["Warning"] == '110 - "Response is Stale"'
    assert response.headers["Age"] == "5000"


def test_standard_headers(client, origin):
    """Test cross-cutting headers on proxied responses."""
    origin.script(PRIMARY, json_response(200))

    response = client.get("/cache/x.json")

    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Response-Time"].endswith("ms")


def test_non_cache_path_passes_through(client, origin):
    """Test passthrough of paths outside the cache prefix."""
    origin.script(PRIMARY, json_response(200, {"ok": True}))

    response = client.get("/api/status?verbose=1")

    assert response.status_code == 200
    assert response.headers["X-Cache"] == "PASSTHROUGH"
    assert "X-Cache-Status" not in response.headers
    assert str(origin.calls[0].url) == "http://primary.test/api/status?verbose=1"


def test_non_get_cache_path_passes_through(client, origin):
    """Test that writes are never cached."""
    origin.script(PRIMARY, json_response(201, {"created": True}))

    response = client.post("/cache/x.json", json={"a": 1})

    assert response.status_code == 201
    assert response.headers["X-Cache"] == "PASSTHROUGH"
    assert origin.calls[0].method == "POST"


def test_upstream_unreachable_without_cache(client, origin):
    """Test gateway error when nothing is cached."""
    origin.script(PRIMARY, httpx.ConnectError("connection refused"))

    response = client.get("/cache/x.json", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 502
    data = response.json()
    assert data["status"] == "error"
    assert data["code"] == "UPSTREAM_ERROR"
    assert data["request_id"] == "req-123"


def test_preflight(client, origin):
    """Test CORS preflight is answered locally."""
    response = client.options(
        "/cache/x.json",
        headers={"Origin": "https://example.com", "Access-Control-Request-Method": "GET"},
    )

    assert response.status_code == 204
    assert response.headers["Access-Control-Allow-Methods"] == "GET, HEAD, OPTIONS"
    assert origin.calls == []


def test_metrics(client, origin):
    """Test metrics endpoint counters."""
    origin.script(PRIMARY, json_response(200))
    client.get("/cache/x.json")
    client.get("/cache/x.json")

    response = client.get("/metrics")

    assert response.status_code == 200
    data = response.json()
    assert data["counters"]["misses"] == 1
    assert data["counters"]["fresh_hits"] == 1
    assert data["freshness"]["default"] == {"fresh_ttl": 3600, "stale_ttl": 7200}
    assert data["retry_plan"]["max_attempts"] == 3


def test_metrics_disabled_is_proxied(clock, origin, sleep, retry_plan):
    """Test /metrics falls through to the origin when disabled."""
    app = create_app(
        settings=make_settings(enable_metrics=False),
        store=InMemoryCacheRepository(clock=clock),
        fetcher=RetryingFetcher(retry_plan=retry_plan, transport=httpx.MockTransport(origin), sleep=sleep),
        clock=clock,
    )
    origin.script(PRIMARY, json_response(404, {"error": "not found"}))

    with TestClient(app) as client:
        response = client.get("/metrics")

    assert response.status_code == 404
    assert response.headers["X-Cache"] == "PASSTHROUGH"


class _BrokenFetcher:
    async def fetch(self, origins, path, retry_plan=None):
        raise RuntimeError("boom")

    async def forward(self, origins, method, path, headers, body):
        raise RuntimeError("boom")


def test_internal_error_returns_structured_500(clock):
    """Test unexpected errors become a 500 with a correlation id."""
    app = create_app(
        settings=make_settings(),
        store=InMemoryCacheRepository(clock=clock),
        fetcher=_BrokenFetcher(),
        clock=clock,
    )

    with TestClient(app) as client:
        response = client.get("/cache/x.json")
        counters = client.get("/metrics").json()["counters"]

    assert response.status_code == 500
    data = response.json()
    assert data["code"] == "INTERNAL_ERROR"
    assert data["message"] == "Internal Server Error"
    assert data["error"] == "boom"
    assert data["request_id"]
    assert counters["internal_errors"] == 1


def test_injected_empty_store_is_used(clock, origin, sleep, retry_plan):
    """Test an empty injected store is not replaced by a default one."""
    store = InMemoryCacheRepository(clock=clock)
    assert len(store) == 0
    app = create_app(
        settings=make_settings(),
        store=store,
        fetcher=RetryingFetcher(retry_plan=retry_plan, transport=httpx.MockTransport(origin), sleep=sleep),
        clock=clock,
    )
    origin.script(PRIMARY, json_response(200))

    with TestClient(app) as client:
        assert client.app.state.proxy_handler._store is store
        client.get("/cache/x.json")

    assert len(store) == 1
    assert store.get(CacheKey.from_request("GET", "/cache/x.json")).stored_at == clock()
