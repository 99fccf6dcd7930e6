"""
Tests for request dispatch, metrics and background tasks.
"""

import asyncio

import httpx
import pytest

from edge_cache.entities import CacheOutcome, CacheStatus, Diagnostics, ProxyRequest
from edge_cache.errors import UpstreamError
from edge_cache.models import ProxyMetrics
from edge_cache.services import BackgroundTaskRunner, ProxyService, RevalidationEngine
from tests.conftest import PRIMARY, json_response


@pytest.fixture
def metrics():
    return ProxyMetrics()


@pytest.fixture
def service(store, fetcher, config, metrics, clock):
    engine = RevalidationEngine.create(store=store, fetcher=fetcher, config=config, metrics=metrics, clock=clock)
    return ProxyService.create(engine=engine, fetcher=fetcher, config=config, metrics=metrics)


class TestProxyService:
    @pytest.mark.parametrize(
        ("method", "path", "expected"),
        [
            ("GET", "/cache/x.json", True),
            ("HEAD", "/cache/x.json", True),
            ("get", "/cache/x.json", True),
            ("POST", "/cache/x.json", False),
            ("GET", "/api/x.json", False),
            ("GET", "/cachex.json", False),
        ],
    )
    def test_is_cacheable(self, service, method, path, expected):
        assert service.is_cacheable(ProxyRequest(method=method, path=path)) is expected

    def test_preflight_detection(self, service):
        assert service.is_preflight(
            ProxyRequest(method="OPTIONS", path="/cache/x.json", headers={"access-control-request-method": "GET"})
        )
        assert not service.is_preflight(ProxyRequest(method="OPTIONS", path="/cache/x.json"))
        assert service.preflight().status_code == 204

    @pytest.mark.asyncio
    async def test_cacheable_request_recorded(self, service, origin, metrics):
        origin.script(PRIMARY, json_response(200))

        await service.handle(ProxyRequest(method="GET", path="/cache/x.json"))
        await service.handle(ProxyRequest(method="HEAD", path="/cache/x.json"))

        assert metrics.misses == 1
        assert metrics.fresh_hits == 1
        assert len(origin.calls) == 1

    @pytest.mark.asyncio
    async def test_passthrough_is_single_attempt(self, service, origin, sleep, metrics):
        origin.script(PRIMARY, json_response(503))

        response, diagnostics = await service.handle(ProxyRequest(method="DELETE", path="/cache/x.json"))

        assert response.status_code == 503
        assert response.header("X-Cache") == "PASSTHROUGH"
        assert diagnostics.cache is CacheOutcome.PASSTHROUGH
        assert len(origin.calls) == 1
        assert sleep.delays == []
        assert metrics.passthroughs == 1

    @pytest.mark.asyncio
    async def test_passthrough_unreachable_raises(self, service, origin, metrics):
        origin.script(PRIMARY, httpx.ConnectError("connection refused"))

        with pytest.raises(UpstreamError):
            await service.handle(ProxyRequest(method="POST", path="/api/orders", body=b"{}"))

        assert metrics.upstream_errors == 1


class TestProxyMetrics:
    def test_hit_rate(self, metrics):
        assert metrics.hit_rate == 0.0

        metrics.record(Diagnostics(CacheOutcome.HIT, CacheStatus.FRESH))
        metrics.record(Diagnostics(CacheOutcome.HIT, CacheStatus.STALE, revalidation_scheduled=True))
        metrics.record(Diagnostics(CacheOutcome.MISS, CacheStatus.UPDATED))
        metrics.record(Diagnostics(CacheOutcome.PASSTHROUGH))

        assert metrics.hit_rate == pytest.approx(2 / 3)
        assert metrics.revalidations_scheduled == 1
        assert metrics.to_dict()["total_requests"] == 4


class TestBackgroundTaskRunner:
    @pytest.mark.asyncio
    async def test_drain_waits_for_tasks(self):
        runner = BackgroundTaskRunner()
        done = []

        async def work():
            await asyncio.sleep(0)
            done.append(True)

        runner.spawn(work(), name="work")
        assert runner.pending == 1

        await runner.drain()

        assert done == [True]
        assert runner.pending == 0

    @pytest.mark.asyncio
    async def test_failed_task_is_released(self):
        runner = BackgroundTaskRunner()

        async def fail():
            raise RuntimeError("boom")

        runner.spawn(fail())
        await runner.drain()

        assert runner.pending == 0

    @pytest.mark.asyncio
    async def test_drain_cancels_after_timeout(self):
        runner = BackgroundTaskRunner()
        task = runner.spawn(asyncio.sleep(60))

        await runner.drain(timeout=0.01)

        assert task.cancelled()
