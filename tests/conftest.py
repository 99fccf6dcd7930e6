"""
Shared fixtures for edge cache tests.
"""

from collections import defaultdict

import httpx
import pytest

from edge_cache.config import ProxyConfig
from edge_cache.entities import FreshnessPolicy, FreshnessTable, OriginSet, RetryPlan
from edge_cache.repositories import InMemoryCacheRepository, RetryingFetcher

PRIMARY = "http://primary.test"
FAILOVER = "http://failover.test"


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Replacement for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ScriptedOrigin:
    """httpx handler replaying scripted outcomes per host.

    Each host gets a list of httpx.Response objects or exceptions; the
    last item repeats once the script runs out.
    """

    def __init__(self):
        self.scripts: dict[str, list] = {}
        self.calls: list[httpx.Request] = []
        self._positions: dict[str, int] = defaultdict(int)

    def script(self, base_url: str, *outcomes) -> None:
        host = httpx.URL(base_url).host
        self.scripts[host] = list(outcomes)
        self._positions[host] = 0

    def calls_to(self, base_url: str) -> list[httpx.Request]:
        host = httpx.URL(base_url).host
        return [call for call in self.calls if call.url.host == host]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        outcomes = self.scripts.get(request.url.host)
        if not outcomes:
            raise httpx.ConnectError("no route to host", request=request)
        position = min(self._positions[request.url.host], len(outcomes) - 1)
        self._positions[request.url.host] += 1
        outcome = outcomes[position]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def json_response(status_code: int = 200, payload=None) -> httpx.Response:
    return httpx.Response(status_code, json=payload if payload is not None else {"a": 1})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def origin():
    return ScriptedOrigin()


@pytest.fixture
def retry_plan():
    return RetryPlan(max_attempts=3, initial_delay=0.1, max_delay=1.0, backoff_multiplier=2.0)


@pytest.fixture
def freshness():
    return FreshnessTable(
        default=FreshnessPolicy(fresh_ttl=3600, stale_ttl=7200),
        overrides={"database-stats.json": FreshnessPolicy(fresh_ttl=900, stale_ttl=1800)},
    )


@pytest.fixture
def origins():
    return OriginSet(primary=PRIMARY)


@pytest.fixture
def origins_with_failover():
    return OriginSet(primary=PRIMARY, failover=FAILOVER)


@pytest.fixture
def store(clock):
    return InMemoryCacheRepository(clock=clock)


@pytest.fixture
def fetcher(origin, retry_plan, sleep):
    return RetryingFetcher(retry_plan=retry_plan, transport=httpx.MockTransport(origin), sleep=sleep)


@pytest.fixture
def config(origins, freshness, retry_plan):
    return ProxyConfig(origins=origins, freshness=freshness, retry_plan=retry_plan)
