"""httpx-based origin fetcher with backoff retry and failover.

Satisfies the OriginFetcher protocol. Retryable conditions are a
status >= 500, a 429, or any transport error. The primary origin is
retried with the full backoff budget first; if it still fails, the
failover origin (when configured) is tried once with a fresh budget.

Retryable-status responses are returned rather than raised, so the
caller can decide whether a cached entry should mask the failure.
Transport failures raise FetchError because there is no response to
fall back on.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Mapping

import httpx

from edge_cache.config import VERSION, settings
from edge_cache.entities import OriginSet, ProxyResponse, RetryPlan
from edge_cache.errors import FetchError
from edge_cache.logging import get_logger

logger = get_logger(__name__)

ORIGIN_HEADERS = {
    "User-Agent": f"edge-cache/{VERSION}",
    "Accept": "application/json",
    "X-Forwarded-By": "edge-cache",
}

# Never copied between the client, the origin and the cache
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
        "content-encoding",
        "accept-encoding",
    }
)


def strip_hop_by_hop(headers: Mapping[str, str]) -> dict[str, str]:
    return {name: value for name, value in headers.items() if name.lower() not in HOP_BY_HOP_HEADERS}


def is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


@dataclass(frozen=True)
class _AttemptState:
    """Position in the retry loop for one top-level fetch."""

    attempt: int = 0
    using_failover: bool = False


class RetryingFetcher:
    """Origin client with bounded exponential backoff and failover.

    Example:
        ```python
        fetcher = RetryingFetcher.create()
        response = await fetcher.fetch(
            OriginSet("https://api.example.com", failover="https://mirror.example.com"),
            "/cache/commodities.json",
        )
        ```
    """

    def __init__(
        self,
        retry_plan: RetryPlan | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the fetcher.

        Args:
            retry_plan: Default backoff plan. Defaults to settings.
            timeout: Per-request timeout in seconds. Defaults to settings.
            transport: Custom httpx transport (tests use httpx.MockTransport).
            sleep: Coroutine used between attempts.
        """
        self._retry_plan = retry_plan or settings.retry_plan
        self._timeout = timeout or settings.origin_timeout
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def create(
        cls,
        retry_plan: RetryPlan | None = None,
        timeout: float | None = None,
    ) -> "RetryingFetcher":
        """Factory method to create RetryingFetcher with defaults.

        Args:
            retry_plan: Backoff plan. If None, uses settings.
            timeout: Request timeout. If None, uses settings.

        Returns:
            Configured RetryingFetcher
        """
        return cls(retry_plan=retry_plan, timeout=timeout)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    @property
    def retry_plan(self) -> RetryPlan:
        return self._retry_plan

    async def fetch(
        self,
        origins: OriginSet,
        path: str,
        retry_plan: RetryPlan | None = None,
    ) -> ProxyResponse:
        """GET a path from the origin set with retry and failover.

        Args:
            origins: Primary and optional failover origin
            path: Request path plus query string
            retry_plan: Overrides the fetcher's default plan

        Returns:
            The first non-retryable response (ok or not), or the last
            retryable response once every budget is spent

        Raises:
            FetchError: If no attempt produced a response
        """
        plan = retry_plan or self._retry_plan
        state = _AttemptState()
        last_response: ProxyResponse | None = None
        last_error: httpx.HTTPError | None = None
        total_attempts = 0

        while True:
            origin = origins.failover if state.using_failover else origins.primary
            url = origins.url_for(origin, path)  # type: ignore[arg-type]
            total_attempts += 1

            try:
                response = await self._get(url)
            except httpx.HTTPError as e:
                last_error = e
                logger.warning(
                    "origin_transport_error",
                    url=url,
                    attempt=state.attempt,
                    failover=state.using_failover,
                    error=str(e) or type(e).__name__,
                )
            else:
                if not is_retryable_status(response.status_code):
                    if total_attempts > 1:
                        logger.info("origin_retry_succeeded", url=url, attempts=total_attempts)
                    return response
                last_response = response
                logger.warning(
                    "origin_retryable_status",
                    url=url,
                    status=response.status_code,
                    attempt=state.attempt,
                    failover=state.using_failover,
                )

            if state.attempt < plan.max_attempts:
                await self._sleep(plan.delay(state.attempt))
                state = replace(state, attempt=state.attempt + 1)
                continue

            if origins.has_failover and not state.using_failover:
                logger.warning("origin_failover", primary=origins.primary, failover=origins.failover)
                state = _AttemptState(attempt=0, using_failover=True)
                continue

            break

        logger.error("origin_attempts_exhausted", path=path, attempts=total_attempts)
        if last_response is not None:
            return last_response
        raise FetchError(url, attempts=total_attempts) from last_error

    async def forward(
        self,
        origins: OriginSet,
        method: str,
        path: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> ProxyResponse:
        """Send a request to the primary origin once, without retry.

        Raises:
            FetchError: If the origin cannot be reached
        """
        url = origins.url_for(origins.primary, path)
        try:
            response = await self.client.request(
                method,
                url,
                headers=strip_hop_by_hop(headers),
                content=body or None,
            )
        except httpx.HTTPError as e:
            logger.warning("origin_forward_failed", url=url, method=method, error=str(e) or type(e).__name__)
            raise FetchError(url, attempts=1) from e
        return _to_proxy_response(response)

    async def _get(self, url: str) -> ProxyResponse:
        response = await self.client.get(url, headers=ORIGIN_HEADERS)
        return _to_proxy_response(response)

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _to_proxy_response(response: httpx.Response) -> ProxyResponse:
    return ProxyResponse(
        status_code=response.status_code,
        headers=strip_hop_by_hop(dict(response.headers.items())),
        body=response.content,
    )
