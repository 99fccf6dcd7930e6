"""Origin fetcher protocol.

Defines the interface the revalidation engine uses to reach the
origin API.
"""

from typing import Mapping, Protocol, runtime_checkable

from edge_cache.entities import OriginSet, ProxyResponse, RetryPlan


@runtime_checkable
class OriginFetcher(Protocol):
    """Protocol for fetching from an origin set."""

    async def fetch(
        self,
        origins: OriginSet,
        path: str,
        retry_plan: RetryPlan | None = None,
    ) -> ProxyResponse:
        """GET a path with retry and failover.

        Args:
            origins: Primary and optional failover origin
            path: Request path plus query string
            retry_plan: Backoff plan, defaults to the fetcher's own

        Returns:
            The first ok response, or the last non-ok response received

        Raises:
            FetchError: If every attempt failed at the transport level
        """
        ...

    async def forward(
        self,
        origins: OriginSet,
        method: str,
        path: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> ProxyResponse:
        """Send a request to the primary origin once, unmodified.

        Raises:
            FetchError: If the origin cannot be reached
        """
        ...
