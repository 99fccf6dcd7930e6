"""Error sinks for unexpected proxy failures.

Reporting is best effort: sinks never raise, so a broken analytics
endpoint cannot turn into a second failure.
"""

import time

import httpx

from edge_cache.logging import get_logger

logger = get_logger(__name__)


class LoggingErrorSink:
    """Writes error reports to the structured log only."""

    async def report(self, error: BaseException, path: str, request_id: str | None) -> None:
        logger.error(
            "unhandled_error_reported",
            error=str(error),
            error_type=type(error).__name__,
            path=path,
            request_id=request_id,
        )


class HttpErrorSink:
    """Posts error data points to an analytics endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def report(self, error: BaseException, path: str, request_id: str | None) -> None:
        payload = {
            "blobs": [str(error), type(error).__name__, path],
            "doubles": [time.time()],
            "indexes": ["error"],
            "request_id": request_id,
        }
        try:
            response = await self.client.post(self._url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("error_sink_failed", url=self._url, error=str(e) or type(e).__name__)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
