"""
Error handling for the edge cache proxy.
"""

from typing import Any

from pydantic import BaseModel, Field

from edge_cache.logging import get_request_id


class ErrorResponse(BaseModel):
    """Structured error body returned to clients."""

    status: str = "error"
    code: str
    message: str
    error: str | None = None
    request_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class EdgeCacheError(Exception):
    """Base exception for the proxy."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self, request_id: str | None = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            error=str(self.__cause__) if self.__cause__ else None,
            request_id=request_id or get_request_id(),
            details=self.details,
        )


class FetchError(EdgeCacheError):
    """Every attempt against every origin failed at the transport level."""

    status_code = 502

    def __init__(self, url: str, attempts: int, message: str = "Origin unreachable"):
        super().__init__("FETCH_ERROR", message, {"url": url, "attempts": attempts})
        self.url = url
        self.attempts = attempts


class UpstreamError(EdgeCacheError):
    """Origin failed and no cached entry exists to fall back on."""

    status_code = 502

    def __init__(self, message: str = "Upstream unavailable", details: dict[str, Any] | None = None):
        super().__init__("UPSTREAM_ERROR", message, details)


class CacheStoreError(EdgeCacheError):
    """The cache store rejected a write."""

    def __init__(self, message: str = "Cache store error", details: dict[str, Any] | None = None):
        super().__init__("CACHE_STORE_ERROR", message, details)
