"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from edge_cache.errors import ErrorResponse


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'degraded'")
    service: str = Field("edge-cache", description="Service name")
    version: str = Field(..., description="Proxy version")
    timestamp: str = Field(..., description="ISO-8601 time of the check")
    environment: str = Field(..., description="Deployment environment")
    origin: str = Field(..., description="Primary origin base URL")
    failover_origin: str | None = Field(None, description="Failover origin base URL, if configured")
    cache_healthy: bool = Field(..., description="Whether the cache backend is reachable")
    features: dict[str, bool] = Field(default_factory=dict, description="Enabled proxy features")


class MetricsResponse(BaseModel):
    """Response DTO for the metrics endpoint."""

    version: str = Field(..., description="Proxy version")
    timestamp: str = Field(..., description="ISO-8601 time of the snapshot")
    freshness: dict[str, dict[str, int]] = Field(..., description="Fresh/stale TTLs per resource name")
    retry_plan: dict[str, float] = Field(..., description="Origin retry plan")
    counters: dict[str, Any] = Field(default_factory=dict, description="Request counters since startup")
    background_tasks: int = Field(0, description="Background tasks still running", ge=0)


__all__ = ["ErrorResponse", "HealthCheckResponse", "MetricsResponse"]
