"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract for the
proxy's own endpoints and error bodies. Proxied responses pass
through as raw bytes.

Internal domain logic should use entities from the entities package.
"""

from .responses import ErrorResponse, HealthCheckResponse, MetricsResponse

__all__ = [
    "ErrorResponse",
    "HealthCheckResponse",
    "MetricsResponse",
]
