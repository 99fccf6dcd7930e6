"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.

Entities should have:
- No JSON serialization logic
- No Pydantic validation
- No I/O
- Pure domain logic only
"""

from .cache_entry import CacheEntryEntity
from .cache_key import CacheKey
from .freshness import Freshness, FreshnessPolicy, FreshnessTable
from .origin_set import OriginSet
from .proxy import (
    WARNING_REVALIDATION_FAILED,
    WARNING_STALE,
    CacheOutcome,
    CacheStatus,
    Diagnostics,
    ProxyRequest,
    ProxyResponse,
    layer_headers,
)
from .retry_plan import RetryPlan

__all__ = [
    "CacheEntryEntity",
    "CacheKey",
    "CacheOutcome",
    "CacheStatus",
    "Diagnostics",
    "Freshness",
    "FreshnessPolicy",
    "FreshnessTable",
    "OriginSet",
    "ProxyRequest",
    "ProxyResponse",
    "RetryPlan",
    "WARNING_REVALIDATION_FAILED",
    "WARNING_STALE",
    "layer_headers",
]
