"""Service layer for business logic.

This layer contains the freshness decisions and request dispatch.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Engine -> Repository
    (HTTP)  -> (Dispatch) -> (Freshness) -> (Store / Origin)
"""

from .background import BackgroundTaskRunner
from .proxy_service import ProxyService
from .revalidation_engine import RevalidationEngine

__all__ = [
    "BackgroundTaskRunner",
    "ProxyService",
    "RevalidationEngine",
]
