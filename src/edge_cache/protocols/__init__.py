"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (Redis -> in-memory, httpx -> fakes)
- Unit testing with mock implementations
- Clear separation of concerns
"""

from .cache_store import CacheStore
from .origin_fetcher import OriginFetcher

__all__ = [
    "CacheStore",
    "OriginFetcher",
]
