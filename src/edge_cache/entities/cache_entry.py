"""Cache entry domain entity."""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for a stored origin response.

    Owned by the cache store. Services read and write it through the
    store's interface and never modify it; header changes are made on
    a new ProxyResponse layered on top.

    Attributes:
        status_code: Origin HTTP status
        headers: Origin headers plus the cache-control set added on store
        body: Raw response body
        stored_at: Unix timestamp attached by the store, None if missing or unparseable
    """

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    stored_at: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def stamped(self, stored_at: float) -> "CacheEntryEntity":
        """Return a copy carrying the given storage timestamp."""
        return replace(self, stored_at=stored_at)

    def age(self, now: float) -> int | None:
        """Whole seconds since the entry was stored.

        Returns:
            Age in seconds (never negative), or None when the timestamp is unknown
        """
        if self.stored_at is None:
            return None
        return max(0, int(now - self.stored_at))
