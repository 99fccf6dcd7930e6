"""Freshness policy entities."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Freshness(str, Enum):
    """Classification of a cached entry by age."""

    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


@dataclass(frozen=True)
class FreshnessPolicy:
    """Fresh and stale windows for one resource, in seconds.

    An entry is fresh for ages in ``[0, fresh_ttl)``, stale for
    ``[fresh_ttl, stale_ttl)`` and expired from ``stale_ttl`` on.
    """

    fresh_ttl: int
    stale_ttl: int

    def __post_init__(self) -> None:
        if self.fresh_ttl < 0:
            raise ValueError(f"fresh_ttl must be >= 0, got {self.fresh_ttl}")
        if self.stale_ttl < self.fresh_ttl:
            raise ValueError(
                f"stale_ttl ({self.stale_ttl}) must be >= fresh_ttl ({self.fresh_ttl})"
            )

    @property
    def stale_while_revalidate(self) -> int:
        """Length of the stale window."""
        return self.stale_ttl - self.fresh_ttl

    def classify(self, age: float | None) -> Freshness:
        """Classify an entry age against this policy.

        Args:
            age: Age in seconds, or None when unknown (treated as infinitely old)

        Returns:
            The freshness class
        """
        if age is None:
            return Freshness.EXPIRED
        if age < self.fresh_ttl:
            return Freshness.FRESH
        if age < self.stale_ttl:
            return Freshness.STALE
        return Freshness.EXPIRED

    def cache_control_headers(self) -> dict[str, str]:
        """Cache-control headers attached to freshly stored entries."""
        return {
            "Cache-Control": (
                f"public, max-age={self.fresh_ttl}, "
                f"stale-while-revalidate={self.stale_while_revalidate}"
            ),
            "CDN-Cache-Control": f"public, max-age={self.fresh_ttl}",
            "Cloudflare-CDN-Cache-Control": f"public, max-age={self.stale_ttl}",
        }


@dataclass(frozen=True)
class FreshnessTable:
    """Per-resource freshness policies with a default fallback."""

    default: FreshnessPolicy
    overrides: Mapping[str, FreshnessPolicy] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))

    def resolve(self, resource_name: str) -> FreshnessPolicy:
        """Policy for a resource name (the request's last path segment)."""
        return self.overrides.get(resource_name, self.default)

    def to_dict(self) -> dict[str, dict[str, int]]:
        table = {name: {"fresh_ttl": p.fresh_ttl, "stale_ttl": p.stale_ttl} for name, p in self.overrides.items()}
        table["default"] = {"fresh_ttl": self.default.fresh_ttl, "stale_ttl": self.default.stale_ttl}
        return table
