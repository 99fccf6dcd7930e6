"""Request, response and diagnostics entities for the proxy path."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class CacheOutcome(str, Enum):
    """Values of the ``X-Cache`` header."""

    HIT = "HIT"
    MISS = "MISS"
    BYPASS = "BYPASS"
    PASSTHROUGH = "PASSTHROUGH"


class CacheStatus(str, Enum):
    """Values of the ``X-Cache-Status`` header."""

    FRESH = "fresh"
    STALE = "stale"
    UPDATED = "updated"
    STALE_ERROR = "stale-error"


WARNING_STALE = '110 - "Response is Stale"'
WARNING_REVALIDATION_FAILED = '111 - "Revalidation Failed"'


def layer_headers(*layers: Mapping[str, str]) -> dict[str, str]:
    """Merge header mappings, later layers overriding earlier ones.

    Names compare case-insensitively; the casing of the last writer wins.
    """
    merged: dict[str, tuple[str, str]] = {}
    for layer in layers:
        for name, value in layer.items():
            merged[name.lower()] = (name, value)
    return dict(merged.values())


@dataclass(frozen=True)
class ProxyRequest:
    """Incoming request, decoupled from the HTTP framework."""

    method: str
    path: str
    query: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def url(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path


@dataclass(frozen=True)
class ProxyResponse:
    """Immutable response value returned to the HTTP layer."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def ok(self) -> bool:
        """2xx and 3xx count as success."""
        return 200 <= self.status_code < 400

    def header(self, name: str, default: str | None = None) -> str | None:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def with_headers(self, *layers: Mapping[str, str]) -> "ProxyResponse":
        """Return a new response with header layers applied on top of this one."""
        return ProxyResponse(
            status_code=self.status_code,
            headers=layer_headers(self.headers, *layers),
            body=self.body,
        )


@dataclass(frozen=True)
class Diagnostics:
    """How a request was served.

    Attributes:
        cache: X-Cache outcome
        status: X-Cache-Status, absent for bypass and passthrough
        key: Canonical cache key, absent for passthrough
        age: Entry age in seconds, only on HIT when known
        revalidation_scheduled: Whether a background refresh was started
    """

    cache: CacheOutcome
    status: CacheStatus | None = None
    key: str | None = None
    age: int | None = None
    revalidation_scheduled: bool = False

    def to_headers(self) -> dict[str, str]:
        headers = {"X-Cache": self.cache.value}
        if self.status is not None:
            headers["X-Cache-Status"] = self.status.value
        if self.cache is CacheOutcome.HIT and self.age is not None:
            headers["Age"] = str(self.age)
        if self.status is CacheStatus.STALE:
            headers["Warning"] = WARNING_STALE
        elif self.status is CacheStatus.STALE_ERROR:
            headers["Warning"] = WARNING_REVALIDATION_FAILED
        return headers
