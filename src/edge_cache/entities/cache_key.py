"""Canonical cache key entity."""

import re
from dataclasses import dataclass

_SLASHES = re.compile(r"/{2,}")

# Methods answered from the same stored representation
_METHOD_ALIASES = {"HEAD": "GET"}


@dataclass(frozen=True)
class CacheKey:
    """Canonical identity of a cached item.

    One entry exists per canonical URL. Construct through
    ``from_request`` so that equivalent URLs share a key.

    Attributes:
        method: Normalized request method (HEAD folds onto GET)
        path: Request path including the cache prefix
        query: Query string with parameters sorted by name, encoding untouched
    """

    method: str
    path: str
    query: str = ""

    @classmethod
    def from_request(cls, method: str, path: str, query: str = "") -> "CacheKey":
        """Build a normalized key from raw request parts.

        Args:
            method: HTTP method
            path: Raw request path
            query: Raw query string (with or without leading '?')

        Returns:
            The canonical CacheKey
        """
        method = method.upper()
        method = _METHOD_ALIASES.get(method, method)
        path = _SLASHES.sub("/", path or "/")
        if not path.startswith("/"):
            path = "/" + path
        # Reordered, never re-encoded
        params = [param for param in query.lstrip("?").split("&") if param]
        params.sort(key=lambda param: (param.partition("=")[0], param))
        return cls(method=method, path=path, query="&".join(params))

    @property
    def url(self) -> str:
        """Path plus query string, as requested from the origin."""
        return f"{self.path}?{self.query}" if self.query else self.path

    @property
    def resource_name(self) -> str:
        """Last path segment, used to resolve the freshness policy."""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    def __str__(self) -> str:
        return f"{self.method} {self.url}"
