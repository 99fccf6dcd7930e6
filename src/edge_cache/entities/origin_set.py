"""Origin set entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class OriginSet:
    """Primary origin and an optional failover, as base URLs."""

    primary: str
    failover: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "primary", self.primary.rstrip("/"))
        if self.failover:
            object.__setattr__(self, "failover", self.failover.rstrip("/"))
        else:
            object.__setattr__(self, "failover", None)

    @property
    def has_failover(self) -> bool:
        return self.failover is not None

    @staticmethod
    def url_for(origin: str, path: str) -> str:
        """Join an origin base URL with a request path (and query)."""
        return origin + (path if path.startswith("/") else "/" + path)
