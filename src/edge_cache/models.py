from dataclasses import dataclass

from edge_cache.entities import CacheOutcome, CacheStatus, Diagnostics


@dataclass
class ProxyMetrics:
    """Track per-process counters for served requests."""

    total_requests: int = 0
    fresh_hits: int = 0
    stale_hits: int = 0
    stale_errors: int = 0
    misses: int = 0
    bypasses: int = 0
    passthroughs: int = 0
    revalidations_scheduled: int = 0
    revalidation_failures: int = 0
    upstream_errors: int = 0
    internal_errors: int = 0

    @property
    def hit_rate(self) -> float:
        """Share of cacheable requests answered from the cache."""
        cacheable = self.fresh_hits + self.stale_hits + self.stale_errors + self.misses + self.bypasses
        if cacheable == 0:
            return 0.0
        return (self.fresh_hits + self.stale_hits + self.stale_errors) / cacheable

    def record(self, diagnostics: Diagnostics) -> None:
        """Record one served request."""
        self.total_requests += 1
        if diagnostics.cache is CacheOutcome.PASSTHROUGH:
            self.passthroughs += 1
        elif diagnostics.cache is CacheOutcome.BYPASS:
            self.bypasses += 1
        elif diagnostics.status is CacheStatus.FRESH:
            self.fresh_hits += 1
        elif diagnostics.status is CacheStatus.STALE:
            self.stale_hits += 1
        elif diagnostics.status is CacheStatus.STALE_ERROR:
            self.stale_errors += 1
        else:
            self.misses += 1

        if diagnostics.revalidation_scheduled:
            self.revalidations_scheduled += 1

    def record_revalidation_failure(self) -> None:
        self.revalidation_failures += 1

    def record_upstream_error(self) -> None:
        self.total_requests += 1
        self.upstream_errors += 1

    def record_internal_error(self) -> None:
        self.total_requests += 1
        self.internal_errors += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "total_requests": self.total_requests,
            "fresh_hits": self.fresh_hits,
            "stale_hits": self.stale_hits,
            "stale_errors": self.stale_errors,
            "misses": self.misses,
            "bypasses": self.bypasses,
            "passthroughs": self.passthroughs,
            "revalidations_scheduled": self.revalidations_scheduled,
            "revalidation_failures": self.revalidation_failures,
            "upstream_errors": self.upstream_errors,
            "internal_errors": self.internal_errors,
            "hit_rate": self.hit_rate,
        }
