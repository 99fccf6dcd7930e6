import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

import redis
from dotenv import load_dotenv

from edge_cache.entities import FreshnessPolicy, FreshnessTable, OriginSet, RetryPlan

load_dotenv()

VERSION = "1.0.0"

# Resource name -> (fresh TTL, stale TTL) in seconds
DEFAULT_FRESHNESS: dict[str, tuple[int, int]] = {
    "commodity-ticker.json": (3600, 7200),
    "galnet-news.json": (3600, 7200),
    "database-stats.json": (900, 1800),
    "commodities.json": (86400, 172800),
}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, If-None-Match, Accept-Encoding",
    "Access-Control-Max-Age": "86400",
    "Access-Control-Expose-Headers": "ETag, X-Cache, X-Cache-Status, X-Response-Time",
}

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


def _parse_overrides(raw: str) -> dict[str, tuple[int, int]]:
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"FRESHNESS_OVERRIDES must be valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("FRESHNESS_OVERRIDES must be a JSON object of name -> [fresh, stale]")
    overrides = {}
    for name, pair in data.items():
        if not isinstance(pair, list) or len(pair) != 2:
            raise ValueError(f"FRESHNESS_OVERRIDES[{name!r}] must be a [fresh, stale] pair")
        try:
            overrides[name] = (int(pair[0]), int(pair[1]))
        except (TypeError, ValueError) as e:
            raise ValueError(f"FRESHNESS_OVERRIDES[{name!r}] must hold integer TTLs: {e}") from e
    return overrides


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Origins
    origin_url: str = os.getenv("ORIGIN_URL", "https://api.eddata.dev")
    failover_origin_url: str | None = os.getenv("FAILOVER_ORIGIN_URL") or None
    origin_timeout: float = float(os.getenv("ORIGIN_TIMEOUT", "30"))

    # Cache
    cache_prefix: str = os.getenv("CACHE_PREFIX", "/cache/")
    cache_backend: str = os.getenv("CACHE_BACKEND", "redis")
    cache_key_prefix: str = os.getenv("CACHE_KEY_PREFIX", "edge_cache")
    cache_retention: int = int(os.getenv("CACHE_RETENTION", "0"))  # 0 keeps entries until overwritten
    default_fresh_ttl: int = int(os.getenv("DEFAULT_FRESH_TTL", "3600"))
    default_stale_ttl: int = int(os.getenv("DEFAULT_STALE_TTL", "7200"))
    freshness_overrides: str = os.getenv("FRESHNESS_OVERRIDES", "")

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Retry
    retry_max_attempts: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
    retry_initial_delay: float = float(os.getenv("RETRY_INITIAL_DELAY", "0.1"))
    retry_max_delay: float = float(os.getenv("RETRY_MAX_DELAY", "1.0"))
    retry_backoff_multiplier: float = float(os.getenv("RETRY_BACKOFF_MULTIPLIER", "2"))

    # Observability
    environment: str = os.getenv("ENVIRONMENT", "production")
    enable_metrics: bool = os.getenv("ENABLE_METRICS", "false").lower() == "true"
    error_sink_url: str | None = os.getenv("ERROR_SINK_URL") or None
    log_level: str = os.getenv("LOG_LEVEL", "info")
    log_format: str = os.getenv("LOG_FORMAT", "json")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "false").lower() == "true"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_backend not in ("redis", "memory"):
            raise ValueError(f"CACHE_BACKEND must be 'redis' or 'memory', got {self.cache_backend!r}")

        if not self.cache_prefix.startswith("/"):
            raise ValueError("CACHE_PREFIX must start with '/'")

        if self.cache_retention < 0:
            raise ValueError("CACHE_RETENTION must be >= 0")

        if self.log_format not in ("json", "console"):
            raise ValueError(f"LOG_FORMAT must be 'json' or 'console', got {self.log_format!r}")

        # Fails fast on malformed JSON
        _parse_overrides(self.freshness_overrides)

    @property
    def freshness_table(self) -> FreshnessTable:
        """Build the freshness table from defaults and overrides.

        Raises:
            ValueError: If any pair has stale TTL below fresh TTL
        """
        pairs = {**DEFAULT_FRESHNESS, **_parse_overrides(self.freshness_overrides)}
        return FreshnessTable(
            default=FreshnessPolicy(self.default_fresh_ttl, self.default_stale_ttl),
            overrides={name: FreshnessPolicy(fresh, stale) for name, (fresh, stale) in pairs.items()},
        )

    @property
    def retry_plan(self) -> RetryPlan:
        return RetryPlan(
            max_attempts=self.retry_max_attempts,
            initial_delay=self.retry_initial_delay,
            max_delay=self.retry_max_delay,
            backoff_multiplier=self.retry_backoff_multiplier,
        )

    @property
    def origins(self) -> OriginSet:
        return OriginSet(primary=self.origin_url, failover=self.failover_origin_url)


@dataclass(frozen=True)
class ProxyConfig:
    """Immutable runtime configuration shared by every request.

    Built once at startup and passed by reference into the engine
    and service; never mutated afterwards.
    """

    origins: OriginSet
    freshness: FreshnessTable
    retry_plan: RetryPlan
    cache_prefix: str = "/cache/"
    version: str = VERSION
    standard_headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(
            {
                **CORS_HEADERS,
                **SECURITY_HEADERS,
                "X-Powered-By": "edge-cache",
                "X-Worker-Version": VERSION,
            }
        )
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProxyConfig":
        """Build the runtime config from environment settings.

        Args:
            settings: Loaded application settings

        Returns:
            Configured ProxyConfig
        """
        return cls(
            origins=settings.origins,
            freshness=settings.freshness_table,
            retry_plan=settings.retry_plan,
            cache_prefix=settings.cache_prefix,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=False,
    )
