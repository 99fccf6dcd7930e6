"""
Tests for environment settings.
"""

import pytest

from edge_cache.config import ProxyConfig, Settings


def test_freshness_overrides_are_applied():
    settings = Settings(freshness_overrides='{"prices.json": [60, 120]}')

    policy = settings.freshness_table.resolve("prices.json")

    assert (policy.fresh_ttl, policy.stale_ttl) == (60, 120)
    assert settings.freshness_table.resolve("commodities.json").fresh_ttl == 86400


@pytest.mark.parametrize(
    "raw",
    [
        '{"x.json": 5}',
        '{"x.json": [5]}',
        '{"x.json": [5, 10, 15]}',
        '{"x.json": {"fresh": 5}}',
        '{"x.json": ["soon", 10]}',
        '{"x.json": [null, 10]}',
        "[[5, 10]]",
        "not json",
    ],
)
def test_malformed_freshness_overrides_are_rejected(raw):
    with pytest.raises(ValueError, match="FRESHNESS_OVERRIDES"):
        Settings(freshness_overrides=raw)


def test_invalid_backend_is_rejected():
    with pytest.raises(ValueError, match="CACHE_BACKEND"):
        Settings(cache_backend="memcached")


def test_proxy_config_from_settings():
    config = ProxyConfig.from_settings(
        Settings(origin_url="https://origin.test/", failover_origin_url="", cache_prefix="/data/")
    )

    assert config.origins.primary == "https://origin.test"
    assert not config.origins.has_failover
    assert config.cache_prefix == "/data/"
    assert config.standard_headers["X-Content-Type-Options"] == "nosniff"
