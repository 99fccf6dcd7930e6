#!/usr/bin/env python3
"""
Warm the edge cache by requesting every configured resource through the proxy.

Each resource named in the freshness table (plus any extra names given on the
command line) is fetched once under the cache prefix, so the first real client
sees a HIT instead of waiting on the origin.
"""

import argparse
import asyncio
import json

import httpx

from edge_cache.config import get_settings


async def warm(proxy_url: str, names: list[str], cache_prefix: str, concurrency: int) -> dict[str, dict]:
    """Request each resource once and collect the cache outcome per name."""
    semaphore = asyncio.Semaphore(concurrency)
    summary: dict[str, dict] = {}

    async with httpx.AsyncClient(base_url=proxy_url.rstrip("/"), timeout=60.0) as client:

        async def _one(name: str) -> None:
            async with semaphore:
                try:
                    response = await client.get(f"{cache_prefix}{name}")
                except httpx.HTTPError as e:
                    summary[name] = {"error": str(e) or type(e).__name__}
                    return
                summary[name] = {
                    "status": response.status_code,
                    "x_cache": response.headers.get("X-Cache"),
                    "x_cache_status": response.headers.get("X-Cache-Status"),
                }

        await asyncio.gather(*(_one(name) for name in names))

    return summary


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Warm the edge cache for configured resources.")
    parser.add_argument("--proxy-url", default="http://localhost:8000", help="Base URL of the running proxy")
    parser.add_argument("--concurrency", type=int, default=4, help="Concurrent warm requests")
    parser.add_argument("names", nargs="*", help="Extra resource names to warm")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    settings = get_settings()
    names = sorted(set(settings.freshness_table.overrides) | set(args.names))
    summary = asyncio.run(warm(args.proxy_url, names, settings.cache_prefix, args.concurrency))
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
