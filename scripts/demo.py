#!/usr/bin/env python3
"""
Demo script for api-cache.

Sends requests through the cache against a simulated slow upstream, shows
the rate limiter refusing calls, and files a postback delivery under the
key a later lookup computes. Needs a running Redis (``REDIS_URL``).
"""

import asyncio
import json
import time

import httpx

from api_cache import ApiResult, CacheManager, ClientConfig, Settings, WebhookBridge
from api_cache.clients import ApiClient
from api_cache.entities import InboundRequestEntity
from api_cache.errors import RateLimitExceededError
from api_cache.providers import DataForSeoProvider


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


async def slow_upstream(request: httpx.Request) -> httpx.Response:
    """Answer like a slow search API."""
    await asyncio.sleep(0.5)
    query = dict(request.url.params)
    return httpx.Response(200, json={"query": query, "items": ["result-1", "result-2"]})


def build_settings() -> Settings:
    return Settings(
        clients={
            "demo": ClientConfig(
                name="demo",
                base_url="https://api.demo.test",
                rate_limit_max_attempts=3,
                rate_limit_decay_seconds=30,
            ),
            "dataforseo": ClientConfig(
                name="dataforseo",
                base_url="https://api.dataforseo.com/v3",
                provider="dataforseo",
                compression_enabled=True,
            ),
        }
    )


async def demo_cached_requests(manager: CacheManager) -> None:
    """Demonstrate cache misses, hits and parameter normalization."""
    print_section("Cached Requests")

    requests = [
        {"q": "shoes", "page": 1},
        {"page": "1", "q": "shoes"},  # same request, different spelling
        {"q": "boots", "page": 1},
    ]

    async with httpx.AsyncClient(transport=httpx.MockTransport(slow_upstream)) as http_client:
        client = ApiClient(manager.settings.client("demo"), manager, http_client=http_client)
        for params in requests:
            start = time.perf_counter()
            result = await client.send_cached_request("search", params)
            duration = (time.perf_counter() - start) * 1000
            state = "HIT " if result.is_cached else "MISS"
            print(f"  {state} {json.dumps(params):<32} {duration:7.1f}ms")

        print(f"\n  Remaining attempts: {manager.get_remaining_attempts('demo')}")


async def demo_rate_limit(manager: CacheManager) -> None:
    """Demonstrate the rate limiter refusing uncached calls."""
    print_section("Rate Limiting")

    async with httpx.AsyncClient(transport=httpx.MockTransport(slow_upstream)) as http_client:
        client = ApiClient(manager.settings.client("demo"), manager, http_client=http_client)
        for page in range(2, 6):
            try:
                await client.send_cached_request("search", {"q": "shoes", "page": page})
                print(f"  page {page}: sent")
            except RateLimitExceededError as e:
                print(f"  page {page}: refused, available in {e.available_in}s")


def demo_postback(manager: CacheManager) -> None:
    """Demonstrate filing an asynchronous task result under its cache key."""
    print_section("Postback Reconciliation")

    params = {"keyword": "running shoes", "location_code": 2840}
    tag = manager.generate_cache_key("dataforseo", "serp/google/organic/task_post", params, "POST")
    print(f"  Task tagged with cache key: {tag}")

    payload = {
        "status_code": 20000,
        "cost": 0.0006,
        "tasks_count": 1,
        "tasks_error": 0,
        "tasks": [
            {
                "id": "07031739-1535-0139-0000-4f7ec2b8b7fb",
                "path": ["v3", "serp", "google", "organic", "task_get", "advanced"],
                "data": {**params, "tag": tag},
                "result": [{"items_count": 100}],
            }
        ],
    }
    inbound = InboundRequestEntity(method="POST", body=json.dumps(payload).encode(), source_address="127.0.0.1")

    bridge = WebhookBridge(manager.settings.client("dataforseo"), manager)
    delivery = bridge.process_postback(inbound)
    print(f"  Stored task {delivery.task_id} for endpoint {delivery.endpoint}")

    cached: ApiResult | None = manager.get_cached_response("dataforseo", tag)
    if cached is not None:
        print(f"  ✓ Lookup by tag: HIT, cost {DataForSeoProvider.cost_of(cached.json())}")
    else:
        print("  ✗ Lookup by tag: MISS")


def main() -> None:
    """Run all demos."""
    print("\n🚀 API Cache Demo")
    print("=" * 70)

    try:
        manager = CacheManager.create(build_settings())
        for client in ("demo", "dataforseo"):
            manager.clear_table(client)
            manager.clear_rate_limit(client)

        asyncio.run(demo_cached_requests(manager))
        asyncio.run(demo_rate_limit(manager))
        demo_postback(manager)

        print("\n" + "=" * 70)
        print("✅ Demo completed successfully!")
        print("=" * 70)

    except Exception as e:
        print(f"\n❌ Error: {e}")
        print("\nMake sure Redis is running:")
        print("  docker compose up -d")
        print("\nOr set REDIS_URL to your Redis instance.")


if __name__ == "__main__":
    main()
