"""
Tests for the request client: cache, rate limit and cacheability orchestration.
"""

import json

import httpx
import pytest

from api_cache.clients import ApiClient
from api_cache.config import ClientConfig
from api_cache.errors import RateLimitExceededError, TransportError
from api_cache.providers import DataForSeoProvider, QueryKeyProvider

from conftest import RecordingHandler, task_payload


def make_client(settings, manager, handler, name="demo", error_log=None, **kwargs):
    """Build an ApiClient talking to a MockTransport."""
    config = settings.client(name)
    provider = DataForSeoProvider.from_config(config) if config.provider == "dataforseo" else None
    return ApiClient(
        config,
        manager,
        provider=kwargs.pop("provider", provider),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        error_log=error_log,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_miss_then_hit_for_reordered_params(settings, manager, json_api):
    """Test that a reordered second call is served from the cache."""
    handler = json_api({"items": ["a", "b"]})
    client = make_client(settings, manager, handler)

    first = await client.send_cached_request("search", {"q": "shoes", "page": 1})
    assert first.is_cached is False
    assert first.json() == {"items": ["a", "b"]}
    assert manager.get_remaining_attempts("demo") == 4

    second = await client.send_cached_request("search", {"page": "1", "q": "shoes"})
    assert second.is_cached is True
    assert second.response_body == first.response_body
    assert handler.calls == 1
    assert manager.get_remaining_attempts("demo") == 4


@pytest.mark.asyncio
async def test_get_sends_params_in_query(settings, manager, json_api):
    """Test the outbound GET request."""
    handler = json_api({"ok": True})
    client = make_client(settings, manager, handler)

    result = await client.send_cached_request("/search", {"q": "shoes"})

    request = handler.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/search"
    assert request.url.params["q"] == "shoes"
    assert request.headers["Authorization"] == "Bearer demo-key"
    assert result.full_url == "https://api.demo.test/search?q=shoes"
    assert result.credits == 1
    assert result.response_time is not None


@pytest.mark.asyncio
async def test_post_sends_params_as_json(settings, manager, json_api):
    """Test that POST parameters travel in the body and are stored."""
    handler = json_api({"ok": True})
    client = make_client(settings, manager, handler)

    result = await client.send_cached_request("tasks", {"keyword": "shoes"}, method="POST")

    request = handler.requests[0]
    assert request.method == "POST"
    assert json.loads(request.content) == {"keyword": "shoes"}

    key = manager.generate_cache_key("demo", "tasks", {"keyword": "shoes"}, "POST")
    entry = manager.find_entry("demo", key)
    assert entry is not None
    assert json.loads(entry.request_body) == {"keyword": "shoes"}
    assert result.request_body == entry.request_body


@pytest.mark.asyncio
async def test_query_key_auth_is_not_part_of_the_key(settings, manager, json_api):
    """Test that auth parameters reach the wire but never the cache key."""
    handler = json_api({"ok": True})
    client = make_client(settings, manager, handler, provider=QueryKeyProvider(api_key="secret", param_name="api_key"))

    await client.send_cached_request("search", {"q": "shoes"})

    assert handler.requests[0].url.params["api_key"] == "secret"
    assert "Authorization" not in handler.requests[0].headers
    key = manager.generate_cache_key("demo", "search", {"q": "shoes"})
    assert manager.find_entry("demo", key) is not None


@pytest.mark.asyncio
async def test_all_failed_tasks_are_not_cached(settings, manager, json_api, error_log):
    """Test that an envelope where every task failed is not stored."""
    payload = {"status_code": 20000, "tasks_count": 3, "tasks_error": 3, "tasks": []}
    handler = json_api(payload)
    client = make_client(settings, manager, handler, name="dataforseo", error_log=error_log)

    result = await client.send_cached_request("serp/google/organic/live", {"keyword": "shoes"}, method="POST")

    assert result.json() == payload
    key = manager.generate_cache_key("dataforseo", "serp/google/organic/live", {"keyword": "shoes"}, "POST")
    assert manager.find_entry("dataforseo", key) is None
    assert error_log.recent()[0]["error_type"] == "provider_failure"


@pytest.mark.asyncio
async def test_partially_failed_tasks_are_cached(settings, manager, json_api):
    """Test that an envelope with some successful tasks is stored."""
    handler = json_api({"status_code": 20000, "cost": 0.01, "tasks_count": 3, "tasks_error": 1, "tasks": []})
    client = make_client(settings, manager, handler, name="dataforseo")

    result = await client.send_cached_request("serp/google/organic/live", {"keyword": "shoes"}, method="POST")

    assert result.cost == 0.01
    key = manager.generate_cache_key("dataforseo", "serp/google/organic/live", {"keyword": "shoes"}, "POST")
    assert manager.find_entry("dataforseo", key).cost == 0.01


@pytest.mark.asyncio
async def test_timeout_raises_transport_error_and_consumes_quota(settings, manager, error_log):
    """Test that a timed-out call still counts against the quota."""

    def timeout(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(settings, manager, RecordingHandler(timeout), error_log=error_log)

    with pytest.raises(TransportError):
        await client.send_cached_request("search", {"q": "shoes"})

    assert manager.get_remaining_attempts("demo") == 4
    assert manager.get_cached_response("demo", manager.generate_cache_key("demo", "search", {"q": "shoes"})) is None
    assert error_log.recent()[0]["error_type"] == "transport"


@pytest.mark.asyncio
async def test_connection_error_raises_transport_error(settings, manager):
    """Test that network failures are reported as TransportError."""

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(settings, manager, RecordingHandler(refuse))

    with pytest.raises(TransportError):
        await client.send_cached_request("search", {"q": "shoes"})


@pytest.mark.asyncio
async def test_rate_limit_exceeded(settings, manager, json_api, error_log):
    """Test that an exhausted window refuses before any HTTP call."""
    handler = json_api({"ok": True})
    client = make_client(settings, manager, handler, error_log=error_log)
    manager.increment_attempts("demo", 5)

    with pytest.raises(RateLimitExceededError) as exc_info:
        await client.send_cached_request("search", {"q": "shoes"})

    assert not isinstance(exc_info.value, TransportError)
    assert exc_info.value.available_in > 0
    assert handler.calls == 0
    assert error_log.recent()[0]["error_type"] == "rate_limited"


@pytest.mark.asyncio
async def test_cache_hit_ignores_rate_limit(settings, manager, json_api):
    """Test that cached results are served even when the quota is exhausted."""
    handler = json_api({"ok": True})
    client = make_client(settings, manager, handler)
    await client.send_cached_request("search", {"q": "shoes"})
    manager.increment_attempts("demo", 4)

    cached = await client.send_cached_request("search", {"q": "shoes"})
    assert cached.is_cached is True


@pytest.mark.asyncio
async def test_error_status_is_not_cached(settings, manager, json_api, error_log):
    """Test that non-2xx responses are returned but not stored."""
    handler = json_api({"error": "boom"}, status_code=500)
    client = make_client(settings, manager, handler, error_log=error_log)

    result = await client.send_cached_request("search", {"q": "shoes"})
    again = await client.send_cached_request("search", {"q": "shoes"})

    assert result.response_status_code == 500
    assert again.is_cached is False
    assert handler.calls == 2
    assert manager.get_remaining_attempts("demo") == 3
    assert error_log.recent()[0]["error_type"] == "http_error"


@pytest.mark.asyncio
async def test_empty_body_is_not_cached(settings, manager):
    """Test that empty 2xx responses are not stored."""
    handler = RecordingHandler(lambda request: httpx.Response(204))
    client = make_client(settings, manager, handler)

    await client.send_cached_request("search", {"q": "shoes"})
    await client.send_cached_request("search", {"q": "shoes"})

    assert handler.calls == 2


@pytest.mark.asyncio
async def test_cache_disabled(settings, manager, json_api):
    """Test that use_cache=False skips lookup and storage but not the quota."""
    handler = json_api({"ok": True})
    client = make_client(settings, manager, handler, use_cache=False)

    await client.send_cached_request("search", {"q": "shoes"})
    await client.send_cached_request("search", {"q": "shoes"})

    assert handler.calls == 2
    assert manager.get_remaining_attempts("demo") == 3
    assert manager.get_stats("demo")["total_entries"] == 0


@pytest.mark.asyncio
async def test_attributes_are_trimmed(settings, manager, json_api):
    """Test that long attributes are cut to 255 characters."""
    client = make_client(settings, manager, json_api({"ok": True}))

    result = await client.send_cached_request("search", {"q": "shoes"}, attributes="x" * 300)

    assert result.attributes == "x" * 255
    key = manager.generate_cache_key("demo", "search", {"q": "shoes"})
    assert manager.find_entry("demo", key).attributes == "x" * 255


@pytest.mark.asyncio
async def test_amount_consumes_several_attempts(settings, manager, json_api):
    """Test that expensive calls consume more quota."""
    client = make_client(settings, manager, json_api({"ok": True}))
    await client.send_cached_request("search", {"q": "shoes"}, amount=3)
    assert manager.get_remaining_attempts("demo") == 2


@pytest.mark.asyncio
async def test_version_is_part_of_the_key(settings, manager, json_api):
    """Test that a configured version is appended to the key."""
    versioned = settings.with_client(
        ClientConfig(name="demo", base_url="https://api.demo.test", version="v2")
    )
    client = ApiClient(
        versioned.client("demo"),
        manager,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(json_api({"ok": True}))),
    )

    await client.send_cached_request("search", {"q": "shoes"})

    key = manager.generate_cache_key("demo", "search", {"q": "shoes"}, "GET", "v2")
    entry = manager.find_entry("demo", key)
    assert entry is not None
    assert entry.version == "v2"


@pytest.mark.asyncio
async def test_unsupported_method(settings, manager, json_api):
    """Test method validation."""
    client = make_client(settings, manager, json_api({"ok": True}))
    with pytest.raises(ValueError):
        await client.send_request("search", {}, method="TRACE")


@pytest.mark.asyncio
async def test_unsupported_method_consumes_no_quota(settings, manager, json_api):
    """Test that a rejected method fails before the rate limiter is touched."""
    handler = json_api({"ok": True})
    client = make_client(settings, manager, handler)

    with pytest.raises(ValueError):
        await client.send_cached_request("search", {"q": "shoes"}, method="TRACE")

    assert handler.calls == 0
    assert manager.get_remaining_attempts("demo") == 5


@pytest.mark.asyncio
async def test_task_get(settings, manager, json_api):
    """Test fetching a task result by id."""
    task_id = "07031739-1535-0139-0000-4f7ec2b8b7fb"
    handler = json_api(task_payload(task_id=task_id))
    client = make_client(settings, manager, handler, name="dataforseo")

    result = await client.task_get("serp/google/organic/task_get/advanced", task_id)

    assert handler.requests[0].url.path == f"/v3/serp/google/organic/task_get/advanced/{task_id}"
    assert handler.requests[0].headers["Authorization"].startswith("Basic ")
    assert result.attributes == task_id


@pytest.mark.parametrize(
    "endpoint_path, task_id",
    [
        ("serp/google/organic", "abc"),
        ("serp/google/organic/task_get/advanced/extra-", "abc"),
        ("serp/google/organic/task_get/advanced", ""),
    ],
)
@pytest.mark.asyncio
async def test_task_get_validation(settings, manager, json_api, endpoint_path, task_id):
    """Test that malformed task_get calls are refused."""
    handler = json_api({"ok": True})
    client = make_client(settings, manager, handler, name="dataforseo")

    with pytest.raises(ValueError):
        await client.task_get(endpoint_path, task_id)
    assert handler.calls == 0


@pytest.mark.asyncio
async def test_context_manager_closes_own_http_client(settings, manager):
    """Test that leaving the context closes a lazily created HTTP client."""
    client = ApiClient(settings.client("demo"), manager)
    async with client:
        created = client.http_client
    assert created.is_closed


@pytest.mark.asyncio
async def test_injected_http_client_is_left_open(settings, manager, json_api):
    """Test that aclose never closes a client owned by the caller."""
    shared = httpx.AsyncClient(transport=httpx.MockTransport(json_api({"ok": True})))
    async with ApiClient(settings.client("demo"), manager, http_client=shared) as client:
        await client.send_request("search")

    assert not shared.is_closed
    await shared.aclose()


@pytest.mark.asyncio
async def test_invalid_json_is_not_cached(settings, manager, error_log):
    """Test that a 2xx JSON response with a broken body is returned but never stored."""
    handler = RecordingHandler(
        lambda request: httpx.Response(200, content=b"<html>oops", headers={"Content-Type": "application/json"})
    )
    client = make_client(settings, manager, handler, error_log=error_log)

    first = await client.send_cached_request("search", {"q": "shoes"})
    second = await client.send_cached_request("search", {"q": "shoes"})

    assert first.response_body == b"<html>oops"
    assert second.is_cached is False
    assert handler.calls == 2
    assert manager.find_entry("demo", manager.generate_cache_key("demo", "search", {"q": "shoes"})) is None
    assert error_log.recent()[0]["error_type"] == "malformed_response"


@pytest.mark.asyncio
async def test_non_json_body_is_cached(settings, manager):
    """Test that plain text responses are stored as they are."""
    handler = RecordingHandler(
        lambda request: httpx.Response(200, content=b"plain text", headers={"Content-Type": "text/plain"})
    )
    client = make_client(settings, manager, handler)

    await client.send_cached_request("search", {"q": "shoes"})
    cached = await client.send_cached_request("search", {"q": "shoes"})

    assert cached.is_cached is True
    assert cached.response_body == b"plain text"
    assert handler.calls == 1
