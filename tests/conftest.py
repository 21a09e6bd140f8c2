"""
Shared fixtures: in-memory Redis, test settings and a mocked outbound API.
"""

import json
from collections.abc import Callable

import fakeredis
import httpx
import pytest

from api_cache.config import ClientConfig, Settings
from api_cache.repositories import ErrorLogRepository
from api_cache.services import CacheManager

DEMO_BASE_URL = "https://api.demo.test"
DATAFORSEO_BASE_URL = "https://api.dataforseo.test/v3"


@pytest.fixture
def redis_client():
    """Create an in-memory Redis client."""
    return fakeredis.FakeRedis()


@pytest.fixture
def settings():
    """Create settings with a plain, a compressed and a task-based client."""
    return Settings(
        log_level="INFO",
        clients={
            "demo": ClientConfig(
                name="demo",
                base_url=DEMO_BASE_URL,
                api_key="demo-key",
                rate_limit_max_attempts=5,
                rate_limit_decay_seconds=60,
            ),
            "demo-compressed": ClientConfig(
                name="demo-compressed",
                base_url=DEMO_BASE_URL,
                api_key="demo-key",
                compression_enabled=True,
            ),
            "dataforseo": ClientConfig(
                name="dataforseo",
                base_url=DATAFORSEO_BASE_URL,
                login="login",
                password="secret",
                provider="dataforseo",
                rate_limit_max_attempts=100,
            ),
        },
    )


@pytest.fixture
def manager(settings, redis_client):
    """Create a cache manager backed by the in-memory Redis."""
    return CacheManager.create(settings, redis_client=redis_client)


@pytest.fixture
def error_log(redis_client):
    """Create an error journal backed by the in-memory Redis."""
    return ErrorLogRepository(redis_client)


class RecordingHandler:
    """MockTransport handler that records requests and replies from a callable."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []
        self._respond = respond

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def json_api():
    """Build a recording handler that answers every request with the same JSON body."""

    def build(payload: object, status_code: int = 200) -> RecordingHandler:
        body = json.dumps(payload).encode()
        return RecordingHandler(
            lambda request: httpx.Response(status_code, content=body, headers={"Content-Type": "application/json"})
        )

    return build


def task_payload(
    task_id: str = "07031739-1535-0139-0000-4f7ec2b8b7fb",
    data: dict | None = None,
    path: list[str] | None = None,
    status_code: int = 20000,
    cost: float = 0.0006,
) -> dict:
    """Build a task-API response envelope with one task."""
    return {
        "version": "0.1.20250526",
        "status_code": status_code,
        "status_message": "Ok." if status_code == 20000 else "Error.",
        "cost": cost,
        "tasks_count": 1,
        "tasks_error": 0,
        "tasks": [
            {
                "id": task_id,
                "status_code": 20000,
                "path": path
                if path is not None
                else ["v3", "serp", "google", "organic", "task_get", "advanced", task_id],
                "data": data if data is not None else {"keyword": "shoes", "location_code": 2840},
                "result": [{"keyword": "shoes", "items_count": 10}],
            }
        ],
    }
