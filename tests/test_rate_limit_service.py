"""
Tests for the Redis-backed rate limiter.
"""

import sys
import time

import pytest

from api_cache.config import ClientConfig
from api_cache.services import RateLimitService


@pytest.fixture
def limiter(settings, redis_client):
    """Create a limiter with an extra short-window and an unlimited client."""
    settings = settings.with_client(
        ClientConfig(name="short", rate_limit_max_attempts=2, rate_limit_decay_seconds=1)
    ).with_client(ClientConfig(name="unlimited", rate_limit_max_attempts=None))
    return RateLimitService(settings, redis_client)


def test_fresh_client_has_full_quota(limiter):
    """Test the initial state of a client."""
    assert limiter.remaining("demo") == 5
    assert limiter.available_in("demo") == 0
    assert limiter.allow("demo") is True


def test_denied_after_max_attempts(limiter):
    """Test that the N+1th attempt inside a window is refused."""
    for _ in range(5):
        assert limiter.allow("demo")
        limiter.consume("demo")

    assert limiter.allow("demo") is False
    assert limiter.remaining("demo") == 0
    assert 0 < limiter.available_in("demo") <= 60


def test_allowed_again_after_window(limiter):
    """Test that the window rolls over after its decay."""
    limiter.consume("short", amount=2)
    assert limiter.allow("short") is False

    time.sleep(1.1)

    assert limiter.allow("short") is True
    assert limiter.remaining("short") == 2


def test_consume_amount(limiter):
    """Test that amounts count as several attempts."""
    limiter.consume("demo", amount=3)
    assert limiter.remaining("demo") == 2


def test_consume_rejects_non_positive_amount(limiter):
    """Test amount validation."""
    with pytest.raises(ValueError):
        limiter.consume("demo", amount=0)


def test_later_attempts_do_not_extend_window(limiter, redis_client):
    """Test that the TTL is only set by the first attempt."""
    limiter.consume("demo")
    redis_client.expire("api-cache:rate-limit:demo", 10)
    limiter.consume("demo")
    assert limiter.available_in("demo") <= 10


def test_clients_are_isolated(limiter):
    """Test that counters are per client."""
    limiter.consume("demo", amount=5)
    assert limiter.allow("demo") is False
    assert limiter.allow("dataforseo") is True


def test_clear(limiter):
    """Test resetting a window."""
    limiter.consume("demo", amount=5)
    limiter.clear("demo")
    assert limiter.remaining("demo") == 5
    assert limiter.available_in("demo") == 0


def test_unlimited_client(limiter):
    """Test that unlimited clients are never refused."""
    limiter.consume("unlimited", amount=10_000)
    assert limiter.allow("unlimited") is True
    assert limiter.remaining("unlimited") == sys.maxsize


def test_counters_are_shared_between_instances(settings, redis_client):
    """Test that two limiters on the same Redis see the same window."""
    first = RateLimitService(settings, redis_client)
    second = RateLimitService(settings, redis_client)

    first.consume("demo", amount=4)
    assert second.remaining("demo") == 1


def test_concurrent_admissions_are_all_counted(settings, redis_client):
    """Test that workers admitted together are all counted and the window then stays closed."""
    first = RateLimitService(settings, redis_client)
    second = RateLimitService(settings, redis_client)
    first.consume("demo", 4)

    assert first.allow("demo")
    assert second.allow("demo")
    first.consume("demo")
    second.consume("demo")

    assert redis_client.get("api-cache:rate-limit:demo") == b"6"
    assert first.remaining("demo") == 0
    assert not second.allow("demo")
