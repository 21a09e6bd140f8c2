"""
Tests for the error journal.
"""

import redis

from api_cache.errors import ErrorKind
from api_cache.repositories import ErrorLogRepository


def test_log_and_recent(error_log):
    """Test that records are returned newest first."""
    error_log.log("demo", ErrorKind.TRANSPORT, "first")
    error_log.log("demo", ErrorKind.HTTP_ERROR, "second", api_message="Bad Gateway", context={"status_code": 502})

    records = error_log.recent()
    assert [record["error_message"] for record in records] == ["second", "first"]
    assert records[0]["error_type"] == "http_error"
    assert records[0]["api_message"] == "Bad Gateway"
    assert records[0]["context_data"] == {"status_code": 502}
    assert records[0]["log_level"] == "error"
    assert records[0]["created_at"]


def test_response_preview_is_truncated(error_log):
    """Test that large responses are cut to a preview."""
    error_log.log("demo", ErrorKind.HTTP_ERROR, "big", response=b"x" * 5000)
    assert len(error_log.recent()[0]["response_preview"]) == 2000


def test_disabled_journal_writes_nothing(redis_client):
    """Test that a disabled journal is a no-op."""
    journal = ErrorLogRepository(redis_client, enabled=False)
    journal.log("demo", ErrorKind.TRANSPORT, "ignored")
    assert journal.recent() == []


def test_write_failure_is_swallowed():
    """Test that a broken Redis never hides the original error."""

    class BrokenRedis:
        def lpush(self, *args):
            raise redis.ConnectionError("down")

    journal = ErrorLogRepository(BrokenRedis())
    journal.log("demo", ErrorKind.TRANSPORT, "still fine")
