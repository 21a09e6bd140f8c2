"""Error journal for failed calls and rejected webhook deliveries.

Records are appended as JSON to the Redis list ``api_cache_errors`` so an
operator can inspect and replay failures after the fact.
"""

import json
from datetime import datetime, timezone
from typing import Any

import redis

from api_cache.errors import ErrorKind
from api_cache.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_LOG_KEY = "api_cache_errors"
RESPONSE_PREVIEW_LENGTH = 2000


class ErrorLogRepository:
    """Append-only journal of structured error records."""

    def __init__(self, redis_client: redis.Redis, enabled: bool = True) -> None:
        self._client = redis_client
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def log(
        self,
        client: str | None,
        kind: ErrorKind,
        message: str,
        api_message: str | None = None,
        response: str | bytes | None = None,
        context: dict[str, Any] | None = None,
        log_level: str = "error",
    ) -> None:
        """Append one error record.

        A failing journal write is logged and swallowed so it never hides
        the error being recorded.

        Args:
            client: API client name, if known
            kind: Error category
            message: Human-readable description
            api_message: Message reported by the provider, if any
            response: Raw response, truncated to a preview
            context: Extra structured context (request details, task ids)
            log_level: Severity stored with the record
        """
        if not self._enabled:
            return

        if isinstance(response, bytes):
            response = response.decode("utf-8", errors="replace")

        record = {
            "api_client": client,
            "error_type": kind.value,
            "log_level": log_level,
            "error_message": message,
            "api_message": api_message,
            "response_preview": response[:RESPONSE_PREVIEW_LENGTH] if response else None,
            "context_data": context or {},
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            self._client.lpush(ERROR_LOG_KEY, json.dumps(record, default=str))
        except redis.RedisError as e:
            logger.error("error_journal_write_failed", error=str(e), error_type=kind.value)

    def recent(self, limit: int = 50) -> list[dict[str, Any]]:
        """Return the most recent records, newest first."""
        raw = self._client.lrange(ERROR_LOG_KEY, 0, limit - 1)
        return [json.loads(item) for item in raw]  # type: ignore[union-attr]
