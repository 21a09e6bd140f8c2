"""Cache manager for core business logic.

This service orchestrates cache operations by coordinating the key
generator, the repository (data access) and the rate limiter.
"""

from collections.abc import Mapping
from typing import Any

import redis

from api_cache.config import Settings, get_redis_client
from api_cache.entities import CacheEntryEntity
from api_cache.errors import MalformedResponseError
from api_cache.models import ApiResult
from api_cache.protocols import CacheStore, RateLimiter
from api_cache.services.key_generator import generate_cache_key
from api_cache.utils.logging import get_logger
from api_cache.utils.params import summarize_params

logger = get_logger(__name__)


class CacheManager:
    """Core cache orchestration service.

    This service depends on PROTOCOLS, not concrete implementations:
    - CacheStore: Redis hashes by default, a relational table per client otherwise
    - RateLimiter: Redis counters by default

    The same ``store_response`` serves the synchronous request path and
    the webhook path; callers do not need to say which one produced the
    data.

    Example:
        ```python
        from api_cache.services import CacheManager

        # Create with defaults (Redis repository + Redis rate limiter)
        manager = CacheManager.create(settings)

        # Or with custom implementations
        manager = CacheManager(
            settings=settings,
            repository=SqlCacheRepository(...),
            rate_limiter=RateLimitService(...),
        )
        ```
    """

    def __init__(
        self,
        settings: Settings,
        repository: CacheStore,
        rate_limiter: RateLimiter,
    ) -> None:
        """Initialize the cache manager.

        Args:
            settings: Application settings (required).
            repository: Cache storage backend (required).
            rate_limiter: Per-client quota tracker (required).
        """
        self._settings = settings
        self._repository = repository
        self._rate_limiter = rate_limiter

    @classmethod
    def create(
        cls,
        settings: Settings,
        redis_client: redis.Redis | None = None,
    ) -> "CacheManager":
        """Factory method to create CacheManager with Redis-backed defaults.

        Args:
            settings: Application settings.
            redis_client: Shared Redis client. If None, connects to ``settings.redis_url``.

        Returns:
            Configured CacheManager instance
        """
        from api_cache.repositories import RedisCacheRepository
        from api_cache.services.rate_limit_service import RateLimitService

        redis_client = redis_client or get_redis_client(settings)
        return cls(
            settings=settings,
            repository=RedisCacheRepository.create(settings, redis_client=redis_client),
            rate_limiter=RateLimitService(settings, redis_client),
        )

    def generate_cache_key(
        self,
        client: str,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        method: str = "GET",
        version: str | None = None,
    ) -> str:
        """Generate the cache key for a request.

        Exposed so a caller can compute the key before a remote task exists
        and send it along as the task's correlation tag.
        """
        return generate_cache_key(client, endpoint, params, method, version)

    def get_cached_response(self, client: str, key: str) -> ApiResult | None:
        """Look up a stored response.

        Pure read: no quota is consumed and no network call is made.

        Args:
            client: API client name
            key: Cache key

        Returns:
            The replayed result with ``is_cached=True``, or None on a miss

        Raises:
            CompressionError: If the stored payload is corrupt
        """
        entry = self._repository.find(client, key)
        if entry is None:
            logger.debug("cached_response_not_found", client=client, key=key)
            return None

        logger.info("cached_response_found", client=client, key=key, endpoint=entry.endpoint)
        return ApiResult.from_entry(entry.as_replay())

    def store_response(
        self,
        client: str,
        key: str,
        params: Mapping[str, Any] | None,
        result: ApiResult,
        endpoint: str,
        attributes: str | None = None,
        version: str | None = None,
    ) -> None:
        """Validate a result envelope and persist it.

        Args:
            client: API client name
            key: Cache key to store under
            params: Request parameters (summarized for storage)
            result: Live or webhook-delivered result envelope
            endpoint: Endpoint path
            attributes: Correlation string; falls back to ``result.attributes``
            version: API version used for the key

        Raises:
            MalformedResponseError: If the envelope has no method or an empty body
        """
        if not result.method:
            raise MalformedResponseError("Result envelope is missing the request method", client=client)
        if not result.response_body:
            raise MalformedResponseError("Result envelope has an empty response body", client=client)

        entry = CacheEntryEntity(
            key=key,
            client=client,
            endpoint=endpoint,
            method=result.method.upper(),
            version=version,
            base_url=result.base_url,
            full_url=result.full_url,
            request_params_summary=summarize_params(params),
            request_headers=result.request_headers,
            request_body=result.request_body,
            response_headers={name: value for name, value in result.response.headers.items()},
            response_body=result.response_body,
            response_status_code=result.response_status_code,
            response_size=result.response_size,
            response_time=result.response_time,
            attributes=attributes if attributes is not None else result.attributes,
            credits=result.credits,
            cost=result.cost,
        )

        self._repository.store(entry)
        logger.info("response_cached", client=client, key=key, endpoint=endpoint)

    def get_table_name(self, client: str) -> str:
        """Return the storage table name of a client."""
        return self._repository.table_name_for(client)

    def find_by_attributes(self, client: str, attributes: str) -> CacheEntryEntity | None:
        """Find the latest entry stored with the given attributes."""
        return self._repository.find_by_attributes(client, attributes)

    def find_entry(self, client: str, key: str) -> CacheEntryEntity | None:
        """Return the raw stored entry for a key."""
        return self._repository.find(client, key)

    def allow_request(self, client: str) -> bool:
        """Check if the client has quota left."""
        return self._rate_limiter.allow(client)

    def increment_attempts(self, client: str, amount: int = 1) -> None:
        """Consume ``amount`` units of the client's quota."""
        self._rate_limiter.consume(client, amount)

    def get_remaining_attempts(self, client: str) -> int:
        return self._rate_limiter.remaining(client)

    def get_available_in(self, client: str) -> int:
        return self._rate_limiter.available_in(client)

    def clear_rate_limit(self, client: str) -> None:
        self._rate_limiter.clear(client)

    def clear_table(self, client: str) -> int:
        """Delete every stored entry of a client.

        Returns:
            Number of entries deleted
        """
        return self._repository.clear_table(client)

    def get_stats(self, client: str) -> dict:
        """Get cache and quota statistics for a client."""
        stats = self._repository.get_stats(client)
        stats["remaining_attempts"] = self.get_remaining_attempts(client)
        stats["available_in"] = self.get_available_in(client)
        return stats

    def is_healthy(self) -> bool:
        """Check if the storage backend is reachable."""
        return self._repository.health_check()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def repository(self) -> CacheStore:
        """Get the underlying repository (for testing)."""
        return self._repository

    @property
    def rate_limiter(self) -> RateLimiter:
        """Get the underlying rate limiter (for testing)."""
        return self._rate_limiter
