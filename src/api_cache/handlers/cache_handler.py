"""HTTP handlers for cache administration.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

from fastapi import HTTPException, status

from api_cache.dto import (
    CacheEntryResponse,
    CacheKeyRequest,
    CacheKeyResponse,
    CacheStatsResponse,
    ClearCacheResponse,
    HealthCheckResponse,
    RateLimitStatusResponse,
)
from api_cache.errors import ApiCacheError
from api_cache.handlers.errors import to_http_exception
from api_cache.services import CacheManager


class CacheHandler:
    """HTTP handlers for cache and rate limit administration.

    This handler delegates business logic to CacheManager
    and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Setting appropriate status codes
    - Error handling and responses

    Example:
        ```python
        from api_cache.services import CacheManager
        from api_cache.handlers import CacheHandler

        manager = CacheManager.create(settings)
        handler = CacheHandler(cache_manager=manager)

        # Use in FastAPI route
        @app.get("/cache/{client}/stats", response_model=CacheStatsResponse)
        async def get_stats(client: str):
            return await handler.get_stats(client)
        ```
    """

    def __init__(self, cache_manager: CacheManager) -> None:
        """Initialize the cache handler.

        Args:
            cache_manager: The cache manager for business logic (required).
        """
        self._cache = cache_manager

    async def compute_key(self, client: str, request: CacheKeyRequest) -> CacheKeyResponse:
        """Handle POST /cache/{client}/key requests.

        Raises:
            HTTPException: 404 for unknown clients, 422 for unusable parameters
        """
        try:
            config = self._cache.settings.client(client)
            version = request.version if request.version is not None else config.version
            key = self._cache.generate_cache_key(client, request.endpoint, request.params, request.method, version)
            return CacheKeyResponse(client=client, key=key, table_name=self._cache.get_table_name(client))
        except ApiCacheError as e:
            raise to_http_exception(e) from e
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Invalid parameters: {e}",
            ) from e

    async def get_entry(self, client: str, key: str) -> CacheEntryResponse:
        """Handle GET /cache/{client}/entries/{key} requests.

        Raises:
            HTTPException: 404 if the entry does not exist
        """
        try:
            entry = self._cache.find_entry(client, key)
        except ApiCacheError as e:
            raise to_http_exception(e) from e

        if entry is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No cached entry for key: {key}",
            )

        return CacheEntryResponse(
            key=entry.key,
            client=entry.client,
            endpoint=entry.endpoint,
            method=entry.method,
            version=entry.version,
            attributes=entry.attributes,
            request_params_summary=entry.request_params_summary,
            response_status_code=entry.response_status_code,
            response_size=entry.response_size,
            response_time=entry.response_time,
            response_body=entry.response_body.decode("utf-8", errors="replace"),
            cost=entry.cost,
            credits=entry.credits,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            processed_at=entry.processed_at,
            processed_status=entry.processed_status,
        )

    async def get_stats(self, client: str) -> CacheStatsResponse:
        """Handle GET /cache/{client}/stats requests."""
        try:
            stats = self._cache.get_stats(client)
        except ApiCacheError as e:
            raise to_http_exception(e) from e

        return CacheStatsResponse(
            client=client,
            table_name=stats["table_name"],
            total_entries=stats["total_entries"],
            compression_enabled=stats["compression_enabled"],
            remaining_attempts=stats["remaining_attempts"],
            available_in=stats["available_in"],
        )

    async def clear_cache(self, client: str) -> ClearCacheResponse:
        """Handle DELETE /cache/{client} requests."""
        try:
            count = self._cache.clear_table(client)
        except ApiCacheError as e:
            raise to_http_exception(e) from e

        return ClearCacheResponse(
            success=True,
            deleted_count=count,
            message=f"Cleared {count} entries for client '{client}'",
        )

    async def rate_limit_status(self, client: str) -> RateLimitStatusResponse:
        """Handle GET /rate-limit/{client} requests."""
        try:
            config = self._cache.settings.client(client)
            return RateLimitStatusResponse(
                client=client,
                max_attempts=None if config.is_unlimited else config.rate_limit_max_attempts,
                decay_seconds=config.rate_limit_decay_seconds,
                remaining_attempts=self._cache.get_remaining_attempts(client),
                available_in=self._cache.get_available_in(client),
            )
        except ApiCacheError as e:
            raise to_http_exception(e) from e

    async def clear_rate_limit(self, client: str) -> dict:
        """Handle DELETE /rate-limit/{client} requests."""
        try:
            self._cache.settings.client(client)
            self._cache.clear_rate_limit(client)
        except ApiCacheError as e:
            raise to_http_exception(e) from e

        return {
            "success": True,
            "message": f"Rate limit cleared for client '{client}'",
        }

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        is_healthy = self._cache.is_healthy()

        return HealthCheckResponse(
            status="healthy" if is_healthy else "unhealthy",
            cache_healthy=is_healthy,
        )
