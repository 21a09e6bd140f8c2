from typing import Any

import httpx
import redis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from api_cache.api.dependencies import CacheHandlerDep, WebhookHandlerDep, build_lifespan
from api_cache.config import Settings, get_settings
from api_cache.dto import (
    CacheEntryResponse,
    CacheKeyRequest,
    CacheKeyResponse,
    CacheStatsResponse,
    ClearCacheResponse,
    HealthCheckResponse,
    RateLimitStatusResponse,
)

# Methods accepted by the webhook routes; anything else is rejected by the bridge with 405
WEBHOOK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def create_app(
    settings: Settings | None = None,
    redis_client: redis.Redis | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create the API cache application.

    Args:
        settings: Application settings. Defaults to the environment.
        redis_client: Redis client. Defaults to one built from settings.
        http_client: Outbound HTTP client used for pingback re-fetches.

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="API Cache",
        description="Caching, rate limiting and webhook reconciliation for third-party HTTP APIs",
        version="0.1.0",
        lifespan=build_lifespan(settings, redis_client=redis_client, http_client=http_client),
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "API Cache",
            "version": "0.1.0",
            "clients": sorted(settings.clients),
            "endpoints": {
                "cache": "/cache/{client}",
                "rate_limit": "/rate-limit/{client}",
                "webhooks": "/webhooks/{client}",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: CacheHandlerDep) -> HealthCheckResponse:
        """Health check endpoint."""
        return await handler.health_check()

    @app.post("/cache/{client}/key", response_model=CacheKeyResponse)
    async def compute_key(client: str, request: CacheKeyRequest, handler: CacheHandlerDep) -> CacheKeyResponse:
        """Compute the cache key of a request without sending it."""
        return await handler.compute_key(client, request)

    @app.get("/cache/{client}/stats", response_model=CacheStatsResponse)
    async def cache_stats(client: str, handler: CacheHandlerDep) -> CacheStatsResponse:
        """Get cache statistics of a client."""
        return await handler.get_stats(client)

    @app.get("/cache/{client}/entries/{key}", response_model=CacheEntryResponse)
    async def cache_entry(client: str, key: str, handler: CacheHandlerDep) -> CacheEntryResponse:
        """Get one stored entry."""
        return await handler.get_entry(client, key)

    @app.delete("/cache/{client}", response_model=ClearCacheResponse)
    async def clear_cache(client: str, handler: CacheHandlerDep) -> ClearCacheResponse:
        """Delete every stored entry of a client."""
        return await handler.clear_cache(client)

    @app.get("/rate-limit/{client}", response_model=RateLimitStatusResponse)
    async def rate_limit_status(client: str, handler: CacheHandlerDep) -> RateLimitStatusResponse:
        """Get the rate limit window of a client."""
        return await handler.rate_limit_status(client)

    @app.delete("/rate-limit/{client}", response_model=dict[str, Any])
    async def clear_rate_limit(client: str, handler: CacheHandlerDep) -> dict[str, Any]:
        """Reset the rate limit window of a client."""
        return await handler.clear_rate_limit(client)

    @app.api_route("/webhooks/{client}/postback", methods=WEBHOOK_METHODS, response_class=PlainTextResponse)
    async def postback(client: str, request: Request, handler: WebhookHandlerDep) -> PlainTextResponse:
        """Receive a pushed task result."""
        return await handler.postback(client, request)

    @app.api_route("/webhooks/{client}/pingback", methods=WEBHOOK_METHODS, response_class=PlainTextResponse)
    async def pingback(client: str, request: Request, handler: WebhookHandlerDep) -> PlainTextResponse:
        """Receive a task completion ping and fetch the result."""
        return await handler.pingback(client, request)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "api_cache.api.app:app",
        host=_settings.api_host,
        port=_settings.api_port,
        reload=_settings.api_reload,
    )
