"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Annotated

import httpx
import redis
from fastapi import Depends, FastAPI, Request

from api_cache.config import Settings, get_redis_client
from api_cache.handlers import CacheHandler, WebhookHandler
from api_cache.repositories import ErrorLogRepository
from api_cache.services import CacheManager
from api_cache.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def get_cache_handler(request: Request) -> CacheHandler:
    """Dependency injection for CacheHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "cache_handler", None)
    if handler is None:
        raise RuntimeError("CacheHandler not initialized. Check lifespan setup.")
    return handler


def get_webhook_handler(request: Request) -> WebhookHandler:
    """Dependency injection for WebhookHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "webhook_handler", None)
    if handler is None:
        raise RuntimeError("WebhookHandler not initialized. Check lifespan setup.")
    return handler


def build_lifespan(
    settings: Settings,
    redis_client: redis.Redis | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Create the lifespan context manager for the FastAPI app.

    Initializes all layers and stores them in app.state:
    1. Redis client, repositories and rate limiter
    2. CacheManager - stored in app.state.cache_manager
    3. Handlers - stored in app.state.cache_handler / app.state.webhook_handler

    Args:
        settings: Application settings
        redis_client: Redis client. If None, connects to ``settings.redis_url``.
        http_client: Outbound HTTP client for pingback re-fetches. Optional.

    Returns:
        Lifespan callable for ``FastAPI(lifespan=...)``
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level, settings.log_json)

        client = redis_client or get_redis_client(settings)
        cache_manager = CacheManager.create(settings, redis_client=client)
        error_log = ErrorLogRepository(client, enabled=settings.error_logging_enabled)
        webhook_handler = WebhookHandler(cache_manager, error_log=error_log, http_client=http_client)

        app.state.settings = settings
        app.state.cache_manager = cache_manager
        app.state.error_log = error_log
        app.state.cache_handler = CacheHandler(cache_manager=cache_manager)
        app.state.webhook_handler = webhook_handler

        logger.info(
            "api_cache_started",
            redis_url=settings.redis_url,
            clients=sorted(settings.clients),
            cache_healthy=cache_manager.is_healthy(),
        )

        yield

        await webhook_handler.aclose()
        del app.state.webhook_handler
        del app.state.cache_handler
        del app.state.error_log
        del app.state.cache_manager
        del app.state.settings
        logger.info("api_cache_stopped")

    return lifespan


# Type aliases for cleaner dependency injection
CacheHandlerDep = Annotated[CacheHandler, Depends(get_cache_handler)]
WebhookHandlerDep = Annotated[WebhookHandler, Depends(get_webhook_handler)]
