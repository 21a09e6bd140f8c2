"""API Cache - caching, rate limiting and webhook reconciliation for third-party APIs.

This package provides a layered architecture around slow, metered HTTP APIs:

Layers:
    - protocols: Interface contracts (CacheStore, RateLimiter, Provider)
    - repositories: Data access implementations (Redis)
    - services: Business logic (CacheManager, RateLimitService, WebhookBridge)
    - clients: Outbound request orchestration (ApiClient)
    - providers: Per-provider auth, cacheability and cost
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from api_cache import ApiClient, CacheManager, get_settings

    settings = get_settings()
    manager = CacheManager.create(settings)
    client = ApiClient(settings.client("demo"), manager)
    result = await client.send_cached_request("search", {"q": "shoes"})
    ```

For HTTP API:
    ```python
    from api_cache.api.app import app
    ```
"""

from api_cache.clients import ApiClient
from api_cache.config import ClientConfig, Settings, get_redis_client, get_settings
from api_cache.entities import CacheEntryEntity, InboundRequestEntity, WebhookDeliveryEntity
from api_cache.errors import (
    ApiCacheError,
    CompressionError,
    ConfigurationError,
    ErrorKind,
    InvalidIdentifierError,
    MalformedResponseError,
    RateLimitExceededError,
    TransportError,
    WebhookError,
)
from api_cache.models import ApiResult
from api_cache.protocols import CacheStore, Provider, RateLimiter
from api_cache.providers import BearerProvider, DataForSeoProvider, QueryKeyProvider
from api_cache.repositories import ErrorLogRepository, RedisCacheRepository
from api_cache.services import (
    CacheManager,
    CompressionService,
    RateLimitService,
    WebhookBridge,
    generate_cache_key,
)
from api_cache.utils import normalize_params

__all__ = [
    # Configuration
    "ClientConfig",
    "Settings",
    "get_settings",
    "get_redis_client",
    # Protocols (interfaces)
    "CacheStore",
    "Provider",
    "RateLimiter",
    # Services (business logic)
    "CacheManager",
    "CompressionService",
    "RateLimitService",
    "WebhookBridge",
    "generate_cache_key",
    "normalize_params",
    # Clients and providers
    "ApiClient",
    "ApiResult",
    "BearerProvider",
    "DataForSeoProvider",
    "QueryKeyProvider",
    # Repositories (data access)
    "ErrorLogRepository",
    "RedisCacheRepository",
    # Entities (domain models)
    "CacheEntryEntity",
    "InboundRequestEntity",
    "WebhookDeliveryEntity",
    # Errors
    "ApiCacheError",
    "CompressionError",
    "ConfigurationError",
    "ErrorKind",
    "InvalidIdentifierError",
    "MalformedResponseError",
    "RateLimitExceededError",
    "TransportError",
    "WebhookError",
]
