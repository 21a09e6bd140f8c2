"""Service layer for business logic.

This layer contains the core business logic and orchestration.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from api_cache.services import CacheManager

    # Using factory method (recommended)
    manager = CacheManager.create(settings)

    # Or manual creation
    manager = CacheManager(settings=settings, repository=repo, rate_limiter=limiter)
    ```
"""

from .cache_manager import CacheManager
from .compression_service import CompressionService
from .key_generator import generate_cache_key
from .rate_limit_service import RateLimitService
from .webhook_bridge import WebhookBridge

__all__ = [
    "CacheManager",
    "CompressionService",
    "RateLimitService",
    "WebhookBridge",
    "generate_cache_key",
]
