"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import CacheKeyRequest
from .responses import (
    CacheEntryResponse,
    CacheKeyResponse,
    CacheStatsResponse,
    ClearCacheResponse,
    HealthCheckResponse,
    RateLimitStatusResponse,
)

__all__ = [
    "CacheKeyRequest",
    "CacheEntryResponse",
    "CacheKeyResponse",
    "CacheStatsResponse",
    "ClearCacheResponse",
    "HealthCheckResponse",
    "RateLimitStatusResponse",
]
