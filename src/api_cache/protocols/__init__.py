"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (Redis → SQL tables, etc.)
- Unit testing with mock implementations
- Composing per-provider behaviour into a fixed request skeleton

Usage:
    ```python
    from api_cache.protocols import CacheStore, Provider, RateLimiter

    repo: CacheStore = RedisCacheRepository(...)
    limiter: RateLimiter = RateLimitService(...)
    ```
"""

from .cache_store import CacheStore
from .provider import Provider
from .rate_limiter import RateLimiter

__all__ = [
    "CacheStore",
    "Provider",
    "RateLimiter",
]
