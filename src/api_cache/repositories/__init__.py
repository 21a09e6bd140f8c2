"""Repository layer for data access.

This layer hides Redis behind protocol-based interfaces. This enables:
- Swapping the storage backend without touching the services
- Unit testing with in-memory Redis or mock implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from api_cache.protocols import CacheStore

from .error_log_repository import ErrorLogRepository
from .redis_repository import RedisCacheRepository

__all__ = [
    "CacheStore",
    "ErrorLogRepository",
    "RedisCacheRepository",
]
