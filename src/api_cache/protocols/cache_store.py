"""Cache storage protocol.

Defines the interface for any persistent store that can hold request/response
records keyed by cache key, one logical table per client.

Implementations can include:
- Redis hashes (default)
- A relational table per client
"""

from typing import Protocol, runtime_checkable

from api_cache.entities import CacheEntryEntity


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed.

    Example:
        ```python
        from api_cache.protocols import CacheStore

        repo: CacheStore = RedisCacheRepository(...)
        ```
    """

    def find(self, client: str, key: str) -> CacheEntryEntity | None:
        """Look up an entry by cache key.

        Args:
            client: API client name
            key: The cache key

        Returns:
            The decoded entry, or None if absent
        """
        ...

    def store(self, entry: CacheEntryEntity) -> None:
        """Insert or replace an entry atomically.

        Calling twice with the same key is safe; the last write wins.

        Args:
            entry: The entry to persist (bodies in plain form)
        """
        ...

    def find_by_attributes(self, client: str, attributes: str) -> CacheEntryEntity | None:
        """Reverse lookup of the most recent entry stored with ``attributes``.

        Args:
            client: API client name
            attributes: Correlation string, e.g. a provider task id

        Returns:
            The entry, or None if no entry carries these attributes
        """
        ...

    def table_name_for(self, client: str) -> str:
        """Return the storage identifier for a client.

        Args:
            client: API client name

        Returns:
            Table name, suffixed with ``_compressed`` for compressed clients
        """
        ...

    def clear_table(self, client: str) -> int:
        """Delete every entry of a client.

        Returns:
            Number of entries deleted
        """
        ...

    def count_all(self, client: str) -> int:
        """Count stored entries of a client."""
        ...

    def health_check(self) -> bool:
        """Check if the store is accessible."""
        ...

    def get_stats(self, client: str) -> dict:
        """Get repository statistics for a client."""
        ...
