"""Provider capability protocol.

The outbound request skeleton is fixed; what varies per third-party API is
how it authenticates, what a call costs and which responses are worth
keeping. Each provider supplies those capabilities by implementing this
protocol.

Implementations:
- BearerProvider: ``Authorization: Bearer <api_key>``
- QueryKeyProvider: API key sent as a query parameter
- DataForSeoProvider: basic auth, task-based async API with webhooks
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Provider(Protocol):
    """Protocol for per-provider request capabilities.

    Example:
        ```python
        from api_cache.protocols import Provider

        provider: Provider = BearerProvider(api_key="...")
        client = ApiClient(config, cache_manager, provider=provider)
        ```
    """

    def auth_headers(self) -> dict[str, str]:
        """Headers added to every outbound request.

        Returns:
            Mapping of header name to value
        """
        ...

    def auth_params(self) -> dict[str, Any]:
        """Parameters merged into every outbound request.

        These are sent but never part of the cache key.

        Returns:
            Mapping of parameter name to value
        """
        ...

    def is_cacheable(self, status_code: int, body: bytes) -> bool:
        """Decide whether a successful response should be stored.

        Args:
            status_code: HTTP status code
            body: Raw response body

        Returns:
            True to store the response
        """
        ...

    def calculate_cost(self, body: bytes) -> float | None:
        """Extract the monetary cost of a call from its response.

        Returns:
            The cost, or None if the provider does not report one
        """
        ...
