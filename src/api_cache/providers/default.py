"""Generic providers for APIs authenticated by a single key."""

from typing import Any

from api_cache.config import ClientConfig


class BearerProvider:
    """Provider sending ``Authorization: Bearer <api_key>``.

    Every 2xx response is cacheable and no cost is reported.
    """

    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = api_key

    @classmethod
    def from_config(cls, config: ClientConfig) -> "BearerProvider":
        return cls(api_key=config.api_key)

    def auth_headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {"Authorization": f"Bearer {self._api_key}"}

    def auth_params(self) -> dict[str, Any]:
        return {}

    def is_cacheable(self, status_code: int, body: bytes) -> bool:
        return 200 <= status_code < 300

    def calculate_cost(self, body: bytes) -> float | None:
        return None


class QueryKeyProvider(BearerProvider):
    """Provider passing the API key as a query parameter.

    Args:
        api_key: The API key
        param_name: Query parameter carrying the key
    """

    def __init__(self, api_key: str | None = None, param_name: str = "key") -> None:
        super().__init__(api_key)
        self._param_name = param_name

    def auth_headers(self) -> dict[str, str]:
        return {}

    def auth_params(self) -> dict[str, Any]:
        if not self._api_key:
            return {}
        return {self._param_name: self._api_key}
