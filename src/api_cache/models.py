"""Result envelope returned by API clients for every call."""

import json
from dataclasses import dataclass, field
from typing import Any

import httpx

from api_cache.entities import CacheEntryEntity
from api_cache.errors import MalformedResponseError


@dataclass
class ApiResult:
    """Uniform result of a live or replayed API call.

    Attributes:
        method: HTTP method of the request
        base_url: Client base URL
        full_url: Full request URL including query string
        response: The raw ``httpx.Response``
        params: Caller parameters (without auth parameters)
        request_headers: Outbound request headers
        request_body: Raw outbound request body
        attributes: Caller correlation string
        credits: Rate limit units consumed
        cost: Monetary cost reported by the provider
        response_time: Latency in seconds (None for webhook deliveries)
        is_cached: True when served from the cache
    """

    method: str
    base_url: str | None
    full_url: str | None
    response: httpx.Response
    params: dict[str, Any] = field(default_factory=dict)
    request_headers: dict[str, Any] | None = None
    request_body: bytes | None = None
    attributes: str | None = None
    credits: int | None = None
    cost: float | None = None
    response_time: float | None = None
    is_cached: bool = False

    @property
    def response_status_code(self) -> int:
        return self.response.status_code

    @property
    def response_body(self) -> bytes:
        return self.response.content

    @property
    def response_size(self) -> int:
        return len(self.response.content)

    @property
    def is_success(self) -> bool:
        """Check if the response has a 2xx status code."""
        return self.response.is_success

    def json(self) -> Any:
        """Parse the response body as JSON.

        Raises:
            MalformedResponseError: If the body is not valid JSON
        """
        try:
            return json.loads(self.response.content)
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedResponseError(f"Response body is not valid JSON: {e}") from e

    @classmethod
    def from_entry(cls, entry: CacheEntryEntity) -> "ApiResult":
        """Rebuild a result envelope from a stored entry."""
        response = httpx.Response(
            status_code=entry.response_status_code or 200,
            headers=_flatten_headers(entry.response_headers),
            content=entry.response_body,
        )
        return cls(
            method=entry.method,
            base_url=entry.base_url,
            full_url=entry.full_url,
            response=response,
            request_headers=entry.request_headers,
            request_body=entry.request_body,
            attributes=entry.attributes,
            credits=entry.credits,
            cost=entry.cost,
            response_time=entry.response_time,
            is_cached=entry.is_cached,
        )


# Stored bodies are already decoded, so framing headers must not be replayed
_FRAMING_HEADERS = {"content-encoding", "content-length", "transfer-encoding"}


def _flatten_headers(headers: dict[str, Any] | None) -> list[tuple[str, str]]:
    if not headers:
        return []
    flattened = []
    for name, value in headers.items():
        if name.lower() in _FRAMING_HEADERS:
            continue
        values = value if isinstance(value, list) else [value]
        flattened.extend((name, str(item)) for item in values)
    return flattened
