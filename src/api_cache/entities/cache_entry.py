"""Cache entry domain entity."""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for one stored request/response pair.

    This is an internal representation used by services and repositories.
    For API contracts, use the DTO classes from the dto package.

    Bodies are always plain bytes here; compression is a storage concern
    handled by the repository.

    Attributes:
        key: Cache key (content hash of the normalized request)
        client: API client name
        endpoint: Endpoint path the request was sent to
        method: HTTP method
        response_body: Raw response body
        version: API version used for the key, if any
        base_url: Base URL of the client at request time
        full_url: Full request URL including query string
        request_params_summary: Truncated JSON summary of the parameters
        request_headers: Outbound request headers
        request_body: Raw outbound request body
        response_headers: Response headers
        response_status_code: HTTP status code
        response_size: Length of the response body in bytes
        response_time: Request latency in seconds
        attributes: Free-form correlation string (task id, tag, ...)
        credits: Rate limit units consumed by the call
        cost: Monetary cost reported for the call
        is_cached: True when the entry is served as a replay
        created_at: First write time
        updated_at: Last write time
        processed_at: Set by downstream processors, never by the core
        processed_status: Set by downstream processors, never by the core
    """

    key: str
    client: str
    endpoint: str
    method: str
    response_body: bytes
    version: str | None = None
    base_url: str | None = None
    full_url: str | None = None
    request_params_summary: str | None = None
    request_headers: dict[str, Any] | None = None
    request_body: bytes | None = None
    response_headers: dict[str, Any] | None = None
    response_status_code: int | None = None
    response_size: int | None = None
    response_time: float | None = None
    attributes: str | None = None
    credits: int | None = None
    cost: float | None = None
    is_cached: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    processed_at: datetime | None = None
    processed_status: str | None = None

    def as_replay(self) -> "CacheEntryEntity":
        """Return a copy flagged as served from cache."""
        return replace(self, is_cached=True)
