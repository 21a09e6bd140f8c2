"""Request DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class CacheKeyRequest(BaseModel):
    """Request DTO for computing a cache key.

    Lets a caller compute the key of a request before sending it, e.g. to
    attach it as the tag of a remote task.
    """

    endpoint: str = Field(..., description="Endpoint path relative to the client base URL", min_length=1)
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Request parameters (order and scalar representation do not matter)",
    )
    method: str = Field("GET", description="HTTP method", min_length=1)
    version: str | None = Field(
        None,
        description="API version. Defaults to the client's configured version",
    )
