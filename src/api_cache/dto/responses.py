"""Response DTOs for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class CacheKeyResponse(BaseModel):
    """Response DTO for a computed cache key."""

    client: str = Field(..., description="API client name")
    key: str = Field(..., description="The cache key")
    table_name: str = Field(..., description="Table the entry would be stored in")


class CacheEntryResponse(BaseModel):
    """Response DTO for one stored entry."""

    key: str = Field(..., description="Cache key")
    client: str = Field(..., description="API client name")
    endpoint: str = Field(..., description="Endpoint path")
    method: str = Field(..., description="HTTP method")
    version: str | None = Field(None, description="API version used for the key")
    attributes: str | None = Field(None, description="Correlation string (task id, tag, ...)")
    request_params_summary: str | None = Field(None, description="Truncated JSON summary of the parameters")
    response_status_code: int | None = Field(None, description="HTTP status code")
    response_size: int | None = Field(None, description="Response body size in bytes", ge=0)
    response_time: float | None = Field(None, description="Request latency in seconds")
    response_body: str = Field(..., description="Response body decoded as UTF-8")
    cost: float | None = Field(None, description="Reported cost of the call")
    credits: int | None = Field(None, description="Rate limit units consumed")
    created_at: datetime | None = Field(None, description="First write time")
    updated_at: datetime | None = Field(None, description="Last write time")
    processed_at: datetime | None = Field(None, description="Set by downstream processors")
    processed_status: str | None = Field(None, description="Set by downstream processors")


class CacheStatsResponse(BaseModel):
    """Response DTO for per-client cache statistics."""

    client: str = Field(..., description="API client name")
    table_name: str = Field(..., description="Storage table of the client")
    total_entries: int = Field(..., description="Number of stored entries", ge=0)
    compression_enabled: bool = Field(..., description="Whether payloads are stored compressed")
    remaining_attempts: int = Field(..., description="Attempts left in the current window", ge=0)
    available_in: int = Field(..., description="Seconds until the rate limit window resets", ge=0)


class ClearCacheResponse(BaseModel):
    """Response DTO for clearing a client's table."""

    success: bool = Field(..., description="Whether the operation succeeded")
    deleted_count: int = Field(..., description="Number of entries deleted", ge=0)
    message: str = Field(..., description="Human-readable status message")


class RateLimitStatusResponse(BaseModel):
    """Response DTO for a client's rate limit window."""

    client: str = Field(..., description="API client name")
    max_attempts: int | None = Field(None, description="Attempts per window (null = unlimited)")
    decay_seconds: int = Field(..., description="Length of the window in seconds", gt=0)
    remaining_attempts: int = Field(..., description="Attempts left in the current window", ge=0)
    available_in: int = Field(..., description="Seconds until the window resets", ge=0)


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    cache_healthy: bool = Field(..., description="Whether the cache backend is reachable")
