"""Mapping of application errors to HTTP responses."""

from fastapi import HTTPException, status

from api_cache.errors import (
    ApiCacheError,
    ConfigurationError,
    InvalidIdentifierError,
    MalformedResponseError,
    RateLimitExceededError,
    TransportError,
    WebhookError,
)


def to_http_exception(error: ApiCacheError) -> HTTPException:
    """Convert an application error to an HTTPException.

    Args:
        error: The error raised by a service

    Returns:
        HTTPException with a status code matching the error category
    """
    if isinstance(error, WebhookError):
        return HTTPException(status_code=error.http_code, detail=error.message)
    if isinstance(error, RateLimitExceededError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(error),
            headers={"Retry-After": str(error.available_in)},
        )
    if isinstance(error, InvalidIdentifierError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, ConfigurationError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, (TransportError, MalformedResponseError)):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
