"""Exception hierarchy for api-cache.

All application exceptions inherit from :class:`ApiCacheError`, which
carries an optional ``client`` naming the API client involved and an
:class:`ErrorKind` so callers can branch on the failure category:

    ApiCacheError
    +-- ConfigurationError       (unknown client, invalid settings)
    +-- InvalidIdentifierError   (client name is not a safe identifier)
    +-- TransportError           (network failure or timeout)
    +-- RateLimitExceededError   (quota window exhausted)
    +-- MalformedResponseError   (invalid JSON, missing envelope fields)
    +-- CompressionError         (stored bytes cannot be decompressed)
    +-- WebhookError             (rejected postback or pingback delivery)

``RateLimitExceededError`` and ``TransportError`` are disjoint branches.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of error categories used for routing and the error journal."""

    TRANSPORT = "transport"
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"
    PROVIDER_FAILURE = "provider_failure"
    HTTP_ERROR = "http_error"
    CONFIGURATION = "configuration"
    COMPRESSION = "compression"
    WEBHOOK_INVALID_METHOD = "webhook_invalid_method"
    WEBHOOK_IP_NOT_WHITELISTED = "webhook_ip_not_whitelisted"
    WEBHOOK_EMPTY_BODY = "webhook_empty_body"
    WEBHOOK_INVALID_JSON = "webhook_invalid_json"
    WEBHOOK_PROVIDER_ERROR = "webhook_provider_error"
    WEBHOOK_NO_TASK = "webhook_no_task"
    WEBHOOK_MISSING_TASK_ID = "webhook_missing_task_id"
    WEBHOOK_MISSING_ENDPOINT = "webhook_missing_endpoint"
    WEBHOOK_UNRESOLVED_ENDPOINT = "webhook_unresolved_endpoint"


class ApiCacheError(Exception):
    """Base exception for all api-cache errors."""

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(self, message: str = "An unexpected error occurred", client: str | None = None) -> None:
        self._message = message
        self._client = client
        super().__init__(message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def client(self) -> str | None:
        return self._client

    def __str__(self) -> str:
        if self._client:
            return f"[{self._client}] {self._message}"
        return self._message


class ConfigurationError(ApiCacheError):
    """Raised for unknown clients or invalid configuration."""


class InvalidIdentifierError(ApiCacheError, ValueError):
    """Raised when a client name contains characters unsafe for keys and table names."""


class TransportError(ApiCacheError):
    """Raised when the outbound HTTP call fails or times out."""

    kind = ErrorKind.TRANSPORT


class RateLimitExceededError(ApiCacheError):
    """Raised when a client has no attempts left in its current window."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, client: str, available_in: int, message: str | None = None) -> None:
        self._available_in = available_in
        super().__init__(
            message or f"Rate limit exceeded for client '{client}'. Available in {available_in} seconds.",
            client=client,
        )

    @property
    def available_in(self) -> int:
        """Seconds until the rate limit window resets."""
        return self._available_in


class MalformedResponseError(ApiCacheError):
    """Raised when a result envelope or response body is not usable."""

    kind = ErrorKind.MALFORMED_RESPONSE


class CompressionError(ApiCacheError):
    """Raised when compressed data cannot be decompressed."""

    kind = ErrorKind.COMPRESSION


class WebhookError(ApiCacheError):
    """Raised when a webhook delivery is rejected.

    Carries the HTTP status code to answer with and the request context
    needed to replay the delivery manually.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        http_code: int = 400,
        client: str | None = None,
        context: dict[str, Any] | None = None,
        response: str | None = None,
    ) -> None:
        self.kind = kind
        self._http_code = http_code
        self._context = context or {}
        self._response = response
        super().__init__(message, client=client)

    @property
    def http_code(self) -> int:
        return self._http_code

    @property
    def context(self) -> dict[str, Any]:
        return self._context

    @property
    def response(self) -> str | None:
        return self._response
