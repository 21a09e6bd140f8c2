"""Outbound request client with cache and rate limit orchestration.

The call skeleton is fixed for every provider:

1. generate the cache key
2. return the cached result on a hit (no quota consumed)
3. refuse with ``RateLimitExceededError`` if the quota window is exhausted
4. send the HTTP request; the attempt is counted even if it fails
5. keep non-2xx, empty, invalid JSON and provider-rejected responses out of the cache
6. store everything else

What differs per provider (auth, cacheability, cost) comes from the
``Provider`` passed in.
"""

import re
import time
from collections.abc import Mapping
from typing import Any

import httpx

from api_cache.config import ClientConfig
from api_cache.errors import ErrorKind, MalformedResponseError, RateLimitExceededError, TransportError
from api_cache.models import ApiResult
from api_cache.protocols import Provider
from api_cache.providers import BearerProvider
from api_cache.repositories.error_log_repository import ErrorLogRepository
from api_cache.services.cache_manager import CacheManager
from api_cache.utils.logging import get_logger

logger = get_logger(__name__)

MAX_ATTRIBUTES_LENGTH = 255

_BODYLESS_METHODS = ("GET", "HEAD")
_SUPPORTED_METHODS = ("HEAD", "GET", "POST", "PUT", "PATCH", "DELETE")
_TASK_GET_PATH_RE = re.compile(r"^[a-z0-9_/]+/task_get(/[a-z]+)?$", re.IGNORECASE)


class ApiClient:
    """Request client for one configured third-party API.

    Example:
        ```python
        manager = CacheManager.create(settings)
        client = ApiClient(settings.client("demo"), manager)

        result = await client.send_cached_request("search", {"q": "shoes", "page": 1})
        print(result.is_cached, result.response_status_code)
        ```
    """

    def __init__(
        self,
        config: ClientConfig,
        cache_manager: CacheManager,
        provider: Provider | None = None,
        http_client: httpx.AsyncClient | None = None,
        error_log: ErrorLogRepository | None = None,
        use_cache: bool = True,
    ) -> None:
        """Initialize the API client.

        Args:
            config: Client configuration (base URL, version, timeout).
            cache_manager: Cache and quota orchestration (required).
            provider: Provider capabilities. Defaults to bearer auth with the configured key.
            http_client: HTTP client. If None, one is created lazily and closed
                by ``aclose``. An injected client is left open for its owner.
            error_log: Error journal for failed calls. Optional.
            use_cache: Look up and store responses. Quota is consumed either way.
        """
        self._config = config
        self._manager = cache_manager
        self._provider = provider or BearerProvider.from_config(config)
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._error_log = error_log
        self._use_cache = use_cache

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._config.timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._http_client

    @property
    def client_name(self) -> str:
        return self._config.name

    @property
    def version(self) -> str | None:
        return self._config.version

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def use_cache(self) -> bool:
        return self._use_cache

    @use_cache.setter
    def use_cache(self, value: bool) -> None:
        self._use_cache = value

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def build_url(self, endpoint: str, path_suffix: str | None = None) -> str:
        """Join the base URL, the endpoint and an optional path suffix."""
        url = f"{self._config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        if path_suffix is not None:
            url = f"{url}/{path_suffix.lstrip('/')}"
        logger.debug("url_built", client=self.client_name, endpoint=endpoint, url=url)
        return url

    def _log_error(
        self,
        kind: ErrorKind,
        message: str,
        api_message: str | None = None,
        response: bytes | None = None,
        context: dict[str, Any] | None = None,
        log_level: str = "error",
    ) -> None:
        getattr(logger, log_level)(
            kind.value,
            client=self.client_name,
            message=message,
            api_message=api_message,
            **(context or {}),
        )
        if self._error_log is not None:
            self._error_log.log(
                self.client_name,
                kind,
                message,
                api_message=api_message,
                response=response,
                context=context,
                log_level=log_level,
            )

    async def send_request(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        method: str = "GET",
        attributes: str | None = None,
        credits: int | None = None,
    ) -> ApiResult:
        """Send one request, bypassing cache and rate limiting.

        Parameters go in the query string for GET and HEAD and in a JSON
        body otherwise. Provider auth parameters always go in the query
        string and never reach the cache key.

        Args:
            endpoint: Endpoint path relative to the base URL
            params: Request parameters
            method: HTTP method
            attributes: Correlation string stored with the result
            credits: Quota units this call consumed

        Returns:
            The live result envelope

        Raises:
            ValueError: If the method is not supported
            TransportError: On network failure or timeout
        """
        method = _check_method(method)
        params = dict(params or {})
        url = self.build_url(endpoint)
        query = dict(self._provider.auth_params())
        body = None
        if method in _BODYLESS_METHODS:
            query.update(params)
        elif params:
            body = params

        logger.debug("sending_request", client=self.client_name, method=method, endpoint=endpoint, url=url)

        start_time = time.perf_counter()
        try:
            response = await self.http_client.request(
                method,
                url,
                params=query or None,
                json=body,
                headers=self._provider.auth_headers(),
                timeout=self._config.timeout,
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {endpoint} timed out: {e}", client=self.client_name) from e
        except httpx.TransportError as e:
            raise TransportError(f"Request to {endpoint} failed: {e}", client=self.client_name) from e
        response_time = time.perf_counter() - start_time

        logger.debug(
            "request_completed",
            client=self.client_name,
            status=response.status_code,
            response_time=round(response_time, 3),
        )

        return ApiResult(
            method=method,
            base_url=self._config.base_url,
            full_url=str(response.request.url),
            response=response,
            params=params,
            request_headers=dict(response.request.headers),
            request_body=response.request.content or None,
            attributes=attributes,
            credits=credits,
            cost=self._provider.calculate_cost(response.content),
            response_time=response_time,
        )

    async def send_cached_request(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        method: str = "GET",
        attributes: str | None = None,
        amount: int = 1,
    ) -> ApiResult:
        """Send a request through the cache and the rate limiter.

        Args:
            endpoint: Endpoint path relative to the base URL
            params: Request parameters (part of the cache key)
            method: HTTP method
            attributes: Correlation string, trimmed to 255 characters
            amount: Quota units the call consumes

        Returns:
            The cached result (``is_cached=True``) or the live result

        Raises:
            ValueError: If the method is not supported (no quota consumed)
            RateLimitExceededError: If the client's quota window is exhausted
            TransportError: On network failure or timeout (quota still consumed)
        """
        method = _check_method(method)
        params = dict(params or {})
        cache_key = self._manager.generate_cache_key(self.client_name, endpoint, params, method, self.version)

        if not self._use_cache:
            logger.debug("cache_disabled", client=self.client_name, endpoint=endpoint)
        else:
            cached = self._manager.get_cached_response(self.client_name, cache_key)
            if cached is not None:
                logger.debug("cache_used", client=self.client_name, endpoint=endpoint, cache_key=cache_key)
                return cached
            logger.debug("cache_not_used", client=self.client_name, endpoint=endpoint, cache_key=cache_key)

        if not self._manager.allow_request(self.client_name):
            available_in = self._manager.get_available_in(self.client_name)
            self._log_error(
                ErrorKind.RATE_LIMITED,
                "Rate limit exceeded",
                context={"available_in": available_in, "endpoint": endpoint},
                log_level="warning",
            )
            raise RateLimitExceededError(self.client_name, available_in)

        if attributes is not None and len(attributes) > MAX_ATTRIBUTES_LENGTH:
            logger.warning("attributes_trimmed", client=self.client_name, length=len(attributes))
            attributes = attributes[:MAX_ATTRIBUTES_LENGTH]

        try:
            result = await self.send_request(endpoint, params, method, attributes, credits=amount)
        except TransportError as e:
            self._log_error(ErrorKind.TRANSPORT, e.message, context={"endpoint": endpoint, "method": method})
            raise
        finally:
            self._manager.increment_attempts(self.client_name, amount)

        if not result.is_success:
            self._log_error(
                ErrorKind.HTTP_ERROR,
                f"HTTP {result.response_status_code} from {endpoint}",
                api_message=result.response.reason_phrase,
                response=result.response_body,
                context={"endpoint": endpoint, "status_code": result.response_status_code},
            )
            return result

        if not self._use_cache:
            return result

        if not result.response_body:
            self._log_error(
                ErrorKind.MALFORMED_RESPONSE,
                f"Empty response body from {endpoint}",
                context={"endpoint": endpoint},
                log_level="warning",
            )
            return result

        if _is_json(result):
            try:
                result.json()
            except MalformedResponseError as e:
                self._log_error(
                    ErrorKind.MALFORMED_RESPONSE,
                    f"Invalid JSON from {endpoint}: {e.message}",
                    response=result.response_body,
                    context={"endpoint": endpoint, "cache_key": cache_key},
                    log_level="warning",
                )
                return result

        if not self._provider.is_cacheable(result.response_status_code, result.response_body):
            self._log_error(
                ErrorKind.PROVIDER_FAILURE,
                f"Response from {endpoint} rejected by the provider's cacheability policy",
                response=result.response_body,
                context={"endpoint": endpoint, "cache_key": cache_key},
                log_level="info",
            )
            return result

        self._manager.store_response(
            self.client_name,
            cache_key,
            params,
            result,
            endpoint,
            attributes=attributes,
            version=self.version,
        )
        return result

    async def task_get(
        self,
        endpoint_path: str,
        task_id: str,
        attributes: str | None = None,
        amount: int = 1,
    ) -> ApiResult:
        """Fetch a task result from ``{endpoint_path}/{task_id}``.

        Args:
            endpoint_path: Path ending in ``task_get`` or ``task_get/<type>``
            task_id: Provider task id
            attributes: Correlation string, defaults to the task id
            amount: Quota units the call consumes

        Raises:
            ValueError: If the path or the task id is invalid
        """
        if not _TASK_GET_PATH_RE.match(endpoint_path):
            raise ValueError("Invalid endpoint path format. Expected format: path/to/task_get/type")
        if not task_id:
            raise ValueError("Task ID cannot be empty")

        logger.debug("task_get", client=self.client_name, endpoint_path=endpoint_path, task_id=task_id)
        return await self.send_cached_request(
            f"{endpoint_path}/{task_id}",
            {},
            "GET",
            attributes if attributes is not None else task_id,
            amount,
        )

    async def get_health(self) -> ApiResult:
        """Call the provider's ``health`` endpoint, bypassing the cache."""
        return await self.send_request("health")


def _check_method(method: str) -> str:
    method = method.upper()
    if method not in _SUPPORTED_METHODS:
        raise ValueError(f"Unsupported HTTP method: {method}")
    return method


def _is_json(result: ApiResult) -> bool:
    content_type = result.response.headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower().endswith("json")
