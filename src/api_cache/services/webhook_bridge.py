"""Bridge asynchronous task results back into the cache.

A task-based provider delivers results long after the task was created,
either by postback (the full result is POSTed to us) or by pingback (a
GET with the task id; we fetch the result ourselves). The bridge files the
result under the cache key the original synchronous lookup computes:

- the ``tag`` the caller attached to the task, when present
- otherwise ``generate_cache_key`` over the task's echoed parameters

Endpoint resolution order: the ``endpoint`` query hint, then the task's
recorded path, then a reverse lookup of the task id against stored
entries. Every rejection is logged with the request context needed to
replay it and raised as a ``WebhookError`` before anything is stored.
"""

import json
from typing import TYPE_CHECKING, Any

import httpx

from api_cache.config import ClientConfig
from api_cache.entities import InboundRequestEntity, WebhookDeliveryEntity
from api_cache.errors import CompressionError, ConfigurationError, ErrorKind, WebhookError
from api_cache.models import ApiResult
from api_cache.providers import DataForSeoProvider
from api_cache.repositories.error_log_repository import ErrorLogRepository
from api_cache.services.cache_manager import CacheManager
from api_cache.services.compression_service import CompressionService
from api_cache.utils.logging import get_logger

if TYPE_CHECKING:
    from api_cache.clients import ApiClient

logger = get_logger(__name__)

# Placeholder sent verbatim when the pingback URL template was never filled in
UNFILLED_TAG = "$tag"


class WebhookBridge:
    """Accepts postback and pingback deliveries for one task-based client.

    Example:
        ```python
        bridge = WebhookBridge(config, cache_manager, api_client=client)

        delivery = bridge.process_postback(inbound)
        print(delivery.cache_key)
        ```
    """

    def __init__(
        self,
        config: ClientConfig,
        cache_manager: CacheManager,
        api_client: "ApiClient | None" = None,
        compression: CompressionService | None = None,
        error_log: ErrorLogRepository | None = None,
    ) -> None:
        """Initialize the webhook bridge.

        Args:
            config: Client configuration (whitelist, version).
            cache_manager: Cache orchestration used for keys, lookups and storage.
            api_client: Client used to re-fetch task results on pingback.
            compression: Used to unwrap compressed payloads. Defaults to a new service.
            error_log: Error journal for rejected deliveries. Optional.
        """
        self._config = config
        self._manager = cache_manager
        self._api_client = api_client
        self._compression = compression or CompressionService()
        self._error_log = error_log

    @property
    def client_name(self) -> str:
        return self._config.name

    def _reject(
        self,
        request: InboundRequestEntity,
        kind: ErrorKind,
        message: str,
        http_code: int = 400,
        response: bytes | None = None,
    ) -> WebhookError:
        context = request.replay_context()
        context["http_code"] = http_code

        logger.warning("webhook_rejected", client=self.client_name, error_type=kind.value, message=message, **context)
        if self._error_log is not None:
            self._error_log.log(self.client_name, kind, message, response=response, context=context)

        preview = response.decode("utf-8", errors="replace") if response else None
        return WebhookError(kind, message, http_code=http_code, client=self.client_name, context=context, response=preview)

    def validate_method(self, request: InboundRequestEntity, expected: str) -> None:
        """Reject deliveries sent with the wrong HTTP method (405)."""
        if request.method.upper() != expected.upper():
            raise self._reject(request, ErrorKind.WEBHOOK_INVALID_METHOD, "Method not allowed", http_code=405)

    def validate_ip(self, request: InboundRequestEntity) -> None:
        """Reject callers outside the client's IP whitelist (403).

        An empty whitelist allows every caller.
        """
        allowed = self._config.whitelisted_ips
        if not allowed:
            return
        client_ip = request.client_ip
        if client_ip not in allowed:
            raise self._reject(
                request,
                ErrorKind.WEBHOOK_IP_NOT_WHITELISTED,
                f"IP not whitelisted: {client_ip}",
                http_code=403,
            )

    def _parse(self, request: InboundRequestEntity, body: bytes) -> dict[str, Any]:
        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError):
            raise self._reject(request, ErrorKind.WEBHOOK_INVALID_JSON, "Invalid JSON", response=body) from None
        if not isinstance(payload, dict):
            raise self._reject(request, ErrorKind.WEBHOOK_INVALID_JSON, "Invalid JSON envelope", response=body)

        if not DataForSeoProvider.is_success(payload):
            raise self._reject(
                request,
                ErrorKind.WEBHOOK_PROVIDER_ERROR,
                f"Provider error response: {payload.get('status_code')} {payload.get('status_message', '')}".strip(),
                response=body,
            )
        return payload

    def _task(self, request: InboundRequestEntity, payload: dict[str, Any], body: bytes) -> tuple[dict[str, Any], str]:
        task = DataForSeoProvider.first_task(payload)
        if not task:
            raise self._reject(request, ErrorKind.WEBHOOK_NO_TASK, "No task data in response", response=body)
        task_id = task.get("id")
        if not task_id:
            raise self._reject(request, ErrorKind.WEBHOOK_MISSING_TASK_ID, "Missing task ID", response=body)
        return task, str(task_id)

    @staticmethod
    def _tag(task: dict[str, Any]) -> str | None:
        data = task.get("data")
        tag = data.get("tag") if isinstance(data, dict) else None
        return str(tag) if tag else None

    def resolve_endpoint(
        self,
        request: InboundRequestEntity,
        task_id: str,
        payload: dict[str, Any] | None = None,
    ) -> str:
        """Find the endpoint a task result belongs to.

        Order: ``endpoint`` query hint, ``tasks[0].path`` of the payload,
        then the endpoint of the latest entry stored with the task id as
        its attributes.

        Raises:
            WebhookError: If no source yields an endpoint (422)
        """
        endpoint = request.query.get("endpoint")
        if endpoint:
            logger.debug("endpoint_resolved", source="query", endpoint=endpoint)
            return endpoint

        if payload is not None:
            endpoint = DataForSeoProvider.extract_endpoint(payload)
            if endpoint:
                logger.debug("endpoint_resolved", source="payload", endpoint=endpoint)
                return endpoint

        entry = self._manager.find_by_attributes(self.client_name, task_id)
        if entry is not None and entry.endpoint:
            logger.debug("endpoint_resolved", source="store", endpoint=entry.endpoint)
            return entry.endpoint

        raise self._reject(
            request,
            ErrorKind.WEBHOOK_UNRESOLVED_ENDPOINT,
            f"Cannot determine endpoint for task: {task_id}",
            http_code=422,
        )

    def _delivery(
        self,
        request: InboundRequestEntity,
        payload: dict[str, Any],
        body: bytes,
        method: str,
        cost: float | None,
    ) -> WebhookDeliveryEntity:
        task, task_id = self._task(request, payload, body)
        endpoint = self.resolve_endpoint(request, task_id, payload)
        params = DataForSeoProvider.extract_params(payload)

        cache_key = self._tag(task)
        if cache_key is None:
            cache_key = self._manager.generate_cache_key(
                self.client_name, endpoint, params, method, self._config.version
            )
            logger.debug("cache_key_recomputed", client=self.client_name, task_id=task_id, cache_key=cache_key)

        return WebhookDeliveryEntity(
            payload=payload,
            task=task,
            task_id=task_id,
            cache_key=cache_key,
            endpoint=endpoint,
            method=method,
            cost=cost,
            raw_body=body,
            params=params,
        )

    def process_postback(self, request: InboundRequestEntity) -> WebhookDeliveryEntity:
        """Validate a pushed task result and store it.

        Args:
            request: The inbound POST delivery

        Returns:
            The accepted delivery

        Raises:
            WebhookError: If the delivery is rejected
        """
        self.validate_method(request, "POST")
        self.validate_ip(request)

        if not request.body:
            raise self._reject(request, ErrorKind.WEBHOOK_EMPTY_BODY, "Empty POST data")

        try:
            body = self._compression.decode_payload(request.body)
        except CompressionError as e:
            raise self._reject(request, ErrorKind.WEBHOOK_INVALID_JSON, e.message, response=request.body) from e

        payload = self._parse(request, body)
        cost = DataForSeoProvider.cost_of(payload)
        delivery = self._delivery(request, payload, body, "POST", cost)

        self.store_in_cache(delivery)
        logger.info(
            "postback_processed",
            client=self.client_name,
            task_id=delivery.task_id,
            cache_key=delivery.cache_key,
            endpoint=delivery.endpoint,
        )
        return delivery

    async def process_pingback(self, request: InboundRequestEntity) -> WebhookDeliveryEntity:
        """Fetch the result of a completed task and store it.

        Expects ``id`` and ``endpoint`` (the task_get path) query parameters
        and an optional ``tag``. A tag equal to the unfilled ``$tag``
        placeholder is treated as absent.

        Raises:
            WebhookError: If the delivery is rejected
            ConfigurationError: If the bridge has no client to fetch with
            RateLimitExceededError: If the re-fetch is rate limited
            TransportError: If the re-fetch fails
        """
        self.validate_method(request, "GET")
        self.validate_ip(request)

        task_id = request.query.get("id")
        task_get_endpoint = request.query.get("endpoint")
        tag = request.query.get("tag")

        if not task_id:
            raise self._reject(request, ErrorKind.WEBHOOK_MISSING_TASK_ID, "Missing task ID in pingback")
        if not task_get_endpoint:
            raise self._reject(request, ErrorKind.WEBHOOK_MISSING_ENDPOINT, "Missing endpoint in pingback")
        if self._api_client is None:
            raise ConfigurationError("Pingback requires an API client to fetch task results", client=self.client_name)

        attributes = None if tag == UNFILLED_TAG else tag

        try:
            result = await self._api_client.task_get(task_get_endpoint, task_id, attributes)
        except ValueError as e:
            raise self._reject(request, ErrorKind.WEBHOOK_MISSING_ENDPOINT, str(e)) from e

        body = result.response_body
        if not body:
            raise self._reject(request, ErrorKind.WEBHOOK_EMPTY_BODY, "Empty task_get response")

        payload = self._parse(request, body)
        delivery = self._delivery(request, payload, body, "GET", result.cost)

        self.store_in_cache(delivery)
        logger.info(
            "pingback_processed",
            client=self.client_name,
            task_id=delivery.task_id,
            cache_key=delivery.cache_key,
            endpoint=delivery.endpoint,
        )
        return delivery

    def store_in_cache(self, delivery: WebhookDeliveryEntity) -> None:
        """Store an accepted delivery under its cache key.

        The task id becomes the entry's attributes so a later delivery
        for the same task can find the endpoint by reverse lookup.
        """
        response = httpx.Response(
            status_code=200,
            headers={"Content-Type": "application/json"},
            content=delivery.raw_body,
        )
        result = ApiResult(
            method=delivery.method,
            base_url=None,
            full_url=None,
            response=response,
            attributes=delivery.task_id,
            cost=delivery.cost,
        )
        self._manager.store_response(
            self.client_name,
            delivery.cache_key,
            delivery.params,
            result,
            delivery.endpoint,
            attributes=delivery.task_id,
            version=self._config.version,
        )
