"""HTTP handlers for provider webhooks.

Converts FastAPI requests into ``InboundRequestEntity`` values and hands
them to the client's ``WebhookBridge``. Bridges (and the API clients they
re-fetch with) are built per client on first use.
"""

import httpx
from fastapi import Request
from fastapi.responses import PlainTextResponse

from api_cache.clients import ApiClient
from api_cache.entities import InboundRequestEntity
from api_cache.errors import ApiCacheError
from api_cache.handlers.errors import to_http_exception
from api_cache.providers import provider_for
from api_cache.repositories import ErrorLogRepository
from api_cache.services import CacheManager, WebhookBridge


async def to_inbound_request(request: Request) -> InboundRequestEntity:
    """Build a framework-independent view of a FastAPI request."""
    return InboundRequestEntity(
        method=request.method.upper(),
        headers={name.lower(): value for name, value in request.headers.items()},
        query=dict(request.query_params),
        body=await request.body(),
        source_address=request.client.host if request.client else None,
        path=request.url.path,
    )


class WebhookHandler:
    """HTTP handlers for postback and pingback deliveries.

    Example:
        ```python
        handler = WebhookHandler(cache_manager=manager, error_log=error_log)

        @app.post("/webhooks/{client}/postback")
        async def postback(client: str, request: Request):
            return await handler.postback(client, request)
        ```
    """

    def __init__(
        self,
        cache_manager: CacheManager,
        error_log: ErrorLogRepository | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the webhook handler.

        Args:
            cache_manager: The cache manager shared by every bridge (required).
            error_log: Error journal for rejected deliveries. Optional.
            http_client: HTTP client shared by the bridges. If None, each client creates its own.
        """
        self._cache = cache_manager
        self._error_log = error_log
        self._http_client = http_client
        self._bridges: dict[str, WebhookBridge] = {}
        self._clients: dict[str, ApiClient] = {}

    def bridge_for(self, client: str) -> WebhookBridge:
        """Get or build the bridge of a configured client.

        Raises:
            ConfigurationError: If the client is not configured
        """
        if client not in self._bridges:
            config = self._cache.settings.client(client)
            api_client = ApiClient(
                config,
                self._cache,
                provider=provider_for(config),
                http_client=self._http_client,
                error_log=self._error_log,
            )
            self._clients[client] = api_client
            self._bridges[client] = WebhookBridge(
                config,
                self._cache,
                api_client=api_client,
                error_log=self._error_log,
            )
        return self._bridges[client]

    async def postback(self, client: str, request: Request) -> PlainTextResponse:
        """Handle /webhooks/{client}/postback requests.

        Returns:
            ``ok`` as plain text once the result is stored

        Raises:
            HTTPException: With the status code of the rejection
        """
        inbound = await to_inbound_request(request)
        try:
            self.bridge_for(client).process_postback(inbound)
        except ApiCacheError as e:
            raise to_http_exception(e) from e
        return PlainTextResponse("ok")

    async def pingback(self, client: str, request: Request) -> PlainTextResponse:
        """Handle /webhooks/{client}/pingback requests.

        Returns:
            ``ok`` as plain text once the fetched result is stored

        Raises:
            HTTPException: With the status code of the rejection
        """
        inbound = await to_inbound_request(request)
        try:
            await self.bridge_for(client).process_pingback(inbound)
        except ApiCacheError as e:
            raise to_http_exception(e) from e
        return PlainTextResponse("ok")

    async def aclose(self) -> None:
        """Close the HTTP clients the bridges created for themselves."""
        for api_client in self._clients.values():
            await api_client.aclose()
        self._clients.clear()
        self._bridges.clear()
