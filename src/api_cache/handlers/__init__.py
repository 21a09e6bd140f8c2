"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (business logic), not directly on repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)
"""

from .cache_handler import CacheHandler
from .errors import to_http_exception
from .webhook_handler import WebhookHandler

__all__ = [
    "CacheHandler",
    "WebhookHandler",
    "to_http_exception",
]
