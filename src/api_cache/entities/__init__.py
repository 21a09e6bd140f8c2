"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .cache_entry import CacheEntryEntity
from .inbound_request import InboundRequestEntity
from .webhook_delivery import WebhookDeliveryEntity

__all__ = ["CacheEntryEntity", "InboundRequestEntity", "WebhookDeliveryEntity"]
