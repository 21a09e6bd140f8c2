"""Webhook delivery outcome entity."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class WebhookDeliveryEntity:
    """A task result accepted by the webhook bridge.

    Attributes:
        payload: Parsed provider envelope
        task: First task of the envelope
        task_id: Provider task id
        cache_key: Key the result is stored under (tag or recomputed)
        endpoint: Endpoint the result is filed under
        method: HTTP method used for key computation
        cost: Reported cost of the task, if any
        raw_body: The JSON body as received (after decompression)
        params: Normalized parameters echoed by the task
    """

    payload: dict[str, Any]
    task: dict[str, Any]
    task_id: str
    cache_key: str
    endpoint: str
    method: str
    cost: float | None
    raw_body: bytes
    params: dict[str, Any] | None = None
