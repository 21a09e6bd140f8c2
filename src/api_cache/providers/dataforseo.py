"""DataForSEO provider.

DataForSEO runs a task-based API: a ``task_post`` call creates remote
tasks, and results arrive later by postback (full body pushed to us) or
pingback (a completion ping; the result is fetched with ``task_get``).
Every response is an envelope::

    {
        "status_code": 20000,
        "cost": 0.0006,
        "tasks_count": 1,
        "tasks_error": 0,
        "tasks": [{"id": "...", "path": ["v3", "serp", ...], "data": {...}}]
    }
"""

import base64
import json
import re
from typing import Any

from api_cache.config import ClientConfig
from api_cache.utils.logging import get_logger
from api_cache.utils.params import normalize_params

logger = get_logger(__name__)

SUCCESS_CODE = 20000

_VERSION_SEGMENT_RE = re.compile(r"^v\d+$", re.IGNORECASE)
_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


class DataForSeoProvider:
    """Basic auth provider for the DataForSEO task API."""

    def __init__(self, login: str | None, password: str | None) -> None:
        self._login = login or ""
        self._password = password or ""

    @classmethod
    def from_config(cls, config: ClientConfig) -> "DataForSeoProvider":
        return cls(login=config.login, password=config.password)

    def auth_headers(self) -> dict[str, str]:
        credentials = base64.b64encode(f"{self._login}:{self._password}".encode()).decode()
        return {
            "Authorization": f"Basic {credentials}",
            "Content-Type": "application/json",
        }

    def auth_params(self) -> dict[str, Any]:
        return {}

    def is_cacheable(self, status_code: int, body: bytes) -> bool:
        """Reject invalid JSON and envelopes where every task failed."""
        if not 200 <= status_code < 300:
            return False
        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            logger.debug("not_cacheable_invalid_json", error=str(e), body_preview=body[:100])
            return False

        if not isinstance(data, dict):
            return True

        tasks_error = data.get("tasks_error")
        tasks_count = data.get("tasks_count")
        if (
            isinstance(tasks_error, int)
            and isinstance(tasks_count, int)
            and tasks_error >= 1
            and tasks_error == tasks_count
        ):
            logger.debug(
                "not_cacheable_all_tasks_failed",
                tasks_error=tasks_error,
                tasks_count=tasks_count,
                status_code=data.get("status_code"),
                status_message=data.get("status_message"),
            )
            return False
        return True

    def calculate_cost(self, body: bytes) -> float | None:
        """Read the top-level ``cost`` field."""
        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError):
            return None
        if not isinstance(data, dict):
            return None
        return self.cost_of(data)

    @staticmethod
    def cost_of(payload: dict[str, Any]) -> float | None:
        cost = payload.get("cost")
        if isinstance(cost, (int, float)) and not isinstance(cost, bool):
            return float(cost)
        return None

    @staticmethod
    def first_task(payload: dict[str, Any]) -> dict[str, Any] | None:
        tasks = payload.get("tasks")
        if isinstance(tasks, list) and tasks and isinstance(tasks[0], dict):
            return tasks[0]
        return None

    @classmethod
    def extract_endpoint(cls, payload: dict[str, Any]) -> str | None:
        """Rebuild the endpoint from ``tasks[0].path``.

        Version segments (``v3``) and task ids (UUIDs) are dropped, so
        ``["v3", "serp", "google", "organic", "task_get", "advanced", "<uuid>"]``
        becomes ``serp/google/organic/task_get/advanced``.
        """
        task = cls.first_task(payload)
        path = task.get("path") if task else None
        if not isinstance(path, list) or not path:
            return None

        segments = [
            str(segment)
            for segment in path
            if not _VERSION_SEGMENT_RE.match(str(segment)) and not _UUID_RE.match(str(segment))
        ]
        return "/".join(segments) or None

    @classmethod
    def extract_params(cls, payload: dict[str, Any]) -> dict[str, Any] | None:
        """Return the normalized request parameters echoed in ``tasks[0].data``."""
        task = cls.first_task(payload)
        params = task.get("data") if task else None
        if not isinstance(params, dict) or not params:
            return None
        return normalize_params(params)

    @staticmethod
    def is_success(payload: dict[str, Any]) -> bool:
        return payload.get("status_code") == SUCCESS_CODE
