"""Request parameter helpers.

``normalize_params`` canonicalizes a parameter bag so that two requests a
human would call identical serialize to the same bytes:

- mapping keys are sorted and stringified
- keys whose value is ``None`` are dropped
- ``True``/``False``, ``"true"``/``"false"`` become ``1``/``0``
- numeric strings that round-trip (``"1"``, ``"2.5"``) become numbers,
  ``"007"`` stays a string
- integral floats become ints
- collections made only of scalars are sorted; collections holding
  mappings or nested collections keep their order

The function is idempotent.
"""

import json
import re
from collections.abc import Mapping
from typing import Any

from api_cache.errors import InvalidIdentifierError

MAX_DEPTH = 20

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_INT_RE = re.compile(r"^-?(0|[1-9][0-9]*)$")
_FLOAT_RE = re.compile(r"^-?(0|[1-9][0-9]*)\.[0-9]+$")

_SCALARS = (str, int, float, bool, type(None))


def validate_identifier(value: str) -> None:
    """Validate that a value only contains letters, digits, hyphens and underscores.

    Raises:
        InvalidIdentifierError: If the value is empty or contains other characters
    """
    if not isinstance(value, str) or not _IDENTIFIER_RE.match(value):
        raise InvalidIdentifierError(f"Invalid identifier: {value!r}")


def _canonical_scalar(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        return value
    if isinstance(value, str):
        lowered = value.lower()
        if lowered == "true":
            return 1
        if lowered == "false":
            return 0
        if _INT_RE.match(value):
            return int(value)
        if _FLOAT_RE.match(value):
            number = float(value)
            if number.is_integer():
                return int(number)
            # "1.50" and "1.5" are the same number
            return number
    return value


def _sort_key(value: Any) -> tuple[int, str]:
    if value is None:
        return (0, "")
    if isinstance(value, (int, float)):
        return (1, repr(value))
    return (2, value)


def _normalize(value: Any, depth: int) -> Any:
    if isinstance(value, (Mapping, list, tuple, set, frozenset)) and depth > MAX_DEPTH:
        raise ValueError(f"Parameters nested deeper than {MAX_DEPTH} levels")

    if isinstance(value, Mapping):
        normalized = {}
        for key in value:
            item = value[key]
            if item is None:
                continue
            normalized[str(_canonical_scalar(key)) if not isinstance(key, str) else key] = _normalize(
                item, depth + 1
            )
        return {key: normalized[key] for key in sorted(normalized)}

    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_normalize(item, depth + 1) for item in value]
        if all(isinstance(item, _SCALARS) for item in items):
            return sorted(items, key=_sort_key)
        return items

    if isinstance(value, _SCALARS):
        return _canonical_scalar(value)

    raise ValueError(f"Unsupported parameter type: {type(value).__name__}")


def normalize_params(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """Canonicalize a parameter bag for hashing.

    Args:
        params: Request parameters. ``None`` is treated as ``{}``.

    Returns:
        A new dict in canonical form

    Raises:
        ValueError: If a value is not a scalar, mapping or collection, or if
                    nesting exceeds ``MAX_DEPTH``
    """
    if params is None:
        return {}
    if not isinstance(params, Mapping):
        raise ValueError(f"Parameters must be a mapping, got {type(params).__name__}")
    return _normalize(params, 1)


def canonical_json(params: Mapping[str, Any] | None) -> str:
    """Serialize normalized parameters to compact, key-sorted JSON."""
    return json.dumps(
        normalize_params(params),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def summarize_params(params: Mapping[str, Any] | None, character_limit: int = 100, pretty_print: bool = False) -> str:
    """Build a short JSON summary of request parameters for storage.

    String values longer than ``character_limit`` are truncated and suffixed
    with ``...``. Nested mappings and lists are serialized first and then
    truncated the same way.

    Args:
        params: Request parameters
        character_limit: Maximum characters kept per value
        pretty_print: Indent the resulting JSON

    Returns:
        JSON string summary (``[]`` for empty parameters)
    """
    normalized = normalize_params(params)
    if not normalized:
        return "[]"

    summary: dict[str, Any] = {}
    for key, value in normalized.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        if isinstance(value, str) and len(value) > character_limit:
            value = value[:character_limit] + "..."
        summary[key] = value

    return json.dumps(summary, ensure_ascii=False, indent=2 if pretty_print else None)
