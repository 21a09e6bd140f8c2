"""Deterministic cache key derivation."""

import hashlib
from collections.abc import Mapping
from typing import Any

from api_cache.utils.logging import get_logger
from api_cache.utils.params import canonical_json, validate_identifier

logger = get_logger(__name__)


def generate_cache_key(
    client: str,
    endpoint: str,
    params: Mapping[str, Any] | None = None,
    method: str = "GET",
    version: str | None = None,
) -> str:
    """Generate the cache key for a request.

    Format: ``{client}.{method}.{endpoint}.{sha1(params)}[.{version}]``

    The key depends only on its inputs: parameters are normalized and
    serialized to canonical JSON before hashing, the method is lowercased
    and leading slashes are stripped from the endpoint.

    Args:
        client: API client identifier
        endpoint: API endpoint path
        params: Request parameters (``None`` or empty hashes as ``{}``)
        method: HTTP method
        version: API version, appended when not None

    Returns:
        The cache key

    Raises:
        InvalidIdentifierError: If the client name is not a valid identifier
        ValueError: If the parameters cannot be normalized
    """
    validate_identifier(client)

    params_hash = hashlib.sha1(canonical_json(params).encode("utf-8")).hexdigest()

    components = [client, method.lower(), endpoint.lstrip("/"), params_hash]
    if version is not None:
        components.append(version)

    key = ".".join(components)
    logger.debug("cache_key_generated", client=client, key=key)
    return key
