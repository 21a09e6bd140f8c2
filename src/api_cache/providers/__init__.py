"""Per-provider capabilities composed into the request client.

Each provider implements the ``Provider`` protocol: auth headers, auth
query parameters, a cacheability predicate and cost extraction.
"""

from .dataforseo import SUCCESS_CODE, DataForSeoProvider
from .default import BearerProvider, QueryKeyProvider
from .registry import PROVIDER_KINDS, provider_for

__all__ = [
    "BearerProvider",
    "DataForSeoProvider",
    "PROVIDER_KINDS",
    "QueryKeyProvider",
    "SUCCESS_CODE",
    "provider_for",
]
