"""Utility modules for api-cache."""

from .logging import configure_logging, get_logger
from .params import canonical_json, normalize_params, summarize_params, validate_identifier

__all__ = [
    "canonical_json",
    "configure_logging",
    "get_logger",
    "normalize_params",
    "summarize_params",
    "validate_identifier",
]
