"""Outbound API clients."""

from .base_client import ApiClient

__all__ = ["ApiClient"]
