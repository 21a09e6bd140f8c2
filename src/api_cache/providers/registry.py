"""Provider selection by client configuration."""

from api_cache.config import ClientConfig
from api_cache.errors import ConfigurationError
from api_cache.protocols import Provider

from .dataforseo import DataForSeoProvider
from .default import BearerProvider, QueryKeyProvider

PROVIDER_KINDS = ("bearer", "query_key", "dataforseo")


def provider_for(config: ClientConfig) -> Provider:
    """Build the provider named by ``config.provider``.

    Raises:
        ConfigurationError: If the provider kind is unknown
    """
    if config.provider == "bearer":
        return BearerProvider.from_config(config)
    if config.provider == "query_key":
        return QueryKeyProvider(api_key=config.api_key)
    if config.provider == "dataforseo":
        return DataForSeoProvider.from_config(config)
    raise ConfigurationError(
        f"Unknown provider '{config.provider}', expected one of {', '.join(PROVIDER_KINDS)}",
        client=config.name,
    )
