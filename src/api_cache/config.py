import os
from dataclasses import dataclass, field
from functools import lru_cache

import redis
from dotenv import load_dotenv

from api_cache.errors import ConfigurationError

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int | None) -> int | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _env_list(name: str) -> tuple[str, ...]:
    value = os.getenv(name, "")
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class ClientConfig:
    """Per-client settings for one third-party API.

    Attributes:
        name: Client identifier (also the storage namespace)
        base_url: Base URL for outbound requests
        api_key: API key used by bearer or query-param auth
        login: Login for basic auth providers
        password: Password for basic auth providers
        version: Protocol version, appended to cache keys when set
        compression_enabled: Store bodies and headers compressed
        rate_limit_max_attempts: Attempts per window (None or negative = unlimited)
        rate_limit_decay_seconds: Length of the rate limit window
        whitelisted_ips: Source addresses allowed to call webhook receivers
        postback_url: Callback URL for push delivery of task results
        pingback_url: Callback URL for completion notifications
        timeout: Outbound request timeout in seconds
        provider: Provider kind (``bearer``, ``query_key`` or ``dataforseo``)
    """

    name: str
    base_url: str = ""
    api_key: str | None = None
    login: str | None = None
    password: str | None = None
    version: str | None = None
    compression_enabled: bool = False
    rate_limit_max_attempts: int | None = 1000
    rate_limit_decay_seconds: int = 60
    whitelisted_ips: tuple[str, ...] = ()
    postback_url: str | None = None
    pingback_url: str | None = None
    timeout: float = 30.0
    provider: str = "bearer"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.rate_limit_decay_seconds <= 0:
            raise ValueError(
                f"rate_limit_decay_seconds must be positive for client '{self.name}', "
                f"got {self.rate_limit_decay_seconds}"
            )
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive for client '{self.name}'")

    @property
    def is_unlimited(self) -> bool:
        """Check if the client has no rate limit configured."""
        return self.rate_limit_max_attempts is None or self.rate_limit_max_attempts < 0

    @classmethod
    def from_env(cls, name: str) -> "ClientConfig":
        """Build a client config from ``<NAME>_*`` environment variables.

        Args:
            name: Client identifier, e.g. ``dataforseo`` reads ``DATAFORSEO_BASE_URL``

        Returns:
            ClientConfig populated from the environment
        """
        prefix = name.upper().replace("-", "_")
        return cls(
            name=name,
            base_url=os.getenv(f"{prefix}_BASE_URL", ""),
            api_key=os.getenv(f"{prefix}_API_KEY"),
            login=os.getenv(f"{prefix}_LOGIN"),
            password=os.getenv(f"{prefix}_PASSWORD"),
            version=os.getenv(f"{prefix}_VERSION") or None,
            compression_enabled=_env_bool(f"{prefix}_COMPRESSION_ENABLED"),
            rate_limit_max_attempts=_env_int(f"{prefix}_RATE_LIMIT_MAX_ATTEMPTS", 1000),
            rate_limit_decay_seconds=_env_int(f"{prefix}_RATE_LIMIT_DECAY_SECONDS", 60) or 60,
            whitelisted_ips=_env_list(f"{prefix}_WHITELISTED_IPS"),
            postback_url=os.getenv(f"{prefix}_POSTBACK_URL") or None,
            pingback_url=os.getenv(f"{prefix}_PINGBACK_URL") or None,
            timeout=float(os.getenv(f"{prefix}_TIMEOUT", "30")),
            provider=os.getenv(f"{prefix}_PROVIDER", "bearer").strip().lower(),
        )


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = field(default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379"))
    redis_password: str | None = field(default_factory=lambda: os.getenv("REDIS_PASSWORD"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_json: bool = field(default_factory=lambda: _env_bool("LOG_JSON"))
    error_logging_enabled: bool = field(default_factory=lambda: _env_bool("ERROR_LOGGING_ENABLED", "true"))

    # API
    api_host: str = field(default_factory=lambda: os.getenv("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=lambda: int(os.getenv("API_PORT", "8000")))
    api_reload: bool = field(default_factory=lambda: _env_bool("API_RELOAD"))

    # Clients
    clients: dict[str, ClientConfig] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be a standard level name, got {self.log_level}")

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings and every client listed in ``API_CACHE_CLIENTS``."""
        names = _env_list("API_CACHE_CLIENTS") or ("demo",)
        return cls(clients={name: ClientConfig.from_env(name) for name in names})

    def client(self, name: str) -> ClientConfig:
        """Get the configuration of a client.

        Args:
            name: Client identifier

        Returns:
            The client's configuration

        Raises:
            ConfigurationError: If the client is not configured
        """
        try:
            return self.clients[name]
        except KeyError:
            raise ConfigurationError(f"Client '{name}' is not configured", client=name) from None

    def with_client(self, config: ClientConfig) -> "Settings":
        """Return a copy of these settings with one client added or replaced."""
        clients = dict(self.clients)
        clients[config.name] = config
        return Settings(
            redis_url=self.redis_url,
            redis_password=self.redis_password,
            log_level=self.log_level,
            log_json=self.log_json,
            error_logging_enabled=self.error_logging_enabled,
            api_host=self.api_host,
            api_port=self.api_port,
            api_reload=self.api_reload,
            clients=clients,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


def get_redis_client(settings: Settings) -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=False,
    )
