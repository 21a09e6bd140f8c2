"""Per-client attempt counting over a decaying window, backed by Redis.

Each client has one counter at ``api-cache:rate-limit:{client}``. The first
attempt of a window creates the counter with a TTL of the client's decay
seconds; later attempts increment it. When the key expires the window
rolls over. Counters live in Redis, so every worker and process shares
them.

Increments are atomic, so no attempt is ever lost. ``allow`` and
``consume`` are separate calls around the outbound request, though, so
workers that check at the same moment can all be admitted and push a
window past its limit by up to one call each. The excess is recorded and
the window stays closed until it rolls over.
"""

import sys

import redis

from api_cache.config import Settings
from api_cache.utils.logging import get_logger
from api_cache.utils.params import validate_identifier

logger = get_logger(__name__)

KEY_PREFIX = "api-cache:rate-limit"


class RateLimitService:
    """Redis implementation of the RateLimiter protocol.

    Example:
        ```python
        limiter = RateLimitService(settings, redis_client)
        if limiter.allow("demo"):
            limiter.consume("demo", amount=3)
        ```
    """

    def __init__(self, settings: Settings, redis_client: redis.Redis) -> None:
        """Initialize the rate limit service.

        Args:
            settings: Application settings holding per-client limits.
            redis_client: Redis client shared with the cache repository.
        """
        self._settings = settings
        self._client = redis_client

    def _key(self, client: str) -> str:
        validate_identifier(client)
        return f"{KEY_PREFIX}:{client}"

    def _attempts(self, client: str) -> int:
        value = self._client.get(self._key(client))
        return int(value) if value is not None else 0  # type: ignore[arg-type]

    def allow(self, client: str) -> bool:
        """Check if the client has attempts left in its current window.

        This does not reserve an attempt. Call ``consume`` once the request
        has been made.
        """
        allowed = self.remaining(client) > 0
        if not allowed:
            logger.warning("rate_limit_exceeded", client=client, available_in=self.available_in(client))
        return allowed

    def consume(self, client: str, amount: int = 1) -> None:
        """Add ``amount`` attempts to the client's current window.

        The window starts with the first attempt and is not extended by
        later ones.

        Args:
            client: API client name
            amount: Units consumed by the call

        Raises:
            ValueError: If amount is not positive
        """
        if amount < 1:
            raise ValueError(f"Rate limit amount must be positive, got {amount}")

        config = self._settings.client(client)
        key = self._key(client)

        pipe = self._client.pipeline(transaction=True)
        pipe.set(key, 0, ex=config.rate_limit_decay_seconds, nx=True)
        pipe.incrby(key, amount)
        _, attempts = pipe.execute()

        logger.debug("rate_limit_incremented", client=client, amount=amount, attempts=attempts)

    def remaining(self, client: str) -> int:
        """Attempts left in the current window.

        Unlimited clients report ``sys.maxsize``.
        """
        config = self._settings.client(client)
        if config.is_unlimited:
            return sys.maxsize
        return max(0, config.rate_limit_max_attempts - self._attempts(client))  # type: ignore[operator]

    def available_in(self, client: str) -> int:
        """Seconds until the current window resets, 0 when no window is open."""
        ttl = self._client.ttl(self._key(client))
        return max(0, int(ttl))  # type: ignore[arg-type]

    def clear(self, client: str) -> None:
        """Reset the client's window."""
        self._client.delete(self._key(client))
        logger.info("rate_limit_cleared", client=client)
