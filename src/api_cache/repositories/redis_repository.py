"""Redis implementation of CacheStore.

Each client owns one logical table, a key namespace named after
``table_name_for(client)``:

- ``{table}:entry:{cache_key}`` - one hash per CacheEntry
- ``{table}:attributes`` - hash mapping attributes to the latest cache key

Every write replaces the entry hash and its index row inside a single
MULTI/EXEC transaction, so readers see either the previous record or the
new one, never a mix.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any

import redis

from api_cache.config import Settings, get_redis_client
from api_cache.entities import CacheEntryEntity
from api_cache.errors import InvalidIdentifierError
from api_cache.services.compression_service import CompressionService
from api_cache.utils.logging import get_logger
from api_cache.utils.params import validate_identifier

logger = get_logger(__name__)

TABLE_PREFIX = "api_cache_"
TABLE_SUFFIX = "_responses"
COMPRESSED_SUFFIX = "_compressed"
MAX_TABLE_NAME_LENGTH = 64

# Hash fields holding payloads that are compressed for compressed clients
_HEADER_FIELDS = ("request_headers", "response_headers")
_BODY_FIELDS = ("request_body", "response_body")
_TEXT_FIELDS = (
    "key",
    "client",
    "endpoint",
    "method",
    "version",
    "base_url",
    "full_url",
    "request_params_summary",
    "attributes",
    "processed_status",
)
_INT_FIELDS = ("response_status_code", "response_size", "credits")
_FLOAT_FIELDS = ("response_time", "cost")
_TIME_FIELDS = ("created_at", "updated_at", "processed_at")

# Fields carried over from the stored hash when an entry is replaced
_PRESERVED_FIELDS = ("created_at", "processed_at", "processed_status")


class RedisCacheRepository:
    """Redis implementation of the CacheStore protocol.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        settings: Settings,
        redis_client: redis.Redis | None = None,
        compression: CompressionService | None = None,
    ) -> None:
        """Initialize the Redis cache repository.

        Args:
            settings: Application settings holding per-client configuration.
            redis_client: Redis client instance. If None, creates one from settings.
            compression: Compression service. If None, uses the default level.
        """
        self._settings = settings
        self._client = redis_client or get_redis_client(settings)
        self._compression = compression or CompressionService()

    @classmethod
    def create(
        cls,
        settings: Settings,
        redis_client: redis.Redis | None = None,
    ) -> "RedisCacheRepository":
        """Factory method to create RedisCacheRepository with defaults.

        Args:
            settings: Application settings.
            redis_client: Redis client. If None, connects to ``settings.redis_url``.

        Returns:
            Configured RedisCacheRepository
        """
        return cls(settings=settings, redis_client=redis_client)

    def table_name_for(self, client: str) -> str:
        """Return the table name for a client.

        ``api_cache_{client}_responses``, plus ``_compressed`` when the client
        stores compressed payloads. Hyphens become underscores, runs of
        underscores collapse and the client part is truncated so the name
        fits in 64 characters.

        Raises:
            InvalidIdentifierError: If the client name is invalid or sanitizes to nothing
            ConfigurationError: If the client is not configured
        """
        validate_identifier(client)
        config = self._settings.client(client)

        sanitized = client.replace("-", "_")
        max_length = MAX_TABLE_NAME_LENGTH - len(TABLE_PREFIX + TABLE_SUFFIX + COMPRESSED_SUFFIX)
        sanitized = sanitized[:max_length]

        suffix = COMPRESSED_SUFFIX if self._compression.is_enabled(config) else ""
        table_name = re.sub(r"_+", "_", f"{TABLE_PREFIX}{sanitized}{TABLE_SUFFIX}{suffix}")

        if table_name in (f"{TABLE_PREFIX}responses", f"{TABLE_PREFIX}responses{COMPRESSED_SUFFIX}"):
            logger.error("table_name_sanitization_failed", client=client, table_name=table_name)
            raise InvalidIdentifierError(f"Sanitization error for client: {client}", client=client)

        return table_name

    def _entry_key(self, table: str, key: str) -> str:
        return f"{table}:entry:{key}"

    def _attributes_key(self, table: str) -> str:
        return f"{table}:attributes"

    def _encode(self, compressed: bool, data: bytes) -> bytes:
        return self._compression.compress(data) if compressed else data

    def _decode(self, compressed: bool, data: bytes) -> bytes:
        return self._compression.decompress(data) if compressed else data

    def _to_mapping(self, entry: CacheEntryEntity, compressed: bool) -> dict[str, Any]:
        mapping: dict[str, Any] = {}
        for name in _TEXT_FIELDS + _INT_FIELDS + _FLOAT_FIELDS:
            value = getattr(entry, name)
            if value is not None:
                mapping[name] = str(value)
        for name in _TIME_FIELDS:
            value = getattr(entry, name)
            if value is not None:
                mapping[name] = value.isoformat()
        for name in _HEADER_FIELDS:
            value = getattr(entry, name)
            if value is not None:
                mapping[name] = self._encode(compressed, json.dumps(value).encode("utf-8"))
        for name in _BODY_FIELDS:
            value = getattr(entry, name)
            if value is not None:
                mapping[name] = self._encode(compressed, value)
        mapping["compressed"] = "1" if compressed else "0"
        return mapping

    def _from_mapping(self, raw: dict[bytes, bytes], client: str) -> CacheEntryEntity:
        data = {name.decode(): value for name, value in raw.items()}
        compressed = data.get("compressed") == b"1"

        values: dict[str, Any] = {}
        for name in _TEXT_FIELDS:
            if name in data:
                values[name] = data[name].decode("utf-8")
        for name in _INT_FIELDS:
            if name in data:
                values[name] = int(data[name])
        for name in _FLOAT_FIELDS:
            if name in data:
                values[name] = float(data[name])
        for name in _TIME_FIELDS:
            if name in data:
                values[name] = datetime.fromisoformat(data[name].decode())
        for name in _HEADER_FIELDS:
            if name in data:
                decoded = json.loads(self._decode(compressed, data[name]))
                if not isinstance(decoded, dict):
                    raise ValueError(f"Stored {name} must decode to a mapping")
                values[name] = decoded
        for name in _BODY_FIELDS:
            if name in data:
                values[name] = self._decode(compressed, data[name])

        values.setdefault("client", client)
        values.setdefault("response_body", b"")
        return CacheEntryEntity(**values)

    def find(self, client: str, key: str) -> CacheEntryEntity | None:
        """Look up an entry by cache key.

        Args:
            client: API client name
            key: The cache key

        Returns:
            The decoded entry, or None if absent

        Raises:
            CompressionError: If a stored payload is corrupt
        """
        table = self.table_name_for(client)
        raw: dict[bytes, bytes] = self._client.hgetall(self._entry_key(table, key))  # type: ignore[assignment]

        if not raw:
            logger.debug("cache_miss", client=client, key=key, table=table)
            return None

        logger.debug("cache_hit", client=client, key=key, table=table)
        return self._from_mapping(raw, client)

    def store(self, entry: CacheEntryEntity) -> None:
        """Insert or replace an entry.

        The original ``created_at`` survives replacement, and so do
        ``processed_at`` and ``processed_status``, which downstream
        consumers set on the stored hash. When the attributes change, the
        index row of the previous attributes is dropped if it still points
        at this key. The entry hash and the attributes index are written in
        one transaction.

        Args:
            entry: The entry to persist

        Raises:
            ValueError: If the entry has no response body
        """
        if not entry.response_body:
            logger.error("store_missing_response_body", client=entry.client, key=entry.key)
            raise ValueError("Missing required field, response_body is required")

        table = self.table_name_for(entry.client)
        config = self._settings.client(entry.client)
        compressed = self._compression.is_enabled(config)
        entry_key = self._entry_key(table, entry.key)
        attributes_key = self._attributes_key(table)
        now = datetime.now(timezone.utc)

        def write(pipe: redis.client.Pipeline) -> None:
            existing = dict(zip(_PRESERVED_FIELDS, pipe.hmget(entry_key, list(_PRESERVED_FIELDS))))
            previous_attributes = pipe.hget(entry_key, "attributes")
            stale_index = (
                previous_attributes is not None
                and previous_attributes.decode("utf-8") != entry.attributes
                and pipe.hget(attributes_key, previous_attributes) == entry.key.encode("utf-8")
            )

            mapping = self._to_mapping(entry, compressed)
            for name in ("processed_at", "processed_status"):
                if existing[name] is not None and getattr(entry, name) is None:
                    mapping[name] = existing[name]
            mapping["created_at"] = existing["created_at"] or now.isoformat()
            mapping["updated_at"] = now.isoformat()
            mapping["response_size"] = str(len(entry.response_body))

            pipe.multi()
            pipe.delete(entry_key)
            pipe.hset(entry_key, mapping=mapping)
            if stale_index:
                pipe.hdel(attributes_key, previous_attributes)
            if entry.attributes:
                pipe.hset(attributes_key, entry.attributes, entry.key)

        self._client.transaction(write, entry_key, attributes_key)

        logger.info(
            "response_stored",
            client=entry.client,
            key=entry.key,
            table=table,
            response_size=len(entry.response_body),
        )

    def find_by_attributes(self, client: str, attributes: str) -> CacheEntryEntity | None:
        """Reverse lookup of the latest entry stored with ``attributes``.

        Returns None when the indexed entry has since been rewritten with
        other attributes.
        """
        table = self.table_name_for(client)
        key = self._client.hget(self._attributes_key(table), attributes)
        if key is None:
            return None
        entry = self.find(client, key.decode())  # type: ignore[union-attr]
        if entry is None or entry.attributes != attributes:
            logger.debug("attributes_index_stale", client=client, attributes=attributes)
            return None
        return entry

    def clear_table(self, client: str) -> int:
        """Delete every entry of a client, including its index.

        Returns:
            Number of entries deleted
        """
        table = self.table_name_for(client)
        count = 0
        for key in self._client.scan_iter(match=f"{table}:entry:*"):
            count += self._client.delete(key)  # type: ignore[operator]
        self._client.delete(self._attributes_key(table))

        logger.info("table_cleared", client=client, table=table, deleted_count=count)
        return count

    def count_all(self, client: str) -> int:
        """Count stored entries of a client."""
        table = self.table_name_for(client)
        count = 0
        for _ in self._client.scan_iter(match=f"{table}:entry:*"):
            count += 1
        return count

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning("redis_health_check_failed", error=str(e))
            return False

    def get_stats(self, client: str) -> dict:
        """Get repository statistics for a client."""
        config = self._settings.client(client)
        return {
            "client": client,
            "table_name": self.table_name_for(client),
            "total_entries": self.count_all(client),
            "compression_enabled": config.compression_enabled,
        }

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
