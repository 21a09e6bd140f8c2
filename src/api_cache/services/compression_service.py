"""Compression service for stored request/response payloads.

Bodies and headers are compressed with zlib (the same framing PHP's
``gzcompress`` produces) when a client has compression enabled. Webhook
payloads may arrive gzip- or zlib-framed; ``decode_payload`` detects the
framing from the magic bytes.
"""

import gzip
import zlib

from api_cache.config import ClientConfig
from api_cache.errors import CompressionError
from api_cache.utils.logging import get_logger

logger = get_logger(__name__)

_GZIP_MAGIC = b"\x1f\x8b"


def _looks_like_zlib(data: bytes) -> bool:
    if len(data) < 2:
        return False
    cmf, flg = data[0], data[1]
    return cmf & 0x0F == 8 and (cmf << 8 | flg) % 31 == 0


class CompressionService:
    """Reversible byte-level compression.

    ``decompress(compress(x)) == x`` for every byte string, including ``b""``.
    Corrupt input raises :class:`CompressionError`; it is never returned as-is
    unless the caller explicitly opts into the legacy plain-bytes fallback.

    Example:
        ```python
        service = CompressionService()
        packed = service.compress(b'{"ok": true}')
        assert service.decompress(packed) == b'{"ok": true}'
        ```
    """

    def __init__(self, level: int = 6) -> None:
        """Initialize the compression service.

        Args:
            level: zlib compression level (0-9).
        """
        if not 0 <= level <= 9:
            raise ValueError("Compression level must be between 0 and 9")
        self._level = level

    @staticmethod
    def is_enabled(client: ClientConfig) -> bool:
        """Check if a client stores its payloads compressed."""
        return client.compression_enabled

    def compress(self, data: bytes) -> bytes:
        """Compress raw bytes.

        Args:
            data: Raw bytes to compress

        Returns:
            zlib-framed compressed bytes
        """
        compressed = zlib.compress(data, self._level)
        logger.debug(
            "data_compressed",
            original_size=len(data),
            compressed_size=len(compressed),
        )
        return compressed

    def decompress(self, data: bytes, legacy_plain_fallback: bool = False) -> bytes:
        """Decompress bytes produced by :meth:`compress`.

        Args:
            data: Compressed bytes
            legacy_plain_fallback: Return ``data`` unchanged when it is not
                zlib-framed (rows written before compression was enabled)

        Returns:
            The original bytes

        Raises:
            CompressionError: If the data is corrupt or not compressed and
                              the legacy fallback was not requested
        """
        try:
            decompressed = zlib.decompress(data)
        except zlib.error as e:
            if legacy_plain_fallback and not _looks_like_zlib(data):
                logger.warning("decompress_legacy_plain_fallback", data_length=len(data))
                return data
            logger.error("decompress_failed", data_length=len(data), error=str(e))
            raise CompressionError(f"Failed to decompress data: {e}") from e

        logger.debug(
            "data_decompressed",
            compressed_size=len(data),
            original_size=len(decompressed),
        )
        return decompressed

    def decode_payload(self, data: bytes) -> bytes:
        """Unwrap an inbound payload that may be gzip- or zlib-compressed.

        Payloads without a recognised compression header are returned
        unchanged. A recognised header with a corrupt stream raises.

        Raises:
            CompressionError: If the payload has a compression header but
                              cannot be decompressed
        """
        if data.startswith(_GZIP_MAGIC):
            try:
                return gzip.decompress(data)
            except (OSError, EOFError, zlib.error) as e:
                raise CompressionError(f"Failed to decompress gzip payload: {e}") from e
        if _looks_like_zlib(data):
            try:
                return zlib.decompress(data)
            except zlib.error:
                # Plain text can start with a valid-looking zlib header ("x^")
                return data
        return data
