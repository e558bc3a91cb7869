"""
Compression Service - Compression des payloads stockes.

Responsabilite unique:
----------------------
Transformer les en-tetes et corps en octets pour les tables compressees,
et les restituer a l'identique a la lecture.

Format:
-------
Chaque payload stocke commence par un octet de marqueur:
- 0x00: payload brut (UTF-8), sous le seuil min_size
- 0x01: payload compresse zlib

Les appelants ne voient jamais que des str decodees.
"""

import zlib
from typing import Optional, Union

from api_cache.domain.exceptions import StorageError
from api_cache.infrastructure.logging import get_logger

logger = get_logger(__name__)

RAW_MARKER = b"\x00"
ZLIB_MARKER = b"\x01"


class CompressionService:
    """
    Service de compression zlib.

    Example:
        >>> service = CompressionService(enabled=True, min_size=64)
        >>> data = service.compress("x" * 1000)
        >>> service.decompress(data)
        'xxxx...'
    """

    def __init__(self, enabled: bool = False, min_size: int = 0, level: int = 6):
        """
        Initialise le service.

        Args:
            enabled: Active la compression.
            min_size: Taille minimale (octets) pour compresser un payload.
            level: Niveau zlib (1-9).
        """
        self.enabled = enabled
        self.min_size = min_size
        self.level = level

    def is_enabled(self) -> bool:
        return self.enabled

    def compress(self, data: Optional[str], context: str = "body") -> Optional[Union[str, bytes]]:
        """
        Prepare un payload pour le stockage.

        Args:
            data: Texte a stocker.
            context: Libelle pour les logs (headers, body).

        Returns:
            Le texte tel quel si la compression est desactivee, sinon les
            octets marques. None reste None.
        """
        if data is None:
            return None

        if not self.enabled:
            return data

        raw = data.encode("utf-8")
        if len(raw) < self.min_size:
            return RAW_MARKER + raw

        compressed = zlib.compress(raw, self.level)

        logger.debug(
            "payload_compressed",
            context=context,
            original_size=len(raw),
            compressed_size=len(compressed),
            ratio=round(len(compressed) / len(raw), 2) if raw else 0,
        )

        return ZLIB_MARKER + compressed

    def decompress(self, data: Optional[Union[str, bytes]], context: str = "body") -> Optional[str]:
        """
        Restitue un payload stocke.

        Raises:
            StorageError: Marqueur inconnu ou flux zlib corrompu.
        """
        if data is None:
            return None

        if isinstance(data, str):
            return data

        try:
            return self._decode(bytes(data), context)
        except (zlib.error, UnicodeDecodeError) as e:
            logger.error("payload_decompression_failed", context=context, error=str(e))
            raise StorageError(f"Decompression impossible ({context}): {e}") from e

    def _decode(self, data: bytes, context: str) -> str:
        if not self.enabled:
            return data.decode("utf-8")

        marker, payload = data[:1], data[1:]

        if marker == RAW_MARKER:
            return payload.decode("utf-8")

        if marker == ZLIB_MARKER:
            return zlib.decompress(payload).decode("utf-8")

        raise StorageError(f"Marqueur de compression inconnu ({context}): {marker!r}")
