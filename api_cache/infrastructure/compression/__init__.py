"""Compression des payloads stockes en cache."""

from api_cache.infrastructure.compression.service import CompressionService

__all__ = ["CompressionService"]
