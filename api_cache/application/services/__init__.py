"""Services applicatifs."""

from api_cache.application.services.api_cache_manager import ApiCacheManager

__all__ = ["ApiCacheManager"]
