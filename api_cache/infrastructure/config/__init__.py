"""Configuration de l'infrastructure (pydantic-settings)."""

from api_cache.infrastructure.config.settings import (
    ApiCacheSettings,
    ClientSettings,
    ErrorLoggingSettings,
    KeywordResearchSettings,
    get_settings,
)

__all__ = [
    "ApiCacheSettings",
    "ClientSettings",
    "ErrorLoggingSettings",
    "KeywordResearchSettings",
    "get_settings",
]
