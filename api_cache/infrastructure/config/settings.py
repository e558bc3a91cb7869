"""
Settings - Configuration du proxy de cache.

Responsabilite unique:
----------------------
Charger la configuration depuis l'environnement (et .env).

Variables:
----------
- API_CACHE_DATABASE_URL: URL SQLAlchemy de la base de cache
- API_CACHE_LOG_LEVEL / API_CACHE_JSON_LOGS: Logging
- API_CACHE_RATE_LIMIT_STORAGE: "memory" (processus unique) ou "database"
  (fenetres partagees dans api_cache_rate_limits)
- API_CACHE_APIS__<CLIENT>__<CHAMP>: Configuration par client
  (ex: API_CACHE_APIS__DEMO__RATE_LIMIT_MAX_ATTEMPTS=10)
- API_CACHE_ERROR_LOGGING__ENABLED: Journal des erreurs
- API_CACHE_KEYWORD_RESEARCH__SKIP_SANDBOX: Pipeline d'ingestion
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseModel):
    """Configuration d'un client API."""

    base_url: str = ""
    api_key: Optional[str] = None
    version: Optional[str] = None

    # Identifiants Basic Auth (DataForSEO)
    login: Optional[str] = None
    password: Optional[str] = None

    cache_ttl: Optional[int] = None
    use_cache: bool = True
    compression_enabled: bool = False
    compression_min_size: int = 0

    # None ou negatif = illimite
    rate_limit_max_attempts: Optional[int] = 1000
    rate_limit_decay_seconds: int = 60

    default_endpoint: Optional[str] = None
    timeout: int = 30


def _default_apis() -> dict[str, ClientSettings]:
    return {
        "default": ClientSettings(
            base_url="http://localhost:8000/demo-api-server.php/v1",
            api_key="demo-api-key",
            version="v1",
        ),
        "demo": ClientSettings(
            base_url="http://localhost:8000/demo-api-server.php/v1",
            api_key="demo-api-key",
            version="v1",
            default_endpoint="predictions",
        ),
        "dataforseo": ClientSettings(
            base_url="https://api.dataforseo.com/v3",
            version="v3",
            rate_limit_max_attempts=2000,
            rate_limit_decay_seconds=60,
            compression_enabled=False,
        ),
    }


class ErrorLoggingSettings(BaseModel):
    """Configuration du journal des erreurs (table api_cache_errors)."""

    enabled: bool = True
    log_events: dict[str, bool] = Field(
        default_factory=lambda: {
            "http_error": True,
            "cache_rejected": True,
        }
    )
    levels: dict[str, str] = Field(
        default_factory=lambda: {
            "http_error": "error",
            "cache_rejected": "error",
        }
    )


class KeywordResearchSettings(BaseModel):
    """Configuration du pipeline d'ingestion keyword research."""

    skip_sandbox: bool = True
    update_if_newer: bool = True
    skip_keyword_info_monthly_searches: bool = False
    skip_keyword_info_normalized_with_bing_monthly_searches: bool = False
    skip_keyword_info_normalized_with_clickstream_monthly_searches: bool = False
    skip_clickstream_keyword_info_monthly_searches: bool = False
    batch_size: int = 100
    sandbox_markers: list[str] = Field(
        default_factory=lambda: ["https://sandbox.", "http://sandbox."]
    )


class ApiCacheSettings(BaseSettings):
    """
    Configuration globale.

    Chargee depuis les variables d'environnement (prefixe API_CACHE_).
    """

    model_config = SettingsConfigDict(
        env_prefix="API_CACHE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Base de donnees
    database_url: str = "sqlite:///api_cache.db"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    # Stockage des fenetres de limitation
    rate_limit_storage: Literal["memory", "database"] = "memory"

    apis: dict[str, ClientSettings] = Field(default_factory=_default_apis)
    error_logging: ErrorLoggingSettings = Field(default_factory=ErrorLoggingSettings)
    keyword_research: KeywordResearchSettings = Field(
        default_factory=KeywordResearchSettings
    )

    def get_client_settings(self, client_name: str) -> ClientSettings:
        """Retourne la configuration d'un client, ou celle de 'default'."""
        if client_name in self.apis:
            return self.apis[client_name]
        return self.apis.get("default", ClientSettings())


@lru_cache
def get_settings() -> ApiCacheSettings:
    """Retourne la configuration (cached)."""
    return ApiCacheSettings()
