"""
Container d'injection de dependances.

Ce module fournit un conteneur qui initialise et connecte
tous les composants de l'architecture hexagonale: base, cache,
limitation de debit, journal des erreurs, clients et ingestion.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from api_cache.application.services import ApiCacheManager
from api_cache.application.use_cases import RequestOrchestrator
from api_cache.infrastructure.adapters import MemoryRateLimitStorage, SqlRateLimitStorage
from api_cache.infrastructure.compression import CompressionService
from api_cache.infrastructure.config import ApiCacheSettings, ClientSettings, get_settings
from api_cache.infrastructure.external_services import (
    BaseApiClient,
    DataForSeoApiClient,
    DemoApiClient,
)
from api_cache.infrastructure.ingestion import KeywordResearchProcessor
from api_cache.infrastructure.logging import get_logger
from api_cache.infrastructure.persistence import DatabaseManager
from api_cache.infrastructure.persistence.repositories import CacheRepository, ErrorLogger
from api_cache.infrastructure.rate_limiting import RateLimitConfig, RateLimiter

logger = get_logger(__name__)


def _build_demo(name: str, cs: ClientSettings, **kwargs) -> BaseApiClient:
    return DemoApiClient(cs.base_url, api_key=cs.api_key, version=cs.version, **kwargs)


def _build_dataforseo(name: str, cs: ClientSettings, **kwargs) -> BaseApiClient:
    return DataForSeoApiClient(
        cs.base_url,
        login=cs.login,
        password=cs.password,
        version=cs.version,
        **kwargs,
    )


def _build_generic(name: str, cs: ClientSettings, **kwargs) -> BaseApiClient:
    return BaseApiClient(name, cs.base_url, api_key=cs.api_key, version=cs.version, **kwargs)


# Fabriques des clients specialises; les autres utilisent BaseApiClient
CLIENT_FACTORIES: Dict[str, Callable[..., BaseApiClient]] = {
    "demo": _build_demo,
    "dataforseo": _build_dataforseo,
}


@dataclass
class Container:
    """
    Conteneur d'injection de dependances.

    Example:
        >>> container = Container.create()
        >>> demo = container.get_client("demo")
        >>> result = demo.predictions("weather")
        >>> result.is_cached
        False
    """

    settings: ApiCacheSettings
    db: DatabaseManager
    rate_limiter: RateLimiter
    cache_repository: CacheRepository
    error_logger: ErrorLogger
    cache_manager: ApiCacheManager
    keyword_research_processor: KeywordResearchProcessor

    clients: Dict[str, BaseApiClient] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        settings: Optional[ApiCacheSettings] = None,
        db_manager: Optional[DatabaseManager] = None,
        session: Any = None,
    ) -> "Container":
        """
        Factory pour creer un conteneur avec toutes les dependances.

        Args:
            settings: Configuration (defaut: get_settings()).
            db_manager: DatabaseManager (defaut: construit depuis settings.database_url).
            session: Session requests partagee par les clients (optionnel, pour tests).

        Returns:
            Container configure avec tous les composants.
        """
        settings = settings or get_settings()
        db = db_manager or DatabaseManager(settings.database_url)
        db.create_tables()

        compression = {
            name: CompressionService(enabled=cs.compression_enabled, min_size=cs.compression_min_size)
            for name, cs in settings.apis.items()
        }
        limits = {
            name: RateLimitConfig(cs.rate_limit_max_attempts, cs.rate_limit_decay_seconds)
            for name, cs in settings.apis.items()
        }
        default_settings = settings.get_client_settings("default")

        if settings.rate_limit_storage == "database":
            rate_limit_storage = SqlRateLimitStorage(db)
        else:
            rate_limit_storage = MemoryRateLimitStorage()
        rate_limiter = RateLimiter(
            rate_limit_storage,
            limits=limits,
            default_limit=RateLimitConfig(
                default_settings.rate_limit_max_attempts,
                default_settings.rate_limit_decay_seconds,
            ),
        )
        cache_repository = CacheRepository(
            db,
            compression=compression,
            default_compression=compression.get("default"),
        )
        error_logger = ErrorLogger(db, settings.error_logging)
        cache_manager = ApiCacheManager(
            cache_repository,
            rate_limiter,
            default_ttls={name: cs.cache_ttl for name, cs in settings.apis.items()},
        )

        kr = settings.keyword_research
        keyword_research_processor = KeywordResearchProcessor(
            db,
            cache_repository,
            skip_sandbox=kr.skip_sandbox,
            update_if_newer=kr.update_if_newer,
            skip_keyword_info_monthly_searches=kr.skip_keyword_info_monthly_searches,
            skip_keyword_info_normalized_with_bing_monthly_searches=(
                kr.skip_keyword_info_normalized_with_bing_monthly_searches
            ),
            skip_keyword_info_normalized_with_clickstream_monthly_searches=(
                kr.skip_keyword_info_normalized_with_clickstream_monthly_searches
            ),
            skip_clickstream_keyword_info_monthly_searches=kr.skip_clickstream_keyword_info_monthly_searches,
            sandbox_markers=kr.sandbox_markers,
        )

        container = cls(
            settings=settings,
            db=db,
            rate_limiter=rate_limiter,
            cache_repository=cache_repository,
            error_logger=error_logger,
            cache_manager=cache_manager,
            keyword_research_processor=keyword_research_processor,
        )

        for name in settings.apis:
            container.clients[name] = container.build_client(name, session=session)

        logger.info("container_created", clients=sorted(container.clients))
        return container

    def build_client(self, name: str, session: Any = None) -> BaseApiClient:
        """
        Construit un client et lui attache son orchestrateur.

        Les politiques should_cache / calculate_cost du client sont passees
        a l'orchestrateur.
        """
        cs = self.settings.get_client_settings(name)
        factory = CLIENT_FACTORIES.get(name, _build_generic)
        client = factory(name, cs, session=session, timeout=cs.timeout)

        client.orchestrator = RequestOrchestrator(
            client,
            self.cache_manager,
            self.error_logger,
            should_cache=client.should_cache,
            calculate_cost=client.calculate_cost,
            use_cache=cs.use_cache,
            cache_ttl=cs.cache_ttl,
        )
        return client

    def get_client(self, name: str) -> BaseApiClient:
        """Retourne le client configure (construit a la demande sinon)."""
        if name not in self.clients:
            self.clients[name] = self.build_client(name)
        return self.clients[name]

    def close(self) -> None:
        for client in self.clients.values():
            client.close()
        self.db.dispose()


# Singleton global
_container: Optional[Container] = None


def get_container(settings: Optional[ApiCacheSettings] = None) -> Container:
    """
    Recupere ou cree le conteneur global.

    Args:
        settings: Configuration (utilisee si pas de conteneur existant).

    Returns:
        Instance du conteneur.
    """
    global _container
    if _container is None:
        _container = Container.create(settings=settings)
    return _container


def reset_container() -> None:
    """Reset le conteneur global (utile pour les tests)."""
    global _container
    if _container is not None:
        _container.close()
    _container = None
