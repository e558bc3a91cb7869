"""
ApiCacheManager - Facade du cache et du limiteur de debit.

Point d'acces unique de l'orchestrateur de requetes vers le stockage des
reponses (CacheRepository) et la limitation de debit (RateLimiter).
"""

from typing import TYPE_CHECKING, Any, Optional

from api_cache.domain.entities import ApiRequest, ApiResponse, ApiResult
from api_cache.domain.services import generate_cache_key, summarize_params
from api_cache.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from api_cache.infrastructure.persistence.repositories import CacheRepository
    from api_cache.infrastructure.rate_limiting import RateLimiter

logger = get_logger(__name__)


class ApiCacheManager:
    """
    Facade cache + limitation de debit.

    Example:
        >>> manager = ApiCacheManager(repository, rate_limiter)
        >>> key = manager.generate_cache_key("demo", "predictions", {"query": "test"}, "GET", "v1")
        >>> manager.get_cached_response("demo", key) is None
        True
    """

    def __init__(
        self,
        repository: "CacheRepository",
        rate_limiter: "RateLimiter",
        default_ttls: Optional[dict[str, Optional[int]]] = None,
    ) -> None:
        """
        Args:
            repository: Stockage des reponses.
            rate_limiter: Limiteur de debit.
            default_ttls: TTL par client utilise quand store_response n'en recoit pas.
        """
        self._repository = repository
        self._rate_limiter = rate_limiter
        self._default_ttls = dict(default_ttls or {})

    # ------------------------------------------------------------------
    # Cles et tables
    # ------------------------------------------------------------------

    def generate_cache_key(
        self,
        client: str,
        endpoint: str,
        params: Any,
        method: str = "GET",
        version: Optional[str] = None,
    ) -> str:
        key = generate_cache_key(client, endpoint, params, method, version)
        logger.debug("cache_key_generated", client=client, key=key)
        return key

    def get_table_name(self, client: str) -> str:
        return self._repository.get_table_name(client)

    def clear_table(self, client: str) -> int:
        return self._repository.clear_table(client)

    # ------------------------------------------------------------------
    # Limitation de debit
    # ------------------------------------------------------------------

    def allow_request(self, client: str) -> bool:
        return self._rate_limiter.allow_request(client)

    def increment_attempts(self, client: str, amount: int = 1) -> None:
        self._rate_limiter.increment_attempts(client, amount)

    def attempt(self, client: str, amount: int = 1) -> bool:
        """Admission et decompte en une seule operation atomique."""
        return self._rate_limiter.attempt(client, amount)

    def release_attempts(self, client: str, amount: int = 1) -> None:
        self._rate_limiter.release_attempts(client, amount)

    def get_remaining_attempts(self, client: str) -> int:
        return self._rate_limiter.get_remaining_attempts(client)

    def get_available_in(self, client: str) -> int:
        return self._rate_limiter.get_available_in(client)

    def clear_rate_limit(self, client: str) -> None:
        self._rate_limiter.clear_rate_limit(client)

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def store_response(
        self,
        client: str,
        key: str,
        params: Any,
        api_result: ApiResult,
        endpoint: str,
        version: Optional[str] = None,
        ttl: Optional[int] = None,
        attributes: Optional[str] = None,
        credits: Optional[int] = None,
        attributes2: Optional[str] = None,
    ) -> None:
        """
        Stocke un resultat d'appel API.

        Args:
            client: Nom du client.
            key: Cle de cache.
            params: Parametres d'origine (resumes dans request_params_summary).
            api_result: Resultat de l'appel.
            endpoint: Endpoint appele.
            version: Version de l'API.
            ttl: Duree de vie en secondes (defaut: TTL du client).
            attributes: Etiquette libre.
            credits: Credits consommes.
            attributes2: Seconde etiquette libre.
        """
        if ttl is None:
            ttl = self._default_ttls.get(client)

        request = api_result.request
        response = api_result.response

        metadata = {
            "endpoint": endpoint,
            "version": version,
            "base_url": request.base_url,
            "full_url": request.full_url,
            "method": request.method,
            "attributes": attributes,
            "attributes2": attributes2,
            "credits": credits,
            "cost": request.cost,
            "request_params_summary": summarize_params(params if params is not None else {}),
            "request_headers": request.headers,
            "request_body": request.body,
            "response_headers": response.headers,
            "response_body": response.body,
            "response_status_code": response.status_code,
            "response_time": api_result.response_time,
        }

        self._repository.store(client, key, metadata, ttl)
        logger.debug("api_response_cached", client=client, key=key, ttl=ttl)

    def get_cached_response(self, client: str, key: str) -> Optional[ApiResult]:
        """Retourne le resultat en cache (is_cached=True), ou None."""
        cached = self._repository.get(client, key)
        if cached is None:
            return None

        return ApiResult(
            request=ApiRequest(
                base_url=cached["base_url"],
                full_url=cached["full_url"],
                method=cached["method"],
                headers=cached["request_headers"],
                body=cached["request_body"],
                attributes=cached["attributes"],
                attributes2=cached["attributes2"],
                credits=cached["credits"],
                cost=cached["cost"],
            ),
            response=ApiResponse(
                status_code=cached["response_status_code"],
                headers=cached["response_headers"] or {},
                body=cached["response_body"] or "",
            ),
            response_status_code=cached["response_status_code"],
            response_size=cached["response_size"],
            response_time=cached["response_time"],
            is_cached=True,
        )
