"""
Use Case: Requete API avec cache et limitation de debit.

Etats d'une requete:
    CACHE_LOOKUP -> RATE_CHECK -> DISPATCH -> EVALUATE -> STORE -> RETURN
    DISPATCH -> ERROR (erreur journalisee puis relevee telle quelle)
"""

from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, Optional

from api_cache.application.ports.api_client import ApiClient
from api_cache.application.services.api_cache_manager import ApiCacheManager
from api_cache.domain.entities import ApiResult
from api_cache.domain.exceptions import (
    RateLimitExceededError,
    TransportError,
    UpstreamRequestError,
)
from api_cache.infrastructure.logging import bound_context, get_logger

if TYPE_CHECKING:
    from api_cache.infrastructure.persistence.repositories import ErrorLogger

logger = get_logger(__name__)

# Longueur maximale des colonnes attributes / attributes2
ATTRIBUTES_MAX_LENGTH = 255

ShouldCache = Callable[[Optional[str]], bool]
CalculateCost = Callable[[Optional[str]], Optional[float]]


def always_cache(body: Optional[str]) -> bool:
    """Politique de cache par defaut: tout corps est cacheable."""
    return True


def no_cost(body: Optional[str]) -> Optional[float]:
    """Modele de cout par defaut: aucun."""
    return None


def _trim(value: Optional[str]) -> Optional[str]:
    return value[:ATTRIBUTES_MAX_LENGTH] if value is not None else None


class RequestOrchestrator:
    """
    Use Case: Obtenir une reponse en cache ou en direct.

    Point d'entree unique des clients fournisseurs. Ne masque jamais une
    erreur: il l'observe, la journalise et la laisse remonter.

    Example:
        >>> orchestrator = RequestOrchestrator(client, manager, error_logger)
        >>> result = orchestrator.send_cached_request("predictions", {"query": "test"})
        >>> result.is_cached
        False
    """

    def __init__(
        self,
        api_client: ApiClient,
        cache_manager: ApiCacheManager,
        error_logger: Optional["ErrorLogger"] = None,
        should_cache: Optional[ShouldCache] = None,
        calculate_cost: Optional[CalculateCost] = None,
        use_cache: bool = True,
        cache_ttl: Optional[int] = None,
    ) -> None:
        """
        Initialise le use case.

        Args:
            api_client: Client fournisseur (appel reel).
            cache_manager: Facade cache + limitation.
            error_logger: Journal des erreurs (optionnel).
            should_cache: Politique "ce corps merite-t-il d'etre cache".
            calculate_cost: Cout d'une reponse.
            use_cache: Desactive l'etape de cache (pas la limitation).
            cache_ttl: Duree de vie des reponses stockees.
        """
        self._client = api_client
        self._cache_manager = cache_manager
        self._error_logger = error_logger
        self._should_cache = should_cache or always_cache
        self._calculate_cost = calculate_cost or no_cost
        self.use_cache = use_cache
        self.cache_ttl = cache_ttl

    @property
    def client_name(self) -> str:
        return self._client.client_name

    def _log_http_error(self, status_code: int, message: str, context: dict, response: Optional[str]) -> None:
        if self._error_logger is not None:
            self._error_logger.log_http_error(self.client_name, status_code, message, context, response)

    def _log_cache_rejected(self, message: str, context: dict, response: Optional[str]) -> None:
        if self._error_logger is not None:
            self._error_logger.log_cache_rejected(self.client_name, message, context, response)

    def send_cached_request(
        self,
        endpoint: str,
        params: Any = None,
        method: str = "GET",
        attributes: Optional[str] = None,
        attributes2: Optional[str] = None,
        amount: int = 1,
    ) -> ApiResult:
        """
        Execute une requete en passant par le cache.

        Args:
            endpoint: Endpoint relatif.
            params: Parametres de la requete.
            method: Methode HTTP.
            attributes: Etiquette stockee avec la reponse (tronquee a 255).
            attributes2: Seconde etiquette (tronquee a 255).
            amount: Tentatives decomptees (cout en credits de l'appel).

        Returns:
            ApiResult (is_cached=True en cas de hit).

        Raises:
            InvalidParamsError: Parametres ou nom de client invalides.
            RateLimitExceededError: Limite de debit atteinte.
            TransportError: API injoignable (journalisee).
            UpstreamRequestError: Echec de la requete (journalise).
        """
        client = self.client_name
        version = self._client.version
        params = params if params is not None else {}

        with bound_context(client=client, endpoint=endpoint, method=method):
            # CACHE_LOOKUP
            cache_key = self._cache_manager.generate_cache_key(client, endpoint, params, method, version)

            if not self.use_cache:
                logger.debug("cache_disabled")
            else:
                cached = self._cache_manager.get_cached_response(client, cache_key)
                if cached is not None:
                    logger.debug("cache_used", cache_key=cache_key)
                    return replace(cached, params=params)
                logger.debug("cache_not_used", cache_key=cache_key)

            # RATE_CHECK: reserve `amount` tentatives avant l'appel
            if not self._cache_manager.attempt(client, amount):
                available_in = self._cache_manager.get_available_in(client)
                raise RateLimitExceededError(client, available_in)

            trimmed_attributes = _trim(attributes)
            trimmed_attributes2 = _trim(attributes2)

            # DISPATCH
            try:
                api_result = self._client.send_request(
                    endpoint,
                    params,
                    method,
                    trimmed_attributes,
                    trimmed_attributes2,
                    amount,
                )
            except TransportError as e:
                # Aucune reponse recue: la reservation est rendue
                self._cache_manager.release_attempts(client, amount)
                self._log_http_error(
                    0,
                    f"Connection error: {e.message}",
                    {
                        "url": self._client.build_url(endpoint),
                        "method": method,
                        "cache_key": cache_key,
                        "error_type": "connection_error",
                    },
                    None,
                )
                raise
            except UpstreamRequestError as e:
                self._cache_manager.release_attempts(client, amount)
                self._log_http_error(
                    e.status_code,
                    f"HTTP request error: {e.message}",
                    {
                        "url": self._client.build_url(endpoint),
                        "method": method,
                        "cache_key": cache_key,
                        "error_type": "request_error",
                    },
                    e.response_body,
                )
                raise

            # EVALUATE
            response = api_result.response
            api_result.request.cost = self._calculate_cost(response.body)

            if not response.successful:
                self._log_http_error(
                    response.status_code,
                    "API request failed",
                    {
                        "url": api_result.request.full_url,
                        "method": method,
                        "cache_key": cache_key,
                    },
                    response.body,
                )
                if self.use_cache:
                    logger.warning(
                        "cache_store_skipped_failed_response",
                        cache_key=cache_key,
                        status_code=response.status_code,
                    )
                return api_result

            if not self.use_cache:
                return api_result

            # STORE
            if self._should_cache(response.body):
                self._cache_manager.store_response(
                    client,
                    cache_key,
                    params,
                    api_result,
                    endpoint,
                    version=version,
                    ttl=self.cache_ttl,
                    attributes=trimmed_attributes,
                    credits=amount,
                    attributes2=trimmed_attributes2,
                )
                logger.debug("cache_stored", cache_key=cache_key)
            else:
                self._log_cache_rejected(
                    "Response failed should_cache() check",
                    {
                        "url": api_result.request.full_url,
                        "method": method,
                        "cache_key": cache_key,
                    },
                    response.body,
                )

            return api_result
