"""
Client HTTP de base pour les API fournisseurs.

Cet adapter implemente le port ApiClient avec requests: construction des
URL, en-tetes d'authentification et appel reel. Le cache et la limitation
de debit sont delegues a un RequestOrchestrator attache par le container.
"""

import time
from typing import TYPE_CHECKING, Any, Dict, Optional

import requests

from api_cache.application.ports.api_client import ApiClient
from api_cache.domain.entities import ApiRequest, ApiResponse, ApiResult
from api_cache.domain.exceptions import (
    InvalidParamsError,
    TransportError,
    UpstreamRequestError,
)
from api_cache.domain.services import validate_identifier
from api_cache.infrastructure.http import create_session
from api_cache.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from api_cache.application.use_cases import RequestOrchestrator

logger = get_logger(__name__)

QUERY_METHODS = ("GET", "HEAD", "DELETE")
BODY_METHODS = ("POST", "PUT", "PATCH")


def _decode_body(body: Any) -> Optional[str]:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return str(body)


class BaseApiClient(ApiClient):
    """
    Client API generique (authentification Bearer).

    Les specialisations surchargent get_auth_headers / get_auth_params et
    les politiques should_cache / calculate_cost.

    Example:
        >>> client = BaseApiClient("demo", "http://localhost:8000/v1", "key", "v1")
        >>> client.build_url("/predictions")
        'http://localhost:8000/v1/predictions'
    """

    def __init__(
        self,
        client_name: str = "default",
        base_url: str = "",
        api_key: Optional[str] = None,
        version: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ) -> None:
        """
        Args:
            client_name: Identifiant du client (alphanumerique, '-', '_').
            base_url: URL de base, sans '/' final.
            api_key: Cle d'API.
            version: Version de l'API (fait partie de la cle de cache).
            session: Session requests (defaut: create_session()).
            timeout: Timeout des appels en secondes.

        Raises:
            InvalidIdentifierError: Nom de client invalide.
        """
        validate_identifier(client_name)

        self.client_name = client_name
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.version = version
        self.timeout = timeout
        self._session = session or create_session()
        self.orchestrator: Optional["RequestOrchestrator"] = None

        logger.debug(
            "api_client_initialized",
            client=self.client_name,
            base_url=self.base_url,
            version=self.version,
        )

    # ------------------------------------------------------------------
    # Politiques (surchargees par les clients specialises)
    # ------------------------------------------------------------------

    def should_cache(self, response_body: Optional[str]) -> bool:
        """Par defaut, toute reponse reussie est cacheable."""
        return True

    def calculate_cost(self, response_body: Optional[str]) -> Optional[float]:
        """Par defaut, pas de modele de cout."""
        return None

    def get_auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    def get_auth_params(self) -> Dict[str, Any]:
        return {}

    # ------------------------------------------------------------------
    # Appels
    # ------------------------------------------------------------------

    def build_url(self, endpoint: str, path_suffix: Optional[str] = None) -> str:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        if path_suffix is not None:
            url = f"{url}/{path_suffix.lstrip('/')}"
        return url

    def _merge_auth_params(self, params: Any) -> Any:
        auth_params = self.get_auth_params()
        if not auth_params:
            return params
        if isinstance(params, dict):
            return {**auth_params, **params}
        raise InvalidParamsError(
            "Les parametres d'authentification exigent des parametres de type dict",
            invalid_value=params,
        )

    def send_request(
        self,
        endpoint: str,
        params: Any = None,
        method: str = "GET",
        attributes: Optional[str] = None,
        attributes2: Optional[str] = None,
        credits: Optional[int] = None,
    ) -> ApiResult:
        method = method.upper()
        if method not in QUERY_METHODS + BODY_METHODS:
            raise InvalidParamsError(f"Methode HTTP non supportee: {method}", invalid_value=method)

        params = params if params is not None else {}
        url = self.build_url(endpoint)
        payload = self._merge_auth_params(params)

        request_kwargs: Dict[str, Any] = {
            "headers": self.get_auth_headers(),
            "timeout": self.timeout,
        }
        if method in QUERY_METHODS:
            request_kwargs["params"] = payload or None
        else:
            request_kwargs["json"] = payload

        logger.debug("api_request_sending", client=self.client_name, method=method, url=url)

        start_time = time.perf_counter()
        try:
            response = self._session.request(method, url, **request_kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransportError(str(e), url=url) from e
        except requests.RequestException as e:
            status_code = e.response.status_code if e.response is not None else 0
            body = e.response.text if e.response is not None else None
            raise UpstreamRequestError(str(e), status_code=status_code, response_body=body) from e
        response_time = time.perf_counter() - start_time

        logger.debug(
            "api_request_completed",
            client=self.client_name,
            status=response.status_code,
            response_time=round(response_time, 3),
        )

        prepared = response.request
        return ApiResult(
            request=ApiRequest(
                base_url=self.base_url,
                full_url=prepared.url if prepared is not None else url,
                method=prepared.method if prepared is not None else method,
                headers=dict(prepared.headers) if prepared is not None else request_kwargs["headers"],
                body=_decode_body(prepared.body) if prepared is not None else None,
                attributes=attributes,
                attributes2=attributes2,
                credits=credits,
            ),
            response=ApiResponse(
                status_code=response.status_code,
                headers=dict(response.headers),
                body=response.text,
            ),
            response_status_code=response.status_code,
            response_size=len(response.content),
            response_time=response_time,
            params=params,
        )

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
        Requete via l'orchestrateur (cache + limitation + journal d'erreurs).

        Raises:
            RuntimeError: Aucun orchestrateur attache.
        """
        if self.orchestrator is None:
            raise RuntimeError(f"Aucun orchestrateur attache au client '{self.client_name}'")
        return self.orchestrator.send_cached_request(
            endpoint, params, method, attributes, attributes2, amount
        )

    def close(self) -> None:
        self._session.close()
