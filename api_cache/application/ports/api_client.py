"""
Port ApiClient - Contrat d'un client d'API fournisseur.

L'orchestrateur de requetes en cache ne depend que de ce contrat:
construire l'URL d'un endpoint et effectuer l'appel reel.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from api_cache.domain.entities import ApiResult


class ApiClient(ABC):
    """
    Interface d'un client d'API fournisseur.

    Implementations:
        - BaseApiClient (requests) et ses specialisations
    """

    client_name: str
    version: Optional[str]

    @abstractmethod
    def build_url(self, endpoint: str, path_suffix: Optional[str] = None) -> str:
        """
        Construit l'URL complete d'un endpoint.

        Args:
            endpoint: Endpoint relatif.
            path_suffix: Segment optionnel ajoute en fin d'URL.

        Returns:
            URL complete.
        """
        pass

    @abstractmethod
    def send_request(
        self,
        endpoint: str,
        params: Any = None,
        method: str = "GET",
        attributes: Optional[str] = None,
        attributes2: Optional[str] = None,
        credits: Optional[int] = None,
    ) -> ApiResult:
        """
        Effectue l'appel reel, sans cache ni limitation.

        Les reponses non-2xx sont retournees, pas levees.

        Raises:
            TransportError: API injoignable.
            UpstreamRequestError: Echec de la requete.
            InvalidParamsError: Methode HTTP non supportee.
        """
        pass
