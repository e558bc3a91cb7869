"""
Entites ApiRequest, ApiResponse et ApiResult.

Forme uniforme retournee aux appelants, que la reponse vienne
du cache ou d'un appel direct a l'API.
"""

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ApiRequest:
    """
    Description de la requete envoyee (ou rejouee depuis le cache).

    Attributes:
        base_url: URL de base du client.
        full_url: URL complete appelee.
        method: Methode HTTP.
        headers: En-tetes envoyes.
        body: Corps envoye.
        attributes: Etiquette libre stockee avec la reponse.
        attributes2: Seconde etiquette libre.
        credits: Nombre de credits factures pour la requete.
        cost: Cout calcule depuis la reponse.
    """

    base_url: str | None = None
    full_url: str | None = None
    method: str | None = None
    headers: dict[str, Any] | None = None
    body: str | None = None
    attributes: str | None = None
    attributes2: str | None = None
    credits: int | None = None
    cost: float | None = None


@dataclass
class ApiResponse:
    """Reponse HTTP brute: statut, en-tetes et corps."""

    status_code: int
    headers: dict[str, Any] = field(default_factory=dict)
    body: str = ""

    @property
    def successful(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass
class ApiResult:
    """
    Resultat d'un appel API.

    Attributes:
        request: Description de la requete.
        response: Reponse HTTP.
        response_status_code: Code HTTP.
        response_size: Taille du corps en octets.
        response_time: Duree de l'appel en secondes.
        is_cached: True si la reponse vient du cache.
        params: Parametres d'origine (avant ajout de l'authentification).
    """

    request: ApiRequest
    response: ApiResponse
    response_status_code: int
    response_size: int
    response_time: float | None
    is_cached: bool = False
    params: dict[str, Any] | list[Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Retourne le resultat sous forme de dictionnaire plat."""
        return {
            "params": self.params,
            "request": {
                "base_url": self.request.base_url,
                "full_url": self.request.full_url,
                "method": self.request.method,
                "attributes": self.request.attributes,
                "attributes2": self.request.attributes2,
                "credits": self.request.credits,
                "cost": self.request.cost,
                "headers": self.request.headers,
                "body": self.request.body,
            },
            "response": {
                "status_code": self.response.status_code,
                "headers": self.response.headers,
                "body": self.response.body,
            },
            "response_status_code": self.response_status_code,
            "response_size": self.response_size,
            "response_time": self.response_time,
            "is_cached": self.is_cached,
        }
