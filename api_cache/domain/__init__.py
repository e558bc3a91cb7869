"""
Domain Layer - Coeur metier de l'application.

Ce module contient:
    - entities/: Resultats d'appels API (requete, reponse, metadonnees)
    - ports/: Interfaces vers le stockage des compteurs de debit
    - services/: Services purs (normalisation des parametres, cles de cache)
    - exceptions: Exceptions metier

Principes:
    - AUCUNE dependance vers les couches externes
    - Logique metier pure
    - Testable sans infrastructure
"""

from api_cache.domain.exceptions import (
    DomainException,
    InvalidIdentifierError,
    InvalidParamsError,
    MalformedResponseError,
    StorageError,
    RateLimitExceededError,
    TransportError,
    UpstreamRequestError,
)

__all__ = [
    "DomainException",
    "InvalidParamsError",
    "InvalidIdentifierError",
    "RateLimitExceededError",
    "TransportError",
    "UpstreamRequestError",
    "MalformedResponseError",
    "StorageError",
]
