"""
Exceptions metier du domaine.

Ces exceptions representent les echecs du proxy de cache (parametres
invalides, limite de debit, erreurs amont, reponses illisibles) et sont
independantes de l'infrastructure.
"""

from typing import Any


class DomainException(Exception):
    """Exception de base pour toutes les erreurs du domaine."""

    def __init__(self, message: str, code: str | None = None) -> None:
        """
        Initialise une exception du domaine.

        Args:
            message: Message d'erreur descriptif.
            code: Code d'erreur optionnel pour identification programmatique.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class InvalidParamsError(DomainException):
    """
    Leve quand les parametres fournis par l'appelant sont invalides.

    Jamais journalise dans la table d'erreurs: remonte immediatement.
    """

    def __init__(self, message: str, invalid_value: Any = None) -> None:
        super().__init__(message, code="INVALID_PARAMS")
        self.invalid_value = invalid_value


class InvalidIdentifierError(InvalidParamsError):
    """Leve quand un nom de client contient des caracteres interdits."""

    def __init__(self, value: Any) -> None:
        super().__init__(
            f"Identifiant invalide: '{value}'. "
            "Seuls les caracteres alphanumeriques, '-' et '_' sont autorises.",
            invalid_value=value,
        )
        self.code = "INVALID_IDENTIFIER"


class RateLimitExceededError(DomainException):
    """Leve quand la limite de debit d'un client est atteinte."""

    def __init__(self, client_name: str, available_in_seconds: int) -> None:
        super().__init__(
            f"Limite de debit atteinte pour le client '{client_name}'. "
            f"Disponible dans {available_in_seconds} secondes.",
            code="RATE_LIMIT_EXCEEDED",
        )
        self.client_name = client_name
        self.available_in_seconds = available_in_seconds


class TransportError(DomainException):
    """Leve quand l'API amont est injoignable (DNS, timeout, connexion)."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message, code="TRANSPORT_ERROR")
        self.url = url


class UpstreamRequestError(DomainException):
    """Leve quand la requete amont echoue au niveau applicatif."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message, code="UPSTREAM_REQUEST_ERROR")
        self.status_code = status_code
        self.response_body = response_body


class MalformedResponseError(DomainException):
    """Leve quand une reponse en cache ne peut pas etre ingeree."""

    def __init__(self, message: str, response_id: int | None = None) -> None:
        full_message = message
        if response_id is not None:
            full_message = f"Reponse #{response_id}: {message}"
        super().__init__(full_message, code="MALFORMED_RESPONSE")
        self.response_id = response_id


class StorageError(DomainException):
    """Leve quand un payload stocke ne peut pas etre decode (compression, JSON)."""

    def __init__(self, message: str, client_name: str | None = None) -> None:
        super().__init__(message, code="STORAGE_ERROR")
        self.client_name = client_name
