"""
Journal des erreurs API (table api_cache_errors).

Chaque ecriture est conditionnee par error_logging.enabled et par le
drapeau log_events du type d'erreur. Une erreur de base de donnees lors
de l'ecriture est journalisee via structlog sans etre propagee: le
journal ne doit jamais masquer l'echec d'origine.
"""
import json
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from api_cache.infrastructure.config.settings import ErrorLoggingSettings
from api_cache.infrastructure.logging import get_logger
from api_cache.infrastructure.persistence.database import DatabaseManager
from api_cache.infrastructure.persistence.models import ApiCacheError, utcnow

logger = get_logger(__name__)

# Longueur maximale de l'apercu de reponse stocke
RESPONSE_PREVIEW_LENGTH = 2000


class ErrorLogger:
    """
    Ecrit les erreurs d'appels API en base.

    Example:
        >>> error_logger = ErrorLogger(db, ErrorLoggingSettings())
        >>> error_logger.log_http_error("demo", 500, "Server error", response="...")
    """

    def __init__(
        self,
        db: DatabaseManager,
        settings: Optional[ErrorLoggingSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.settings = settings or ErrorLoggingSettings()
        self._clock = clock

    def is_logged(self, error_type: str) -> bool:
        """True si ce type d'erreur doit etre ecrit en base."""
        return bool(self.settings.enabled and self.settings.log_events.get(error_type, False))

    def get_level(self, error_type: str) -> str:
        return self.settings.levels.get(error_type, "error")

    @staticmethod
    def serialize_context(context: Optional[Dict[str, Any]], pretty_print: bool = True) -> Optional[str]:
        """JSON indente (4 espaces) ou compact; None pour un contexte vide."""
        if not context:
            return None
        if pretty_print:
            return json.dumps(context, indent=4, ensure_ascii=False, default=str)
        return json.dumps(context, separators=(",", ":"), ensure_ascii=False, default=str)

    def log_api_error(
        self,
        client: str,
        error_type: str,
        message: Optional[str],
        context: Optional[Dict[str, Any]] = None,
        response: Optional[str] = None,
        api_message: Optional[str] = None,
        pretty_print: bool = True,
    ) -> bool:
        """
        Ecrit une erreur si sa journalisation est activee.

        Args:
            client: Nom du client API.
            error_type: Categorie (http_error, cache_rejected, ...).
            message: Message d'erreur.
            context: Donnees de contexte serialisees en JSON.
            response: Corps de reponse (tronque a 2000 caracteres).
            api_message: Detail fourni par l'API amont.
            pretty_print: JSON de contexte indente.

        Returns:
            True si une ligne a ete ecrite.
        """
        if not self.is_logged(error_type):
            return False

        log_level = self.get_level(error_type)
        entry = ApiCacheError(
            api_client=client,
            error_type=error_type,
            log_level=log_level,
            error_message=message,
            api_message=api_message,
            response_preview=response[:RESPONSE_PREVIEW_LENGTH] if response is not None else None,
            context_data=self.serialize_context(context, pretty_print),
            created_at=self._clock(),
        )

        logger.debug(
            "api_error_logging",
            client=client,
            error_type=error_type,
            log_level=log_level,
            error_message=message,
        )

        try:
            with self.db.get_session() as session:
                session.add(entry)
        except SQLAlchemyError as e:
            logger.error("api_error_log_failed", client=client, error_type=error_type, error=str(e))
            return False

        return True

    def log_http_error(
        self,
        client: str,
        status_code: int,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[str] = None,
    ) -> bool:
        """Journalise une erreur HTTP (type http_error, status_code en contexte)."""
        return self.log_api_error(
            client,
            "http_error",
            message or "HTTP error",
            {"status_code": status_code, **(context or {})},
            response,
        )

    def log_cache_rejected(
        self,
        client: str,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[str] = None,
    ) -> bool:
        """Journalise une reponse refusee par la politique de cache."""
        return self.log_api_error(
            client,
            "cache_rejected",
            message or "Cache rejected",
            context,
            response,
        )

    def count_errors(self, client: Optional[str] = None, error_type: Optional[str] = None) -> int:
        """Nombre d'erreurs journalisees (filtrables par client et type)."""
        with self.db.get_session() as session:
            query = session.query(ApiCacheError)
            if client:
                query = query.filter(ApiCacheError.api_client == client)
            if error_type:
                query = query.filter(ApiCacheError.error_type == error_type)
            return query.count()
