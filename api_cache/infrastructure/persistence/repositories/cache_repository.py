"""
Repository pour le cache des reponses API.

Une table par client (voir response_models). Les en-tetes sont stockes
en JSON; en-tetes et corps passent par le CompressionService du client
quand la compression est active.
"""
import json
import re
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Optional

from sqlalchemy import Table, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError

from api_cache.domain.exceptions import InvalidParamsError, StorageError
from api_cache.domain.services.cache_key import validate_identifier
from api_cache.infrastructure.compression import CompressionService
from api_cache.infrastructure.logging import get_logger
from api_cache.infrastructure.persistence.database import DatabaseManager
from api_cache.infrastructure.persistence.models import Base, build_responses_table, utcnow
from api_cache.infrastructure.persistence.repositories.utils import build_upsert

logger = get_logger(__name__)

TABLE_PREFIX = "api_cache_"
RESPONSES_SUFFIX = "_responses"
COMPRESSED_SUFFIX = "_compressed"
MAX_TABLE_NAME_LENGTH = 64

# Champs de metadonnees acceptes par store(), avec leur valeur par defaut
METADATA_FIELDS = (
    "version",
    "endpoint",
    "base_url",
    "full_url",
    "method",
    "attributes",
    "attributes2",
    "credits",
    "cost",
    "request_params_summary",
    "request_headers",
    "request_body",
    "response_headers",
    "response_body",
    "response_status_code",
    "response_time",
)


class CacheRepository:
    """
    Acces aux tables de cache des reponses.

    Example:
        >>> repo = CacheRepository(db)
        >>> repo.store("demo", key, {"endpoint": "predictions", "response_body": "{}"})
        >>> repo.get("demo", key)["response_body"]
        '{}'
    """

    def __init__(
        self,
        db: DatabaseManager,
        compression: Optional[Dict[str, CompressionService]] = None,
        default_compression: Optional[CompressionService] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            db: DatabaseManager.
            compression: CompressionService par client.
            default_compression: Service des clients non configures.
            clock: Horloge UTC naive (injectable pour les tests).
        """
        self.db = db
        self._compression = dict(compression or {})
        self._default_compression = default_compression or CompressionService(enabled=False)
        self._clock = clock
        self._ensured_tables: set[str] = set()

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def get_compression(self, client: str) -> CompressionService:
        return self._compression.get(client, self._default_compression)

    @property
    def clients(self) -> Iterable[str]:
        """Clients dont la compression est configuree explicitement."""
        return list(self._compression.keys())

    def get_table_name(self, client: str, compressed: Optional[bool] = None) -> str:
        """
        Retourne le nom de table du client.

        api_cache_<client>_responses[_compressed], tirets remplaces par
        des underscores, tronque pour tenir dans 64 caracteres.
        compressed force la variante (defaut: compression du client).

        Raises:
            InvalidIdentifierError: Nom de client invalide.
            InvalidParamsError: Nom vide apres assainissement.
        """
        validate_identifier(client)

        sanitized = client.replace("-", "_")
        max_length = MAX_TABLE_NAME_LENGTH - len(TABLE_PREFIX + RESPONSES_SUFFIX + COMPRESSED_SUFFIX)
        sanitized = sanitized[:max_length]

        if compressed is None:
            compressed = self.get_compression(client).is_enabled()
        suffix = COMPRESSED_SUFFIX if compressed else ""
        table_name = re.sub(r"_+", "_", f"{TABLE_PREFIX}{sanitized}{RESPONSES_SUFFIX}{suffix}")

        if table_name in ("api_cache_responses", "api_cache_responses_compressed"):
            logger.error("table_name_sanitization_failed", client=client, table_name=table_name)
            raise InvalidParamsError(f"Nom de client invalide pour une table: '{client}'", invalid_value=client)

        return table_name

    def get_table(self, client: str, compressed: Optional[bool] = None) -> Table:
        """Retourne la Table du client, creee en base au premier usage."""
        if compressed is None:
            compressed = self.get_compression(client).is_enabled()
        table_name = self.get_table_name(client, compressed)
        table = build_responses_table(table_name, Base.metadata, compressed=compressed)

        if table_name not in self._ensured_tables:
            table.create(self.db.engine, checkfirst=True)
            self._ensured_tables.add(table_name)

        return table

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------

    def prepare_headers(self, client: str, headers: Optional[Dict[str, Any]], context: str = "headers"):
        if headers is None:
            return None
        encoded = json.dumps(headers)
        return self.get_compression(client).compress(encoded, context)

    def retrieve_headers(self, client: str, data, context: str = "headers") -> Optional[Dict[str, Any]]:
        if data is None:
            return None

        raw = self.get_compression(client).decompress(data, context)
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("headers_decode_failed", client=client, context=context, error=str(e))
            raise StorageError(f"En-tetes illisibles ({context}): {e}", client_name=client) from e

        if not isinstance(decoded, dict):
            raise StorageError(f"Les en-tetes decodes doivent etre un objet ({context})", client_name=client)

        return decoded

    def prepare_body(self, client: str, body: Optional[str], context: str = "body"):
        return self.get_compression(client).compress(body, context)

    def retrieve_body(self, client: str, data, context: str = "body") -> Optional[str]:
        return self.get_compression(client).decompress(data, context)

    # ------------------------------------------------------------------
    # Lecture / ecriture
    # ------------------------------------------------------------------

    def store(self, client: str, key: str, metadata: Dict[str, Any], ttl: Optional[int] = None) -> None:
        """
        Stocke (ou remplace) la reponse associee a une cle.

        Une reponse remplacee repart de zero: created_at, processed_at et
        processed_status sont reinitialises pour qu'elle soit ingeree a
        nouveau. Deux ecritures concurrentes sur la meme cle: la derniere
        gagne.

        Args:
            client: Nom du client.
            key: Cle de cache.
            metadata: Requete, reponse et metadonnees (voir METADATA_FIELDS).
            ttl: Duree de vie en secondes (None ou 0 = sans expiration).

        Raises:
            InvalidParamsError: response_body absent ou vide.
        """
        if not metadata.get("response_body"):
            logger.error("cache_store_missing_body", client=client, key=key)
            raise InvalidParamsError("Champ requis manquant: response_body")

        table = self.get_table(client)
        now = self._clock()
        expires_at = now + timedelta(seconds=ttl) if ttl else None

        data = {field: metadata.get(field) for field in METADATA_FIELDS}

        # Taille logique du corps, independante de la compression
        response_size = len(data["response_body"].encode("utf-8"))

        values = {
            **data,
            "client": client,
            "key": key,
            "request_headers": self.prepare_headers(client, data["request_headers"], "request_headers"),
            "request_body": self.prepare_body(client, data["request_body"], "request_body"),
            "response_headers": self.prepare_headers(client, data["response_headers"], "response_headers"),
            "response_body": self.prepare_body(client, data["response_body"], "response_body"),
            "response_size": response_size,
            "expires_at": expires_at,
            "processed_at": None,
            "processed_status": None,
            "created_at": now,
            "updated_at": now,
        }

        statement = build_upsert(self.db.engine.dialect.name, table, values, "key")

        with self.db.get_session() as session:
            if statement is not None:
                session.execute(statement)
            else:
                self._replace_row(session, table, key, values)

        logger.info(
            "response_stored",
            client=client,
            key=key,
            table=table.name,
            expires_at=expires_at.isoformat() if expires_at else None,
            response_size=response_size,
        )

    def _replace_row(self, session, table: Table, key: str, values: Dict[str, Any]) -> None:
        # Dialectes sans upsert: la ligne concurrente eventuelle est remplacee
        updated = session.execute(update(table).where(table.c.key == key).values(**values)).rowcount
        if updated:
            return
        try:
            with session.begin_nested():
                session.execute(insert(table).values(**values))
        except IntegrityError:
            session.execute(update(table).where(table.c.key == key).values(**values))

    def _live_clause(self, table: Table, now: datetime):
        return or_(table.c.expires_at.is_(None), table.c.expires_at > now)

    def get(self, client: str, key: str) -> Optional[Dict[str, Any]]:
        """
        Recupere la reponse d'une cle si elle existe et n'est pas expiree.

        Returns:
            Dictionnaire decode, ou None (cache miss).
        """
        table = self.get_table(client)

        with self.db.get_session() as session:
            row = session.execute(
                select(table).where(
                    table.c.key == key,
                    self._live_clause(table, self._clock()),
                )
            ).mappings().first()

        if row is None:
            logger.debug("cache_miss", client=client, key=key, table=table.name)
            return None

        logger.debug("cache_hit", client=client, key=key, table=table.name)

        return {
            "id": row["id"],
            "key": row["key"],
            "client": row["client"],
            "version": row["version"],
            "endpoint": row["endpoint"],
            "base_url": row["base_url"],
            "full_url": row["full_url"],
            "method": row["method"],
            "attributes": row["attributes"],
            "attributes2": row["attributes2"],
            "credits": row["credits"],
            "cost": row["cost"],
            "request_params_summary": row["request_params_summary"],
            "request_headers": self.retrieve_headers(client, row["request_headers"], "request_headers"),
            "request_body": self.retrieve_body(client, row["request_body"], "request_body"),
            "response_headers": self.retrieve_headers(client, row["response_headers"], "response_headers"),
            "response_body": self.retrieve_body(client, row["response_body"], "response_body"),
            "response_status_code": row["response_status_code"],
            "response_size": row["response_size"],
            "response_time": row["response_time"],
            "expires_at": row["expires_at"],
            "created_at": row["created_at"],
        }

    # ------------------------------------------------------------------
    # Statistiques et maintenance
    # ------------------------------------------------------------------

    def count_total_responses(self, client: str) -> int:
        table = self.get_table(client)
        with self.db.get_session() as session:
            return session.execute(select(func.count()).select_from(table)).scalar() or 0

    def count_active_responses(self, client: str) -> int:
        table = self.get_table(client)
        with self.db.get_session() as session:
            return session.execute(
                select(func.count()).select_from(table).where(self._live_clause(table, self._clock()))
            ).scalar() or 0

    def count_expired_responses(self, client: str) -> int:
        table = self.get_table(client)
        with self.db.get_session() as session:
            return session.execute(
                select(func.count()).select_from(table).where(
                    table.c.expires_at.is_not(None),
                    table.c.expires_at <= self._clock(),
                )
            ).scalar() or 0

    def delete_expired(self, client: Optional[str] = None) -> int:
        """
        Supprime les reponses expirees d'un client (ou de tous les clients
        configures).

        Returns:
            Nombre total de lignes supprimees.
        """
        clients = [client] if client else self.clients
        now = self._clock()
        total = 0

        for name in clients:
            table = self.get_table(name)
            with self.db.get_session() as session:
                deleted = session.execute(
                    delete(table).where(table.c.expires_at <= now)
                ).rowcount
            total += deleted or 0
            logger.info("expired_responses_deleted", client=name, table=table.name, deleted_count=deleted)

        return total

    def clear_table(self, client: str) -> int:
        """Vide la table du client. Retourne le nombre de lignes supprimees."""
        table = self.get_table(client)
        with self.db.get_session() as session:
            deleted = session.execute(delete(table)).rowcount
        logger.info("cache_table_cleared", client=client, table=table.name, deleted_count=deleted)
        return deleted or 0
