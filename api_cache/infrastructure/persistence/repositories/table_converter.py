"""
Conversion d'une table de cache entre ses variantes simple et compressee.

Copie les reponses de api_cache_<client>_responses vers
api_cache_<client>_responses_compressed (ou l'inverse), par lots, puis
permet de verifier que les payloads decodes sont identiques des deux cotes.

La table source n'est jamais modifiee. Sans copy_processing_state, les
lignes copiees repartent sans processed_at / processed_status.
"""
from typing import Any, Dict, Optional

from sqlalchemy import Table, func, insert, select, update

from api_cache.infrastructure.compression import CompressionService
from api_cache.infrastructure.logging import get_logger
from api_cache.infrastructure.persistence.models import PAYLOAD_COLUMNS
from api_cache.infrastructure.persistence.repositories.cache_repository import CacheRepository

logger = get_logger(__name__)


class ResponsesTableConverter:
    """
    Convertit la table de cache d'un client vers l'autre variante.

    Example:
        >>> converter = ResponsesTableConverter(repo, "demo", compress=True)
        >>> converter.convert_all()["processed_count"]
        42
        >>> converter.validate_all()["mismatch_count"]
        0
    """

    def __init__(
        self,
        repository: CacheRepository,
        client: str,
        compress: bool = True,
        batch_size: int = 100,
        overwrite: bool = False,
        copy_processing_state: bool = False,
        level: int = 6,
    ):
        """
        Args:
            repository: CacheRepository (base et nommage des tables).
            client: Nom du client.
            compress: True: simple -> compressee, False: compressee -> simple.
            batch_size: Lignes lues par lot.
            overwrite: Remplace les cles deja presentes dans la cible.
            copy_processing_state: Conserve processed_at / processed_status.
            level: Niveau zlib des payloads compresses.
        """
        self.repository = repository
        self.db = repository.db
        self.client = client
        self.compress = compress
        self.batch_size = batch_size
        self.overwrite = overwrite
        self.copy_processing_state = copy_processing_state

        self.source = repository.get_table(client, compressed=not compress)
        self.target = repository.get_table(client, compressed=compress)
        self._source_codec = CompressionService(enabled=not compress)
        # Cible compressee: tout payload est compresse, sans seuil
        self._target_codec = CompressionService(enabled=compress, min_size=0, level=level)

    # ------------------------------------------------------------------
    # Comptages
    # ------------------------------------------------------------------

    def _count(self, table: Table) -> int:
        with self.db.get_session() as session:
            return session.execute(select(func.count()).select_from(table)).scalar_one()

    def count_source_rows(self) -> int:
        return self._count(self.source)

    def count_target_rows(self) -> int:
        return self._count(self.target)

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def prepare_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Construit les valeurs cible d'une ligne source.

        Les payloads sont decodes avec le codec source puis reencodes avec
        le codec cible; response_size (taille logique) est conservee.

        Raises:
            StorageError: Payload source illisible.
        """
        values = {name: value for name, value in row.items() if name != "id"}

        for column in PAYLOAD_COLUMNS:
            plain = self._source_codec.decompress(row[column], column)
            values[column] = self._target_codec.compress(plain, column)

        if not self.copy_processing_state:
            values["processed_at"] = None
            values["processed_status"] = None

        return values

    def _fetch_batch(self, table: Table, batch_size: int, offset: int) -> list[Dict[str, Any]]:
        with self.db.get_session() as session:
            rows = session.execute(
                select(table).order_by(table.c.id).limit(batch_size).offset(offset)
            ).mappings().all()
        return [dict(row) for row in rows]

    def _existing_keys(self, keys: list[str]) -> set[str]:
        if not keys:
            return set()
        with self.db.get_session() as session:
            return set(
                session.execute(select(self.target.c.key).where(self.target.c.key.in_(keys))).scalars()
            )

    def convert_batch(self, batch_size: Optional[int] = None, offset: int = 0) -> Dict[str, int]:
        """
        Convertit un lot de lignes source.

        Args:
            batch_size: Taille du lot (defaut: self.batch_size).
            offset: Position du lot dans la table source (ordre des id).

        Returns:
            total_count, processed_count, skipped_count, error_count.
        """
        rows = self._fetch_batch(self.source, batch_size or self.batch_size, offset)
        existing = self._existing_keys([row["key"] for row in rows])

        stats = {"total_count": len(rows), "processed_count": 0, "skipped_count": 0, "error_count": 0}

        for row in rows:
            if row["key"] in existing and not self.overwrite:
                stats["skipped_count"] += 1
                continue

            try:
                values = self.prepare_row(row)
                with self.db.get_session() as session:
                    if row["key"] in existing:
                        session.execute(
                            update(self.target).where(self.target.c.key == row["key"]).values(**values)
                        )
                    else:
                        session.execute(insert(self.target).values(**values))
                stats["processed_count"] += 1
            except Exception as e:
                # Une ligne en echec n'interrompt pas le lot
                logger.error(
                    "table_conversion_row_failed",
                    client=self.client,
                    key=row["key"],
                    error=str(e),
                    error_type=type(e).__name__,
                )
                stats["error_count"] += 1

        logger.info(
            "table_conversion_batch_done",
            client=self.client,
            source=self.source.name,
            target=self.target.name,
            offset=offset,
            **stats,
        )
        return stats

    def convert_all(self) -> Dict[str, int]:
        """Convertit toute la table source, lot par lot."""
        totals = {"total_count": 0, "processed_count": 0, "skipped_count": 0, "error_count": 0}
        source_count = self.count_source_rows()

        for offset in range(0, source_count, self.batch_size):
            stats = self.convert_batch(self.batch_size, offset)
            for name, value in stats.items():
                totals[name] += value

        logger.info("table_conversion_done", client=self.client, target=self.target.name, **totals)
        return totals

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_row(self, row: Dict[str, Any]) -> bool:
        """
        Compare les payloads decodes d'une ligne source et de sa copie.

        Returns:
            True si la copie existe et que ses payloads sont identiques.

        Raises:
            StorageError: Payload illisible d'un cote ou de l'autre.
        """
        with self.db.get_session() as session:
            copy = session.execute(
                select(self.target).where(self.target.c.key == row["key"])
            ).mappings().first()

        if copy is None:
            return False

        for column in PAYLOAD_COLUMNS:
            original = self._source_codec.decompress(row[column], column)
            converted = self._target_codec.decompress(copy[column], column)
            if original != converted:
                return False

        return copy["response_size"] == row["response_size"]

    def validate_batch(self, batch_size: Optional[int] = None, offset: int = 0) -> Dict[str, int]:
        """
        Valide un lot de lignes source.

        Returns:
            validated_count, mismatch_count, error_count.
        """
        stats = {"validated_count": 0, "mismatch_count": 0, "error_count": 0}

        for row in self._fetch_batch(self.source, batch_size or self.batch_size, offset):
            try:
                if self.validate_row(row):
                    stats["validated_count"] += 1
                else:
                    logger.warning("table_conversion_mismatch", client=self.client, key=row["key"])
                    stats["mismatch_count"] += 1
            except Exception as e:
                logger.error(
                    "table_validation_row_failed",
                    client=self.client,
                    key=row["key"],
                    error=str(e),
                    error_type=type(e).__name__,
                )
                stats["error_count"] += 1

        return stats

    def validate_all(self) -> Dict[str, int]:
        totals = {"validated_count": 0, "mismatch_count": 0, "error_count": 0}

        for offset in range(0, self.count_source_rows(), self.batch_size):
            for name, value in self.validate_batch(self.batch_size, offset).items():
                totals[name] += value

        logger.info("table_validation_done", client=self.client, target=self.target.name, **totals)
        return totals
