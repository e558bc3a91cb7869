"""
Pipeline d'ingestion DataForSEO Labs Google keyword research.

Transforme les reponses cachees du client 'dataforseo' (taches ->
resultats -> items) en lignes plates de la table
dataforseo_labs_google_keyword_research_items.

Garanties:
----------
- Chaque reponse selectionnee est marquee traitee (processed_at,
  processed_status), qu'elle reussisse ou echoue: une reponse illisible
  n'est jamais retentee indefiniment.
- Une reponse en echec n'interrompt ni le lot ni la vidange complete.
- Upsert idempotent sur (keyword, location_code, language_code); en mode
  update_if_newer, une ligne n'est remplacee que par une version
  strictement plus recente.
"""

import json
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, delete, func, insert, not_, or_, select, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.orm import Session

from api_cache.domain.exceptions import MalformedResponseError, StorageError
from api_cache.infrastructure.logging import bound_context, get_logger
from api_cache.infrastructure.persistence.database import DatabaseManager
from api_cache.infrastructure.persistence.models import KeywordResearchItem, utcnow
from api_cache.infrastructure.persistence.repositories import CacheRepository

logger = get_logger(__name__)

CLIENT_NAME = "dataforseo"

ENDPOINTS_TO_PROCESS = (
    "dataforseo_labs/google/keywords_for_site/%",
    "dataforseo_labs/google/related_keywords/%",
    "dataforseo_labs/google/keyword_suggestions/%",
    "dataforseo_labs/google/keyword_ideas/%",
    "dataforseo_labs/google/bulk_keyword_difficulty/%",
    "dataforseo_labs/google/search_intent/%",
    "dataforseo_labs/google/keyword_overview/%",
)

DEFAULT_SANDBOX_MARKERS = ("https://sandbox.", "http://sandbox.")

INTENT_LABELS = ("informational", "navigational", "commercial", "transactional")

# Taille des lots d'ecriture
CHUNK_SIZE = 100

# Valeurs par defaut des colonnes de la cle naturelle
DEFAULT_LOCATION_CODE = 0
DEFAULT_LANGUAGE_CODE = "none"


def _get(data: Any, *path: str) -> Any:
    """Lecture imbriquee tolerante: None des qu'un niveau manque."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _pretty_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, indent=4, ensure_ascii=False)


def _empty_item_stats() -> Dict[str, int]:
    return {"items_inserted": 0, "items_updated": 0, "items_skipped": 0}


def _empty_response_stats() -> Dict[str, int]:
    return {
        "keyword_items": 0,
        "items_inserted": 0,
        "items_updated": 0,
        "items_skipped": 0,
        "total_items": 0,
    }


def _chunks(items: List[Dict[str, Any]], size: int) -> Iterable[List[Dict[str, Any]]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class KeywordResearchProcessor:
    """
    Ingestion des reponses Labs Google keyword research.

    Example:
        >>> processor = KeywordResearchProcessor(db, cache_repository)
        >>> stats = processor.process_responses_all(batch_size=100)
        >>> stats["batches_processed"], stats["errors"]
        (3, 0)
    """

    items_table = KeywordResearchItem.__table__

    def __init__(
        self,
        db: DatabaseManager,
        cache_repository: CacheRepository,
        skip_sandbox: bool = True,
        update_if_newer: bool = True,
        skip_keyword_info_monthly_searches: bool = False,
        skip_keyword_info_normalized_with_bing_monthly_searches: bool = False,
        skip_keyword_info_normalized_with_clickstream_monthly_searches: bool = False,
        skip_clickstream_keyword_info_monthly_searches: bool = False,
        sandbox_markers: Iterable[str] = DEFAULT_SANDBOX_MARKERS,
        chunk_size: int = CHUNK_SIZE,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            db: DatabaseManager.
            cache_repository: Acces a la table des reponses 'dataforseo'.
            skip_sandbox: Ignorer les reponses issues d'une URL sandbox.
            update_if_newer: Upsert avec comparaison de fraicheur (sinon
                insertion en ignorant les conflits).
            skip_*_monthly_searches: Ne pas stocker les historiques mensuels.
            sandbox_markers: Prefixes de base_url identifiant la sandbox.
            chunk_size: Taille des lots d'ecriture.
            clock: Horloge UTC naive.
        """
        self.db = db
        self.cache_repository = cache_repository
        self.skip_sandbox = skip_sandbox
        self.update_if_newer = update_if_newer
        self.skip_keyword_info_monthly_searches = skip_keyword_info_monthly_searches
        self.skip_keyword_info_normalized_with_bing_monthly_searches = (
            skip_keyword_info_normalized_with_bing_monthly_searches
        )
        self.skip_keyword_info_normalized_with_clickstream_monthly_searches = (
            skip_keyword_info_normalized_with_clickstream_monthly_searches
        )
        self.skip_clickstream_keyword_info_monthly_searches = skip_clickstream_keyword_info_monthly_searches
        self.sandbox_markers = tuple(sandbox_markers)
        self.chunk_size = chunk_size
        self._clock = clock

        self.items_table.create(self.db.engine, checkfirst=True)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def get_responses_table_name(self) -> str:
        return self.cache_repository.get_table_name(CLIENT_NAME)

    def _responses_table(self):
        return self.cache_repository.get_table(CLIENT_NAME)

    def _endpoint_clause(self, table):
        return or_(*[table.c.endpoint.like(pattern) for pattern in ENDPOINTS_TO_PROCESS])

    def _not_sandbox_clause(self, table):
        return or_(
            table.c.base_url.is_(None),
            and_(*[not_(table.c.base_url.like(f"{marker}%")) for marker in self.sandbox_markers]),
        )

    def reset_processed(self) -> int:
        """
        Remet a NULL processed_at / processed_status des reponses de la
        famille d'endpoints.

        Returns:
            Nombre de reponses reinitialisees.
        """
        table = self._responses_table()
        with self.db.get_session() as session:
            updated = session.execute(
                update(table)
                .where(self._endpoint_clause(table))
                .values(processed_at=None, processed_status=None)
            ).rowcount

        logger.info("keyword_research_processed_reset", updated_count=updated)
        return updated or 0

    def clear_processed_tables(self, with_count: bool = False) -> Dict[str, Optional[int]]:
        """Vide la table des items (compte les lignes si with_count)."""
        stats: Dict[str, Optional[int]] = {"items_deleted": None}

        with self.db.get_session() as session:
            if with_count:
                stats["items_deleted"] = session.execute(
                    select(func.count()).select_from(self.items_table)
                ).scalar() or 0
            session.execute(delete(self.items_table))

        logger.info("keyword_research_items_cleared", **stats)
        return stats

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_task_data(self, task_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Champs de l'enveloppe de tache.

        location_code / language_code ne sont inclus que s'ils sont presents,
        pour laisser jouer les valeurs par defaut de la table.
        """
        data = {"se_type": task_data.get("se_type")}

        if task_data.get("location_code") is not None:
            data["location_code"] = task_data["location_code"]
        if task_data.get("language_code") is not None:
            data["language_code"] = task_data["language_code"]

        return data

    def extract_result_metadata(self, result: Dict[str, Any]) -> Dict[str, Any]:
        # Pas de metadonnees de resultat utiles pour les endpoints Labs
        return {}

    def extract_keyword_fields(
        self,
        item: Dict[str, Any],
        related_keywords: Optional[List[Any]],
        merged_data: Dict[str, Any],
        now: datetime,
    ) -> Dict[str, Any]:
        """
        Aplatit un item keyword en une ligne de la table des items.

        Args:
            item: Item (ou keyword_data de l'item pour related_keywords).
            related_keywords: Liste related_keywords associee, si presente.
            merged_data: Donnees de tache/resultat communes a tous les items.
            now: Horodatage created_at / updated_at.

        Returns:
            Ligne prete a l'ecriture.
        """
        keyword_info = item.get("keyword_info")
        bing = item.get("keyword_info_normalized_with_bing")
        clickstream = item.get("keyword_info_normalized_with_clickstream")
        clickstream_info = item.get("clickstream_keyword_info")
        properties = item.get("keyword_properties")
        serp_info = item.get("serp_info")
        backlinks = item.get("avg_backlinks_info")
        intent_info = item.get("search_intent_info")

        row = {
            **merged_data,
            "keyword": item.get("keyword"),

            "keyword_info_se_type": _get(keyword_info, "se_type"),
            "keyword_info_last_updated_time": _get(keyword_info, "last_updated_time"),
            "keyword_info_competition": _get(keyword_info, "competition"),
            "keyword_info_competition_level": _get(keyword_info, "competition_level"),
            "keyword_info_cpc": _get(keyword_info, "cpc"),
            "keyword_info_search_volume": _get(keyword_info, "search_volume"),
            "keyword_info_low_top_of_page_bid": _get(keyword_info, "low_top_of_page_bid"),
            "keyword_info_high_top_of_page_bid": _get(keyword_info, "high_top_of_page_bid"),
            "keyword_info_categories": _pretty_json(_get(keyword_info, "categories")),
            "keyword_info_monthly_searches": None if self.skip_keyword_info_monthly_searches
            else _pretty_json(_get(keyword_info, "monthly_searches")),
            "keyword_info_search_volume_trend_monthly": _get(keyword_info, "search_volume_trend", "monthly"),
            "keyword_info_search_volume_trend_quarterly": _get(keyword_info, "search_volume_trend", "quarterly"),
            "keyword_info_search_volume_trend_yearly": _get(keyword_info, "search_volume_trend", "yearly"),

            "keyword_info_normalized_with_bing_last_updated_time": _get(bing, "last_updated_time"),
            "keyword_info_normalized_with_bing_search_volume": _get(bing, "search_volume"),
            "keyword_info_normalized_with_bing_is_normalized": _get(bing, "is_normalized"),
            "keyword_info_normalized_with_bing_monthly_searches":
                None if self.skip_keyword_info_normalized_with_bing_monthly_searches
                else _pretty_json(_get(bing, "monthly_searches")),

            "keyword_info_normalized_with_clickstream_last_updated_time": _get(clickstream, "last_updated_time"),
            "keyword_info_normalized_with_clickstream_search_volume": _get(clickstream, "search_volume"),
            "keyword_info_normalized_with_clickstream_is_normalized": _get(clickstream, "is_normalized"),
            "keyword_info_normalized_with_clickstream_monthly_searches":
                None if self.skip_keyword_info_normalized_with_clickstream_monthly_searches
                else _pretty_json(_get(clickstream, "monthly_searches")),

            "clickstream_keyword_info_search_volume": _get(clickstream_info, "search_volume"),
            "clickstream_keyword_info_last_updated_time": _get(clickstream_info, "last_updated_time"),
            "clickstream_keyword_info_gender_distribution_female":
                _get(clickstream_info, "gender_distribution", "female"),
            "clickstream_keyword_info_gender_distribution_male":
                _get(clickstream_info, "gender_distribution", "male"),
            "clickstream_keyword_info_age_distribution_18_24": _get(clickstream_info, "age_distribution", "18-24"),
            "clickstream_keyword_info_age_distribution_25_34": _get(clickstream_info, "age_distribution", "25-34"),
            "clickstream_keyword_info_age_distribution_35_44": _get(clickstream_info, "age_distribution", "35-44"),
            "clickstream_keyword_info_age_distribution_45_54": _get(clickstream_info, "age_distribution", "45-54"),
            "clickstream_keyword_info_age_distribution_55_64": _get(clickstream_info, "age_distribution", "55-64"),
            "clickstream_keyword_info_monthly_searches": None if self.skip_clickstream_keyword_info_monthly_searches
            else _pretty_json(_get(clickstream_info, "monthly_searches")),

            "keyword_properties_se_type": _get(properties, "se_type"),
            "keyword_properties_core_keyword": _get(properties, "core_keyword"),
            "keyword_properties_synonym_clustering_algorithm": _get(properties, "synonym_clustering_algorithm"),
            "keyword_properties_keyword_difficulty": _get(properties, "keyword_difficulty"),
            "keyword_properties_detected_language": _get(properties, "detected_language"),
            "keyword_properties_is_another_language": _get(properties, "is_another_language"),

            "serp_info_se_type": _get(serp_info, "se_type"),
            "serp_info_check_url": _get(serp_info, "check_url"),
            "serp_info_serp_item_types": _pretty_json(_get(serp_info, "serp_item_types")),
            "serp_info_se_results_count": _get(serp_info, "se_results_count"),
            "serp_info_last_updated_time": _get(serp_info, "last_updated_time"),
            "serp_info_previous_updated_time": _get(serp_info, "previous_updated_time"),

            "avg_backlinks_info_se_type": _get(backlinks, "se_type"),
            "avg_backlinks_info_backlinks": _get(backlinks, "backlinks"),
            "avg_backlinks_info_dofollow": _get(backlinks, "dofollow"),
            "avg_backlinks_info_referring_pages": _get(backlinks, "referring_pages"),
            "avg_backlinks_info_referring_domains": _get(backlinks, "referring_domains"),
            "avg_backlinks_info_referring_main_domains": _get(backlinks, "referring_main_domains"),
            "avg_backlinks_info_rank": _get(backlinks, "rank"),
            "avg_backlinks_info_main_domain_rank": _get(backlinks, "main_domain_rank"),
            "avg_backlinks_info_last_updated_time": _get(backlinks, "last_updated_time"),

            "search_intent_info_se_type": _get(intent_info, "se_type"),
            "search_intent_info_main_intent": _get(intent_info, "main_intent"),
            "search_intent_info_foreign_intent": _pretty_json(_get(intent_info, "foreign_intent")),
            "search_intent_info_last_updated_time": _get(intent_info, "last_updated_time"),

            "related_keywords": _pretty_json(related_keywords) if related_keywords else None,

            "keyword_difficulty": item.get("keyword_difficulty"),

            "keyword_intent_label": _get(item, "keyword_intent", "label"),
            "keyword_intent_probability": _get(item, "keyword_intent", "probability"),
        }

        for label in INTENT_LABELS:
            row[f"secondary_keyword_intents_probability_{label}"] = None

        secondary_intents = item.get("secondary_keyword_intents")
        if isinstance(secondary_intents, list):
            for intent in secondary_intents:
                label = _get(intent, "label")
                probability = _get(intent, "probability")
                # Libelles inconnus ignores
                if label in INTENT_LABELS and probability is not None:
                    row[f"secondary_keyword_intents_probability_{label}"] = probability

        row["created_at"] = now
        row["updated_at"] = now
        return row

    # ------------------------------------------------------------------
    # Ecriture
    # ------------------------------------------------------------------

    def _natural_key_clause(self, row: Dict[str, Any]):
        table = self.items_table
        return and_(
            table.c.keyword == row["keyword"],
            table.c.location_code == row.get("location_code", DEFAULT_LOCATION_CODE),
            table.c.language_code == row.get("language_code", DEFAULT_LANGUAGE_CODE),
        )

    def _insert_ignore_statement(self):
        dialect = self.db.engine.dialect.name
        if dialect == "sqlite":
            return sqlite.insert(self.items_table).on_conflict_do_nothing()
        if dialect == "postgresql":
            return postgresql.insert(self.items_table).on_conflict_do_nothing()
        if dialect in ("mysql", "mariadb"):
            return mysql.insert(self.items_table).prefix_with("IGNORE")
        return None

    def _count_items(self, session: Session) -> int:
        return session.execute(select(func.count()).select_from(self.items_table)).scalar() or 0

    def _insert_ignoring_conflicts(self, session: Session, chunk: List[Dict[str, Any]]) -> int:
        statement = self._insert_ignore_statement()

        if statement is None:
            inserted = 0
            for row in chunk:
                exists = session.execute(
                    select(self.items_table.c.id).where(self._natural_key_clause(row))
                ).first()
                if exists is None:
                    session.execute(insert(self.items_table).values(**row))
                    inserted += 1
            return inserted

        # Regroupe par jeu de colonnes: les colonnes absentes gardent leur defaut
        groups: Dict[Tuple[str, ...], List[Dict[str, Any]]] = {}
        for row in chunk:
            groups.setdefault(tuple(sorted(row.keys())), []).append(row)

        before = self._count_items(session)
        for rows in groups.values():
            session.execute(statement, rows)
        return self._count_items(session) - before

    def _insert_or_update_if_newer(self, session: Session, row: Dict[str, Any], stats: Dict[str, int]) -> None:
        table = self.items_table
        existing = session.execute(
            select(table.c.id, table.c.created_at, table.c.updated_at).where(self._natural_key_clause(row))
        ).first()

        if existing is None:
            session.execute(insert(table).values(**row))
            stats["items_inserted"] += 1
            return

        incoming = row.get("updated_at") or row.get("created_at")
        stored = existing.updated_at or existing.created_at

        if stored is None or (incoming is not None and incoming > stored):
            values = {k: v for k, v in row.items() if k != "created_at"}
            session.execute(update(table).where(table.c.id == existing.id).values(**values))
            stats["items_updated"] += 1
        else:
            stats["items_skipped"] += 1

    def _batch_insert_or_update(self, session: Session, items: List[Dict[str, Any]]) -> Dict[str, int]:
        stats = _empty_item_stats()

        for chunk in _chunks(items, self.chunk_size):
            if not self.update_if_newer:
                inserted = self._insert_ignoring_conflicts(session, chunk)
                stats["items_inserted"] += inserted
                stats["items_skipped"] += len(chunk) - inserted
            else:
                for row in chunk:
                    self._insert_or_update_if_newer(session, row, stats)

        return stats

    def batch_insert_or_update_items(self, items: List[Dict[str, Any]]) -> Dict[str, int]:
        """
        Ecrit des items par lots.

        - update_if_newer=False: insertion en ignorant les conflits
        - update_if_newer=True: insertion, ou mise a jour si l'item entrant
          est strictement plus recent (updated_at, a defaut created_at)

        Returns:
            Compteurs items_inserted, items_updated, items_skipped.
        """
        with self.db.get_session() as session:
            return self._batch_insert_or_update(session, items)

    # ------------------------------------------------------------------
    # Traitement des reponses
    # ------------------------------------------------------------------

    def _process_labs_keyword_items(
        self,
        session: Session,
        items: List[Any],
        merged_data: Dict[str, Any],
    ) -> Dict[str, int]:
        keyword_items = []
        now = self._clock()

        for item in items:
            if not isinstance(item, dict):
                raise MalformedResponseError(f"Item inattendu de type {type(item).__name__}")

            # Forme related_keywords: keyword_data + related_keywords
            if "keyword_data" in item:
                actual_item = item["keyword_data"]
                related_keywords = item.get("related_keywords")
            else:
                actual_item = item
                related_keywords = None

            if not isinstance(actual_item, dict) or not actual_item.get("keyword"):
                raise MalformedResponseError("Item sans mot-cle")

            keyword_items.append(self.extract_keyword_fields(actual_item, related_keywords, merged_data, now))

        stats = self._batch_insert_or_update(session, keyword_items)
        stats["keyword_items"] = len(keyword_items)
        return stats

    def process_labs_keyword_items(self, items: List[Any], merged_data: Dict[str, Any]) -> Dict[str, int]:
        """Extrait et ecrit les items d'un resultat."""
        with self.db.get_session() as session:
            return self._process_labs_keyword_items(session, items, merged_data)

    def _decode_body(self, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            body = self.cache_repository.retrieve_body(CLIENT_NAME, row["response_body"], "response_body")
            decoded = json.loads(body) if body else None
        except (StorageError, ValueError, RecursionError) as e:
            raise MalformedResponseError(f"JSON invalide: {e}", response_id=row["id"]) from e

        if not isinstance(decoded, dict) or not isinstance(decoded.get("tasks"), list):
            raise MalformedResponseError("JSON invalide ou tableau tasks manquant", response_id=row["id"])

        return decoded

    def _process_response(self, session: Session, row: Dict[str, Any]) -> Dict[str, int]:
        body = self._decode_body(row)
        stats = _empty_response_stats()

        for task in body["tasks"]:
            if not isinstance(task, dict) or not isinstance(task.get("result"), list) or not task["result"]:
                continue

            task_data = task.get("data")
            base_task_data = self.extract_task_data(task_data if isinstance(task_data, dict) else {})
            base_task_data["task_id"] = task.get("id")
            base_task_data["response_id"] = row["id"]

            for result in task["result"]:
                if not isinstance(result, dict) or result.get("items") is None:
                    continue
                if not isinstance(result["items"], list):
                    raise MalformedResponseError("Champ items inattendu", response_id=row["id"])

                merged_data = {**base_task_data, **self.extract_result_metadata(result)}

                stats["total_items"] += len(result["items"])

                item_stats = self._process_labs_keyword_items(session, result["items"], merged_data)
                for key in ("keyword_items", "items_inserted", "items_updated", "items_skipped"):
                    stats[key] += item_stats[key]

        return stats

    def process_response(self, row: Dict[str, Any]) -> Dict[str, int]:
        """
        Traite une reponse cachee (ligne de la table des reponses).

        Raises:
            MalformedResponseError: Corps illisible ou sans tableau tasks.
        """
        with self.db.get_session() as session:
            return self._process_response(session, row)

    def _mark_processed(self, session: Session, table, response_id: int, status: Dict[str, Any]) -> None:
        session.execute(
            update(table)
            .where(table.c.id == response_id)
            .values(processed_at=self._clock(), processed_status=json.dumps(status, indent=4))
        )

    def process_responses(self, limit: Optional[int] = None) -> Dict[str, int]:
        """
        Traite les reponses non traitees de la famille d'endpoints.

        Args:
            limit: Nombre maximal de reponses (None = toutes).

        Returns:
            Compteurs agreges, dont errors.
        """
        table = self._responses_table()

        query = (
            select(
                table.c.id,
                table.c.key,
                table.c.endpoint,
                table.c.response_body,
                table.c.base_url,
                table.c.created_at,
            )
            .where(
                table.c.processed_at.is_(None),
                table.c.response_status_code == 200,
                self._endpoint_clause(table),
            )
            .order_by(table.c.id)
        )
        if self.skip_sandbox:
            query = query.where(self._not_sandbox_clause(table))
        if limit is not None:
            query = query.limit(limit)

        with self.db.get_session() as session:
            rows = [dict(r) for r in session.execute(query).mappings().all()]

        stats = {"processed_responses": 0, **_empty_response_stats(), "errors": 0}

        for row in rows:
            with bound_context(response_id=row["id"]):
                try:
                    with self.db.get_session() as session:
                        response_stats = self._process_response(session, row)
                        self._mark_processed(session, table, row["id"], {
                            "status": "OK",
                            "error": None,
                            **response_stats,
                        })
                except Exception as e:
                    # Une reponse en echec ne bloque ni le lot ni les suivants
                    error = str(e) if isinstance(e, MalformedResponseError) else f"{type(e).__name__}: {e}"
                    logger.error(
                        "keyword_research_response_failed",
                        error=error,
                        error_type=type(e).__name__,
                        exc_info=not isinstance(e, MalformedResponseError),
                    )
                    stats["errors"] += 1

                    with self.db.get_session() as session:
                        self._mark_processed(session, table, row["id"], {
                            "status": "ERROR",
                            "error": error,
                            **_empty_response_stats(),
                        })
                    continue

            for key, value in response_stats.items():
                stats[key] += value
            stats["processed_responses"] += 1

        logger.info("keyword_research_responses_processed", **stats)
        return stats

    def process_responses_all(self, batch_size: int = 100) -> Dict[str, int]:
        """
        Vide tout l'arriere: appelle process_responses(batch_size) jusqu'a
        ce qu'un lot ne selectionne plus aucune reponse.
        """
        totals = {"processed_responses": 0, **_empty_response_stats(), "errors": 0, "batches_processed": 0}

        while True:
            stats = self.process_responses(batch_size)
            if stats["processed_responses"] + stats["errors"] == 0:
                break

            for key, value in stats.items():
                totals[key] += value
            totals["batches_processed"] += 1

        logger.info("keyword_research_backlog_drained", **totals)
        return totals
