"""
Tables de cache des reponses API, une par client.

Les tables sont construites dynamiquement (SQLAlchemy Core) car leur nom
depend du client: api_cache_<client>_responses[_compressed].
Les colonnes d'en-tetes et de corps sont Text pour les tables simples et
LargeBinary pour les tables compressees.
"""
import hashlib

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
)

from api_cache.infrastructure.persistence.models.base import utcnow


# Colonnes dont le contenu peut etre compresse
PAYLOAD_COLUMNS = (
    "request_headers",
    "request_body",
    "response_headers",
    "response_body",
)


def _index_name(table_name: str, suffix: str) -> str:
    # Noms d'index uniques par base (SQLite) et < 63 caracteres (PostgreSQL)
    digest = hashlib.md5(table_name.encode("utf-8")).hexdigest()[:12]
    return f"idx_{digest}_{suffix}"


def build_responses_table(
    table_name: str,
    metadata: MetaData,
    compressed: bool = False,
) -> Table:
    """
    Retourne la Table des reponses en cache, la declarant si besoin.

    Args:
        table_name: Nom complet de la table.
        metadata: MetaData auquel rattacher la table.
        compressed: True pour des colonnes de payload binaires.

    Returns:
        Table SQLAlchemy Core.
    """
    if table_name in metadata.tables:
        return metadata.tables[table_name]

    payload_type = LargeBinary if compressed else Text

    return Table(
        table_name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("key", String(255), unique=True, nullable=False),
        Column("client", String(255), nullable=False),
        Column("version", String(255)),
        Column("endpoint", String(255), nullable=False),
        Column("base_url", String(255)),
        Column("full_url", String(2048)),
        Column("method", String(16)),
        Column("attributes", String(255)),
        Column("attributes2", String(255)),
        Column("credits", Integer),
        Column("cost", Float),
        Column("request_params_summary", Text),
        *[Column(name, payload_type) for name in PAYLOAD_COLUMNS],
        Column("response_status_code", Integer),
        Column("response_size", Integer),
        Column("response_time", Float),
        Column("expires_at", DateTime),
        Column("processed_at", DateTime),
        Column("processed_status", Text),
        Column("created_at", DateTime, default=utcnow),
        Column("updated_at", DateTime, default=utcnow, onupdate=utcnow),
        Index(_index_name(table_name, "client_endpoint_version"), "client", "endpoint", "version"),
        Index(_index_name(table_name, "expires_at"), "expires_at"),
        Index(_index_name(table_name, "processed_at"), "processed_at"),
    )
