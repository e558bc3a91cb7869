"""
Fonctions utilitaires pour les repositories.

Ce module contient les fonctions partagees entre plusieurs repositories,
notamment l'upsert par dialecte (INSERT ... ON CONFLICT DO UPDATE).
"""
from typing import Any, Dict, Optional

from sqlalchemy import Table
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.sql import Executable


def build_upsert(dialect: str, table: Table, values: Dict[str, Any], conflict_column: str) -> Optional[Executable]:
    """
    Construit un upsert atomique sur une colonne unique.

    Args:
        dialect: Nom du dialecte SQLAlchemy (engine.dialect.name).
        table: Table cible.
        values: Valeurs inserees, ou ecrasees en cas de conflit.
        conflict_column: Colonne portant la contrainte d'unicite.

    Returns:
        L'instruction, ou None si le dialecte n'a pas d'upsert natif
        (l'appelant fait alors UPDATE puis INSERT).
    """
    if dialect in ("sqlite", "postgresql"):
        module = sqlite if dialect == "sqlite" else postgresql
        return module.insert(table).values(**values).on_conflict_do_update(
            index_elements=[table.c[conflict_column]],
            set_=values,
        )
    if dialect in ("mysql", "mariadb"):
        return mysql.insert(table).values(**values).on_duplicate_key_update(**values)
    return None
