"""
SqlRateLimitStorage - Implementation SQLAlchemy du RateLimitStorage.

Responsabilite unique:
----------------------
Stocker les fenetres de limitation dans la table api_cache_rate_limits,
pour que plusieurs processus partagent le meme quota.

Note:
-----
Le RateLimiter serialise lecture-modification-ecriture par client dans
un processus. Entre processus, deux admissions simultanees peuvent lire
la meme fenetre: le quota partage est alors approximatif (au plus une
tentative de trop par processus concurrent).
"""

from typing import Optional

from sqlalchemy import delete, insert, select, update

from api_cache.domain.ports.rate_limit_storage import RateLimitStorage, RateLimitWindow
from api_cache.infrastructure.logging import get_logger
from api_cache.infrastructure.persistence.database import DatabaseManager
from api_cache.infrastructure.persistence.models import RateLimitRecord, utcnow
from api_cache.infrastructure.persistence.repositories.utils import build_upsert

logger = get_logger(__name__)


class SqlRateLimitStorage(RateLimitStorage):
    """
    RateLimitStorage persiste en base.

    Example:
        >>> storage = SqlRateLimitStorage(DatabaseManager("sqlite:///:memory:"))
        >>> storage.set("api-cache:rate-limit:demo", RateLimitWindow(1, 0.0))
        >>> storage.get("api-cache:rate-limit:demo").attempts
        1
    """

    def __init__(self, db: DatabaseManager):
        self.db = db
        RateLimitRecord.__table__.create(bind=db.engine, checkfirst=True)

    def get(self, key: str) -> Optional[RateLimitWindow]:
        table = RateLimitRecord.__table__
        with self.db.get_session() as session:
            row = session.execute(
                select(table.c.attempts, table.c.window_start).where(table.c.key == key)
            ).first()
        if row is None:
            return None
        return RateLimitWindow(attempts=row.attempts, window_start=row.window_start)

    def set(self, key: str, window: RateLimitWindow) -> None:
        table = RateLimitRecord.__table__
        now = utcnow()
        values = {
            "key": key,
            "attempts": window.attempts,
            "window_start": window.window_start,
            "created_at": now,
            "updated_at": now,
        }
        statement = build_upsert(self.db.engine.dialect.name, table, values, "key")

        with self.db.get_session() as session:
            if statement is not None:
                session.execute(statement)
                return
            result = session.execute(
                update(table)
                .where(table.c.key == key)
                .values(attempts=window.attempts, window_start=window.window_start, updated_at=now)
            )
            if result.rowcount == 0:
                session.execute(insert(table).values(**values))

    def delete(self, key: str) -> bool:
        table = RateLimitRecord.__table__
        with self.db.get_session() as session:
            result = session.execute(delete(table).where(table.c.key == key))
        return result.rowcount > 0

    def clear(self) -> int:
        """
        Supprime toutes les fenetres.

        Returns:
            Nombre de fenetres supprimees.
        """
        with self.db.get_session() as session:
            result = session.execute(delete(RateLimitRecord.__table__))
        logger.info("rate_limit_windows_cleared", count=result.rowcount)
        return result.rowcount
