"""
Gestion de la connexion a la base de cache.

Architecture Hexagonale:
------------------------
Ce module fait partie de la couche Infrastructure (Adapters).

    api_cache/infrastructure/persistence/
    ├── database.py          <- CE FICHIER (DatabaseManager)
    ├── models/              <- Modeles SQLAlchemy
    │   ├── base.py          Base declarative
    │   ├── response_models.py  Tables de cache par client
    │   ├── error_models.py     Journal des erreurs
    │   ├── rate_limit_models.py Fenetres de limitation partagees
    │   └── keyword_models.py   Items keyword research
    └── repositories/        <- Acces aux donnees
        ├── cache_repository.py
        ├── table_converter.py
        └── error_log_repository.py

Connection Pooling:
-------------------
- PostgreSQL/MySQL: pool_size=5, max_overflow=10, pool_recycle=1800,
  pool_pre_ping=True
- SQLite fichier: pool par defaut de SQLAlchemy
- SQLite en memoire: StaticPool (une seule connexion partagee par
  toutes les sessions, sinon chaque session verrait une base vide)
"""
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from api_cache.infrastructure.logging import get_logger
from api_cache.infrastructure.persistence.models import Base

logger = get_logger(__name__)


class DatabaseManager:
    """
    Gestionnaire central de connexion a la base de donnees.

    Encapsule le moteur SQLAlchemy et fournit un context manager pour
    les sessions avec gestion automatique des transactions.

    Attributes:
        engine: Moteur SQLAlchemy
        SessionLocal: Factory de sessions configuree

    Example:
        >>> db = DatabaseManager("sqlite:///:memory:")
        >>> db.create_tables()
        >>> with db.get_session() as session:
        ...     session.query(ApiCacheError).count()
        # Commit automatique si pas d'exception
        # Rollback automatique en cas d'erreur
    """

    def __init__(self, database_url: Optional[str] = None):
        if database_url is None:
            from api_cache.infrastructure.config import get_settings
            database_url = get_settings().database_url

        url = make_url(database_url)
        self.dialect = url.get_backend_name()

        if self.dialect == "sqlite":
            if url.database in (None, "", ":memory:"):
                self.engine = create_engine(
                    database_url,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                    echo=False,
                )
            else:
                self.engine = create_engine(
                    database_url,
                    connect_args={"check_same_thread": False},
                    echo=False,
                )
        else:
            self.engine = create_engine(
                database_url,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=1800,
                echo=False,
            )
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        logger.debug("database_engine_created", dialect=self.dialect)

    def create_tables(self):
        """Cree toutes les tables declarees si elles n'existent pas."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """Context manager pour les sessions avec gestion automatique des transactions."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_pool_status(self) -> Dict:
        """Retourne les statistiques du pool de connexions."""
        pool = self.engine.pool
        return {
            "pool_class": type(pool).__name__,
            "checked_out": pool.checkedout() if hasattr(pool, "checkedout") else 0,
        }

    def dispose(self):
        """Ferme toutes les connexions du pool."""
        self.engine.dispose()
