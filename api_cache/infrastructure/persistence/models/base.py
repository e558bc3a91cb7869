"""
Base declarative SQLAlchemy partagee par tous les modeles.
"""
from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Horodatage UTC naif, format stocke dans toutes les tables."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
