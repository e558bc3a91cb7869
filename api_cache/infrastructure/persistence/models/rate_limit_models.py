"""
Modele SQLAlchemy des fenetres de limitation de debit partagees.
"""
from sqlalchemy import Column, DateTime, Float, Integer, String

from api_cache.infrastructure.persistence.models.base import Base, utcnow


class RateLimitRecord(Base):
    """Fenetre de limitation d'une cle (une ligne par client)"""
    __tablename__ = "api_cache_rate_limits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), unique=True, nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    window_start = Column(Float, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
