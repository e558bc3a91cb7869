"""
Modele SQLAlchemy du journal des erreurs API.
"""
from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from api_cache.infrastructure.persistence.models.base import Base, utcnow


class ApiCacheError(Base):
    """Erreur survenue lors d'un appel API (append-only)"""
    __tablename__ = "api_cache_errors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    api_client = Column(String(255), nullable=False)
    error_type = Column(String(255), nullable=False)
    log_level = Column(String(50), nullable=False)
    error_message = Column(Text)
    api_message = Column(Text)
    response_preview = Column(Text)
    context_data = Column(Text)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("idx_api_cache_errors_client", "api_client"),
        Index("idx_api_cache_errors_type", "error_type"),
        Index("idx_api_cache_errors_created", "created_at"),
    )
