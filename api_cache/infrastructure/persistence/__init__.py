"""Persistence SQLAlchemy: connexion, modeles et repositories."""

from api_cache.infrastructure.persistence.database import DatabaseManager

__all__ = ["DatabaseManager"]
