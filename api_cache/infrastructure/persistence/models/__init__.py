"""
Modeles SQLAlchemy - exports centralises.

Organisation:
- base: Base declarative et horodatage
- response_models: Tables de cache par client (Core, dynamiques)
- error_models: Journal des erreurs API
- keyword_models: Items keyword research ingeres
- rate_limit_models: Fenetres de limitation partagees
"""

from api_cache.infrastructure.persistence.models.base import Base, utcnow
from api_cache.infrastructure.persistence.models.error_models import ApiCacheError
from api_cache.infrastructure.persistence.models.keyword_models import KeywordResearchItem
from api_cache.infrastructure.persistence.models.rate_limit_models import RateLimitRecord
from api_cache.infrastructure.persistence.models.response_models import (
    PAYLOAD_COLUMNS,
    build_responses_table,
)

__all__ = [
    "Base",
    "utcnow",
    "ApiCacheError",
    "KeywordResearchItem",
    "RateLimitRecord",
    "PAYLOAD_COLUMNS",
    "build_responses_table",
]
