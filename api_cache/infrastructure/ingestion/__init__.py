"""Pipelines d'ingestion des reponses cachees."""

from api_cache.infrastructure.ingestion.keyword_research_processor import (
    ENDPOINTS_TO_PROCESS,
    KeywordResearchProcessor,
)

__all__ = ["ENDPOINTS_TO_PROCESS", "KeywordResearchProcessor"]
