"""Adapters d'infrastructure implementant les ports du domaine."""

from api_cache.infrastructure.adapters.memory_rate_limit_storage import MemoryRateLimitStorage
from api_cache.infrastructure.adapters.sql_rate_limit_storage import SqlRateLimitStorage

__all__ = ["MemoryRateLimitStorage", "SqlRateLimitStorage"]
