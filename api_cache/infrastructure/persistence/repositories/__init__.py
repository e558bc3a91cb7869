"""
Repositories - acces aux donnees.

- cache_repository: Tables de cache des reponses par client
- error_log_repository: Journal des erreurs API
- table_converter: Conversion table simple <-> table compressee
- utils: Upsert par dialecte
"""

from api_cache.infrastructure.persistence.repositories.cache_repository import CacheRepository
from api_cache.infrastructure.persistence.repositories.error_log_repository import ErrorLogger
from api_cache.infrastructure.persistence.repositories.table_converter import ResponsesTableConverter

__all__ = ["CacheRepository", "ErrorLogger", "ResponsesTableConverter"]
