"""
Services du domaine.

Fonctions pures sans dependance externe: normalisation des parametres
et derivation des cles de cache.
"""

from api_cache.domain.services.cache_key import (
    generate_cache_key,
    hash_params,
    validate_identifier,
)
from api_cache.domain.services.param_normalizer import (
    MAX_DEPTH,
    is_single_task_array,
    normalize_params,
    summarize_params,
)

__all__ = [
    "MAX_DEPTH",
    "generate_cache_key",
    "hash_params",
    "is_single_task_array",
    "normalize_params",
    "summarize_params",
    "validate_identifier",
]
