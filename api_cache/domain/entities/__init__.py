"""
Entites du domaine.
"""

from api_cache.domain.entities.api_result import ApiRequest, ApiResponse, ApiResult

__all__ = [
    "ApiRequest",
    "ApiResponse",
    "ApiResult",
]
