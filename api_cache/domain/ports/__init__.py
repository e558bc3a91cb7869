"""
Ports du domaine (Hexagonal Architecture).

Les Ports sont des interfaces qui definissent les contrats
entre le domaine et le monde exterieur.

Ports disponibles:
------------------
- RateLimitStorage: Stockage des fenetres de limitation de debit
"""

from api_cache.domain.ports.rate_limit_storage import RateLimitStorage, RateLimitWindow

__all__ = [
    "RateLimitStorage",
    "RateLimitWindow",
]
