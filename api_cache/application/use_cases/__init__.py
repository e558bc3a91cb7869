"""Use cases de la couche application."""

from api_cache.application.use_cases.cached_request import (
    RequestOrchestrator,
    always_cache,
    no_cost,
)

__all__ = ["RequestOrchestrator", "always_cache", "no_cost"]
