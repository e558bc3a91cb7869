"""Ports de la couche application."""

from api_cache.application.ports.api_client import ApiClient

__all__ = ["ApiClient"]
