"""
Clients des API fournisseurs (adapters du port ApiClient).
"""

from api_cache.infrastructure.external_services.base_api_client import BaseApiClient
from api_cache.infrastructure.external_services.dataforseo_api_client import DataForSeoApiClient
from api_cache.infrastructure.external_services.demo_api_client import DemoApiClient

__all__ = ["BaseApiClient", "DataForSeoApiClient", "DemoApiClient"]
