"""
Client de l'API de demonstration (predictions, reports).
"""

from typing import Any, Optional

from api_cache.domain.entities import ApiResult
from api_cache.infrastructure.external_services.base_api_client import BaseApiClient
from api_cache.infrastructure.logging import get_logger

logger = get_logger(__name__)


class DemoApiClient(BaseApiClient):
    """Client 'demo'."""

    def __init__(self, base_url: str, api_key: Optional[str] = None, version: Optional[str] = None, **kwargs):
        super().__init__("demo", base_url, api_key, version, **kwargs)

    def predictions(
        self,
        query: str,
        max_results: int = 10,
        additional_params: Optional[dict[str, Any]] = None,
        attributes: Optional[str] = None,
        amount: int = 1,
    ) -> ApiResult:
        logger.debug("demo_predictions_request", query=query, max_results=max_results)

        params = {**(additional_params or {}), "query": query, "max_results": max_results}
        return self.send_cached_request("predictions", params, "GET", attributes, amount=amount)

    def reports(
        self,
        report_type: str,
        data_source: str,
        additional_params: Optional[dict[str, Any]] = None,
        attributes: Optional[str] = None,
        amount: int = 1,
    ) -> ApiResult:
        logger.debug("demo_reports_request", report_type=report_type, data_source=data_source)

        params = {**(additional_params or {}), "report_type": report_type, "data_source": data_source}
        return self.send_cached_request("reports", params, "POST", attributes, amount=amount)
