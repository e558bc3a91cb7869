"""
Client de l'API DataForSEO.

Specificites:
- Authentification Basic (login / mot de passe)
- Requetes sous forme de liste de taches
- Une reponse dont toutes les taches sont en erreur n'est pas cachee
- Le cout de l'appel est lu dans le champ "cost" de la reponse
"""

import base64
import json
from numbers import Number
from typing import Any, Dict, Optional

from api_cache.domain.entities import ApiResult
from api_cache.domain.exceptions import InvalidParamsError
from api_cache.infrastructure.external_services.base_api_client import BaseApiClient
from api_cache.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Nombre maximal de mots-cles par tache Labs
MAX_LABS_KEYWORDS = 1000


class DataForSeoApiClient(BaseApiClient):
    """Client 'dataforseo'."""

    def __init__(
        self,
        base_url: str,
        login: Optional[str] = None,
        password: Optional[str] = None,
        version: Optional[str] = None,
        **kwargs,
    ):
        self.login = login
        self.password = password
        super().__init__("dataforseo", base_url, None, version, **kwargs)

    def get_auth_headers(self) -> Dict[str, str]:
        credentials = base64.b64encode(f"{self.login}:{self.password}".encode("utf-8")).decode("ascii")
        return {
            "Authorization": f"Basic {credentials}",
            "Content-Type": "application/json",
        }

    def calculate_cost(self, response_body: Optional[str]) -> Optional[float]:
        if response_body is None:
            return None

        try:
            data = json.loads(response_body)
        except json.JSONDecodeError:
            return None

        cost = data.get("cost") if isinstance(data, dict) else None
        if isinstance(cost, Number) and not isinstance(cost, bool):
            return float(cost)
        return None

    def should_cache(self, response_body: Optional[str]) -> bool:
        if response_body is None:
            return False

        try:
            data = json.loads(response_body)
        except json.JSONDecodeError as e:
            logger.debug("dataforseo_response_not_cached", reason="invalid_json", error=str(e))
            return False

        if not isinstance(data, dict):
            return True

        tasks_error = data.get("tasks_error")
        tasks_count = data.get("tasks_count")
        if tasks_error is not None and tasks_count is not None and tasks_error >= 1 and tasks_error == tasks_count:
            logger.debug(
                "dataforseo_response_not_cached",
                reason="all_tasks_failed",
                tasks_error=tasks_error,
                tasks_count=tasks_count,
                status_code=data.get("status_code"),
                status_message=data.get("status_message"),
            )
            return False

        return True

    def _labs_keywords_task(
        self,
        keywords: list[str],
        location_code: Optional[int],
        language_code: Optional[str],
        location_name: Optional[str],
        language_name: Optional[str],
        tag: Optional[str],
        additional_params: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        if not keywords:
            raise InvalidParamsError("La liste de mots-cles ne peut pas etre vide")
        if len(keywords) > MAX_LABS_KEYWORDS:
            raise InvalidParamsError(f"Nombre maximal de mots-cles: {MAX_LABS_KEYWORDS}")
        if language_name is None and language_code is None:
            raise InvalidParamsError("language_name ou language_code est requis")
        if location_name is None and location_code is None:
            raise InvalidParamsError("location_name ou location_code est requis")

        task = {
            **(additional_params or {}),
            "keywords": keywords,
            "location_name": location_name,
            "location_code": location_code,
            "language_name": language_name,
            "language_code": language_code,
            "tag": tag,
        }
        return {k: v for k, v in task.items() if v is not None}

    def labs_google_keyword_overview_live(
        self,
        keywords: list[str],
        location_code: Optional[int] = 2840,
        language_code: Optional[str] = "en",
        location_name: Optional[str] = None,
        language_name: Optional[str] = None,
        tag: Optional[str] = None,
        additional_params: Optional[Dict[str, Any]] = None,
        attributes: Optional[str] = None,
        amount: int = 1,
    ) -> ApiResult:
        """
        DataForSEO Labs Google Keyword Overview (live).

        Raises:
            InvalidParamsError: Liste vide, plus de 1000 mots-cles, ou ni
                location ni language fournis.
        """
        task = self._labs_keywords_task(
            keywords, location_code, language_code, location_name, language_name, tag, additional_params
        )
        logger.debug("dataforseo_keyword_overview_request", keywords_count=len(keywords))

        return self.send_cached_request(
            "dataforseo_labs/google/keyword_overview/live",
            [task],
            "POST",
            attributes if attributes is not None else ",".join(keywords),
            amount=amount,
        )

    def labs_google_bulk_keyword_difficulty_live(
        self,
        keywords: list[str],
        location_code: Optional[int] = 2840,
        language_code: Optional[str] = "en",
        location_name: Optional[str] = None,
        language_name: Optional[str] = None,
        tag: Optional[str] = None,
        additional_params: Optional[Dict[str, Any]] = None,
        attributes: Optional[str] = None,
        amount: int = 1,
    ) -> ApiResult:
        """DataForSEO Labs Google Bulk Keyword Difficulty (live)."""
        task = self._labs_keywords_task(
            keywords, location_code, language_code, location_name, language_name, tag, additional_params
        )
        logger.debug("dataforseo_bulk_keyword_difficulty_request", keywords_count=len(keywords))

        return self.send_cached_request(
            "dataforseo_labs/google/bulk_keyword_difficulty/live",
            [task],
            "POST",
            attributes if attributes is not None else ",".join(keywords),
            amount=amount,
        )
