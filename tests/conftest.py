"""
Configuration et fixtures pytest.
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional

import pytest

# Ajouter le repertoire racine au path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api_cache.application.ports.api_client import ApiClient
from api_cache.application.services import ApiCacheManager
from api_cache.domain.entities import ApiRequest, ApiResponse, ApiResult
from api_cache.infrastructure.adapters import MemoryRateLimitStorage
from api_cache.infrastructure.config import ApiCacheSettings, ErrorLoggingSettings
from api_cache.infrastructure.persistence import DatabaseManager
from api_cache.infrastructure.persistence.repositories import CacheRepository, ErrorLogger
from api_cache.infrastructure.rate_limiting import RateLimitConfig, RateLimiter


# ═══════════════════════════════════════════════════════════════════════════════
# HORLOGES
# ═══════════════════════════════════════════════════════════════════════════════

class FakeClock:
    """Horloge datetime controlable (UTC naif)."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeTimer:
    """Horloge en secondes controlable (pour le RateLimiter)."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Horloge fixee au 2024-01-01 12:00:00."""
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0))


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES - INFRASTRUCTURE
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def settings() -> ApiCacheSettings:
    """Configuration de test (base SQLite en memoire, sans fichier .env)."""
    return ApiCacheSettings(_env_file=None, database_url="sqlite:///:memory:")


@pytest.fixture
def db():
    """DatabaseManager sur SQLite en memoire."""
    manager = DatabaseManager("sqlite:///:memory:")
    manager.create_tables()
    yield manager
    manager.dispose()


@pytest.fixture
def cache_repository(db: DatabaseManager, clock: FakeClock) -> CacheRepository:
    return CacheRepository(db, clock=clock)


@pytest.fixture
def error_logger(db: DatabaseManager, clock: FakeClock) -> ErrorLogger:
    return ErrorLogger(db, ErrorLoggingSettings(), clock=clock)


@pytest.fixture
def rate_limiter(timer: FakeTimer) -> RateLimiter:
    """Limiteur: 5 tentatives / 60 s pour 'demo'."""
    return RateLimiter(
        MemoryRateLimitStorage(),
        limits={"demo": RateLimitConfig(max_attempts=5, decay_seconds=60)},
        clock=timer,
    )


@pytest.fixture
def cache_manager(cache_repository: CacheRepository, rate_limiter: RateLimiter) -> ApiCacheManager:
    return ApiCacheManager(cache_repository, rate_limiter)


# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES - CLIENT API FACTICE
# ═══════════════════════════════════════════════════════════════════════════════

def make_api_result(
    status_code: int = 200,
    body: str = '{"ok": true}',
    full_url: str = "http://api.test/v1/predictions",
    method: str = "GET",
    params: Any = None,
) -> ApiResult:
    """Construit un ApiResult comme le ferait un client reel."""
    return ApiResult(
        request=ApiRequest(
            base_url="http://api.test/v1",
            full_url=full_url,
            method=method,
            headers={"Accept": "application/json"},
            body=None,
        ),
        response=ApiResponse(
            status_code=status_code,
            headers={"Content-Type": "application/json"},
            body=body,
        ),
        response_status_code=status_code,
        response_size=len(body.encode("utf-8")),
        response_time=0.05,
        params=params,
    )


class FakeApiClient(ApiClient):
    """
    Client API factice.

    Retourne les resultats de `results` dans l'ordre (ou leve l'exception
    placee dans la file) et enregistre chaque appel.
    """

    def __init__(self, client_name: str = "demo", version: Optional[str] = "v1"):
        self.client_name = client_name
        self.version = version
        self.base_url = "http://api.test/v1"
        self.results: list = []
        self.calls: list = []

    def build_url(self, endpoint: str, path_suffix: Optional[str] = None) -> str:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        if path_suffix is not None:
            url = f"{url}/{path_suffix.lstrip('/')}"
        return url

    def send_request(
        self,
        endpoint: str,
        params: Any = None,
        method: str = "GET",
        attributes: Optional[str] = None,
        attributes2: Optional[str] = None,
        credits: Optional[int] = None,
    ) -> ApiResult:
        self.calls.append({
            "endpoint": endpoint,
            "params": params,
            "method": method,
            "attributes": attributes,
            "attributes2": attributes2,
            "credits": credits,
        })

        outcome = self.results.pop(0) if self.results else make_api_result(params=params)
        if isinstance(outcome, Exception):
            raise outcome

        outcome.request.attributes = attributes
        outcome.request.attributes2 = attributes2
        outcome.request.credits = credits
        outcome.params = params
        return outcome


@pytest.fixture
def fake_client() -> FakeApiClient:
    return FakeApiClient()


@pytest.fixture
def api_result_factory():
    """Fabrique d'ApiResult (voir make_api_result)."""
    return make_api_result
