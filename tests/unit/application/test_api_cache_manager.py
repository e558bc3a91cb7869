"""
Tests pour ApiCacheManager.
"""

import json

from api_cache.application.services import ApiCacheManager
from api_cache.domain.services import generate_cache_key


class TestApiCacheManager:
    """Tests pour ApiCacheManager."""

    def test_generate_cache_key(self, cache_manager: ApiCacheManager) -> None:
        key = cache_manager.generate_cache_key("demo", "predictions", {"q": 1}, "GET", "v1")
        assert key == generate_cache_key("demo", "predictions", {"q": 1}, "GET", "v1")

    def test_store_and_get(self, cache_manager: ApiCacheManager, api_result_factory) -> None:
        """Test stockage puis relecture en ApiResult cache."""
        result = api_result_factory(body='{"predictions": [1]}')
        result.request.cost = 0.5

        cache_manager.store_response(
            "demo", "k", {"query": "x" * 200}, result, "predictions",
            version="v1", attributes="tag", credits=2,
        )
        cached = cache_manager.get_cached_response("demo", "k")

        assert cached.is_cached is True
        assert cached.response.body == '{"predictions": [1]}'
        assert cached.response.headers == {"Content-Type": "application/json"}
        assert cached.response_status_code == 200
        assert cached.request.full_url == result.request.full_url
        assert cached.request.attributes == "tag"
        assert cached.request.credits == 2
        assert cached.request.cost == 0.5

    def test_params_summary_stored(self, cache_manager: ApiCacheManager, cache_repository, api_result_factory) -> None:
        cache_manager.store_response("demo", "k", {"query": "x" * 200}, api_result_factory(), "predictions")

        summary = json.loads(cache_repository.get("demo", "k")["request_params_summary"])
        assert summary["query"] == "x" * 100 + "..."

    def test_get_missing(self, cache_manager: ApiCacheManager) -> None:
        assert cache_manager.get_cached_response("demo", "missing") is None

    def test_default_ttl(self, cache_repository, rate_limiter, clock, api_result_factory) -> None:
        """Test TTL par client applique quand aucun n'est fourni."""
        manager = ApiCacheManager(cache_repository, rate_limiter, default_ttls={"demo": 30})
        manager.store_response("demo", "k", {}, api_result_factory(), "predictions")

        clock.advance(31)

        assert manager.get_cached_response("demo", "k") is None

    def test_rate_limit_delegation(self, cache_manager: ApiCacheManager) -> None:
        assert cache_manager.allow_request("demo") is True

        cache_manager.increment_attempts("demo", 5)

        assert cache_manager.allow_request("demo") is False
        assert cache_manager.get_remaining_attempts("demo") == 0
        assert cache_manager.get_available_in("demo") == 60

        cache_manager.clear_rate_limit("demo")
        assert cache_manager.get_remaining_attempts("demo") == 5

    def test_table_helpers(self, cache_manager: ApiCacheManager, api_result_factory) -> None:
        assert cache_manager.get_table_name("demo") == "api_cache_demo_responses"

        cache_manager.store_response("demo", "k", {}, api_result_factory(), "predictions")

        assert cache_manager.clear_table("demo") == 1
