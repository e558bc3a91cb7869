"""
Tests unitaires pour les clients fournisseurs (session requests mockee).
"""

import base64
import json
from unittest.mock import MagicMock

import pytest
import requests

from api_cache.domain.exceptions import (
    InvalidIdentifierError,
    InvalidParamsError,
    TransportError,
    UpstreamRequestError,
)
from api_cache.infrastructure.external_services import (
    BaseApiClient,
    DataForSeoApiClient,
    DemoApiClient,
)


# ============================================================
# Fixtures
# ============================================================


def _http_response(status_code: int = 200, body: str = '{"ok": true}', url: str = "", method: str = "GET"):
    """Reponse requests simulee."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = {"Content-Type": "application/json"}
    response.text = body
    response.content = body.encode("utf-8")
    response.request.url = url
    response.request.method = method
    response.request.headers = {"Authorization": "Bearer key"}
    response.request.body = None
    return response


@pytest.fixture
def mock_session() -> MagicMock:
    """Mock de la session requests."""
    session = MagicMock()
    session.request.return_value = _http_response(url="http://api.test/v1/predictions?query=x")
    return session


@pytest.fixture
def client(mock_session: MagicMock) -> BaseApiClient:
    return BaseApiClient("demo", "http://api.test/v1/", "key", "v1", session=mock_session)


# ============================================================
# Tests BaseApiClient
# ============================================================


class TestBaseApiClient:
    """Tests pour BaseApiClient."""

    def test_invalid_client_name(self, mock_session: MagicMock) -> None:
        with pytest.raises(InvalidIdentifierError):
            BaseApiClient("bad name", "http://api.test", session=mock_session)

    def test_build_url(self, client: BaseApiClient) -> None:
        """Test base_url sans '/' final et endpoint sans '/' initial."""
        assert client.build_url("/predictions") == "http://api.test/v1/predictions"
        assert client.build_url("reports", "123") == "http://api.test/v1/reports/123"

    def test_auth_headers(self, client: BaseApiClient) -> None:
        headers = client.get_auth_headers()
        assert headers["Authorization"] == "Bearer key"
        assert headers["Accept"] == "application/json"

    def test_get_sends_query_params(self, client: BaseApiClient, mock_session: MagicMock) -> None:
        client.send_request("predictions", {"query": "x"}, "GET")

        args, kwargs = mock_session.request.call_args
        assert args == ("GET", "http://api.test/v1/predictions")
        assert kwargs["params"] == {"query": "x"}
        assert "json" not in kwargs
        assert kwargs["timeout"] == 30

    def test_post_sends_json(self, client: BaseApiClient, mock_session: MagicMock) -> None:
        client.send_request("reports", [{"a": 1}], "post")

        args, kwargs = mock_session.request.call_args
        assert args[0] == "POST"
        assert kwargs["json"] == [{"a": 1}]
        assert "params" not in kwargs

    def test_unsupported_method(self, client: BaseApiClient) -> None:
        with pytest.raises(InvalidParamsError):
            client.send_request("x", {}, "TRACE")

    def test_result(self, client: BaseApiClient) -> None:
        """Test construction de l'ApiResult."""
        result = client.send_request("predictions", {"query": "x"}, "GET", "tag", "tag2", 3)

        assert result.response_status_code == 200
        assert result.response.body == '{"ok": true}'
        assert result.response_size == len('{"ok": true}')
        assert result.request.full_url == "http://api.test/v1/predictions?query=x"
        assert result.request.base_url == "http://api.test/v1"
        assert result.request.attributes == "tag"
        assert result.request.attributes2 == "tag2"
        assert result.request.credits == 3
        assert result.params == {"query": "x"}
        assert result.is_cached is False
        assert result.response_time >= 0

    def test_non_2xx_returned(self, client: BaseApiClient, mock_session: MagicMock) -> None:
        """Test une reponse non-2xx est retournee, pas levee."""
        mock_session.request.return_value = _http_response(500, "boom")

        result = client.send_request("predictions")

        assert result.response_status_code == 500
        assert result.response.successful is False

    def test_connection_error(self, client: BaseApiClient, mock_session: MagicMock) -> None:
        mock_session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransportError) as exc_info:
            client.send_request("predictions")
        assert exc_info.value.url == "http://api.test/v1/predictions"

    def test_timeout(self, client: BaseApiClient, mock_session: MagicMock) -> None:
        mock_session.request.side_effect = requests.Timeout("slow")

        with pytest.raises(TransportError):
            client.send_request("predictions")

    def test_other_request_error(self, client: BaseApiClient, mock_session: MagicMock) -> None:
        mock_session.request.side_effect = requests.TooManyRedirects("loop")

        with pytest.raises(UpstreamRequestError) as exc_info:
            client.send_request("predictions")
        assert exc_info.value.status_code == 0

    def test_send_cached_request_without_orchestrator(self, client: BaseApiClient) -> None:
        with pytest.raises(RuntimeError):
            client.send_cached_request("predictions")

    def test_send_cached_request_delegates(self, client: BaseApiClient) -> None:
        client.orchestrator = MagicMock()

        client.send_cached_request("predictions", {"q": 1}, "GET", "a", None, 2)

        client.orchestrator.send_cached_request.assert_called_once_with(
            "predictions", {"q": 1}, "GET", "a", None, 2
        )


# ============================================================
# Tests DemoApiClient
# ============================================================


class TestDemoApiClient:
    """Tests pour DemoApiClient."""

    def test_predictions(self, mock_session: MagicMock) -> None:
        demo = DemoApiClient("http://api.test/v1", "key", "v1", session=mock_session)
        demo.orchestrator = MagicMock()

        demo.predictions("weather", max_results=5)

        demo.orchestrator.send_cached_request.assert_called_once_with(
            "predictions", {"query": "weather", "max_results": 5}, "GET", None, None, 1
        )
        assert demo.client_name == "demo"

    def test_reports(self, mock_session: MagicMock) -> None:
        demo = DemoApiClient("http://api.test/v1", "key", "v1", session=mock_session)
        demo.orchestrator = MagicMock()

        demo.reports("sales", "crm", attributes="q1")

        args = demo.orchestrator.send_cached_request.call_args[0]
        assert args[0] == "reports"
        assert args[1] == {"report_type": "sales", "data_source": "crm"}
        assert args[2] == "POST"
        assert args[3] == "q1"


# ============================================================
# Tests DataForSeoApiClient
# ============================================================


@pytest.fixture
def dataforseo(mock_session: MagicMock) -> DataForSeoApiClient:
    client = DataForSeoApiClient("https://api.dataforseo.com/v3", "login", "secret", "v3", session=mock_session)
    client.orchestrator = MagicMock()
    return client


class TestDataForSeoApiClient:
    """Tests pour DataForSeoApiClient."""

    def test_basic_auth(self, dataforseo: DataForSeoApiClient) -> None:
        expected = base64.b64encode(b"login:secret").decode("ascii")
        assert dataforseo.get_auth_headers()["Authorization"] == f"Basic {expected}"
        assert dataforseo.client_name == "dataforseo"

    def test_calculate_cost(self, dataforseo: DataForSeoApiClient) -> None:
        assert dataforseo.calculate_cost('{"cost": 0.0125}') == 0.0125
        assert dataforseo.calculate_cost('{"cost": 2}') == 2.0
        assert dataforseo.calculate_cost('{"cost": "1"}') is None
        assert dataforseo.calculate_cost('{"cost": true}') is None
        assert dataforseo.calculate_cost("not json") is None
        assert dataforseo.calculate_cost(None) is None

    def test_should_cache_success(self, dataforseo: DataForSeoApiClient) -> None:
        body = json.dumps({"tasks_count": 2, "tasks_error": 1, "tasks": []})
        assert dataforseo.should_cache(body) is True

    def test_should_cache_all_failed(self, dataforseo: DataForSeoApiClient) -> None:
        """Test refus quand toutes les taches ont echoue."""
        body = json.dumps({"tasks_count": 1, "tasks_error": 1, "status_code": 40501})
        assert dataforseo.should_cache(body) is False

    def test_should_cache_invalid_json(self, dataforseo: DataForSeoApiClient) -> None:
        assert dataforseo.should_cache("<html>") is False
        assert dataforseo.should_cache(None) is False

    def test_keyword_overview(self, dataforseo: DataForSeoApiClient) -> None:
        dataforseo.labs_google_keyword_overview_live(["a", "b"], location_code=2250, language_code="fr")

        args = dataforseo.orchestrator.send_cached_request.call_args[0]
        assert args[0] == "dataforseo_labs/google/keyword_overview/live"
        assert args[1] == [{"keywords": ["a", "b"], "location_code": 2250, "language_code": "fr"}]
        assert args[2] == "POST"
        assert args[3] == "a,b"

    def test_bulk_keyword_difficulty(self, dataforseo: DataForSeoApiClient) -> None:
        dataforseo.labs_google_bulk_keyword_difficulty_live(["a"], attributes="batch-1")

        args = dataforseo.orchestrator.send_cached_request.call_args[0]
        assert args[0] == "dataforseo_labs/google/bulk_keyword_difficulty/live"
        assert args[3] == "batch-1"

    def test_empty_keywords(self, dataforseo: DataForSeoApiClient) -> None:
        with pytest.raises(InvalidParamsError):
            dataforseo.labs_google_keyword_overview_live([])

    def test_too_many_keywords(self, dataforseo: DataForSeoApiClient) -> None:
        with pytest.raises(InvalidParamsError):
            dataforseo.labs_google_keyword_overview_live([f"k{i}" for i in range(1001)])

    def test_location_required(self, dataforseo: DataForSeoApiClient) -> None:
        with pytest.raises(InvalidParamsError):
            dataforseo.labs_google_keyword_overview_live(["a"], location_code=None)
