"""
Tests pour la configuration structlog et bound_context.
"""

import logging

import structlog

from api_cache.infrastructure.logging import bound_context, configure_logging, get_logger


class TestBoundContext:
    """Tests pour bound_context."""

    def test_binds_and_unbinds(self) -> None:
        with bound_context(client="demo", endpoint="predictions"):
            context = structlog.contextvars.get_contextvars()
            assert context["client"] == "demo"
            assert context["endpoint"] == "predictions"

        assert "client" not in structlog.contextvars.get_contextvars()

    def test_nested_restores_outer_value(self) -> None:
        with bound_context(client="outer"):
            with bound_context(client="inner", response_id=1):
                assert structlog.contextvars.get_contextvars()["client"] == "inner"
            context = structlog.contextvars.get_contextvars()
            assert context["client"] == "outer"
            assert "response_id" not in context

    def test_unbinds_on_error(self) -> None:
        try:
            with bound_context(client="demo"):
                raise ValueError("boom")
        except ValueError:
            pass

        assert "client" not in structlog.contextvars.get_contextvars()


class TestConfigureLogging:
    """Tests pour configure_logging."""

    def test_json_logs(self, caplog) -> None:
        """Test rendu JSON via le logging standard."""
        caplog.set_level(logging.INFO)
        configure_logging(json_logs=True, log_level="INFO")
        get_logger("tests.json").info("cache_hit", client="demo")

        output = caplog.text
        assert '"event": "cache_hit"' in output
        assert '"client": "demo"' in output

        structlog.reset_defaults()
