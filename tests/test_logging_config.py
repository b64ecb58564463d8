"""
Tests for logging configuration.
"""
import logging


class TestLoggingConfiguration:
    """Test logging setup and configuration."""

    def test_setup_logging_default_level(self, monkeypatch):
        """Test that setup_logging defaults to INFO level."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        from warmindo_order.logging_config import setup_logging
        setup_logging()

        logger = logging.getLogger("warmindo_order")
        assert logger.level == logging.INFO

    def test_setup_logging_respects_env_var(self, monkeypatch):
        """Test that LOG_LEVEL env var is respected."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")

        from warmindo_order.logging_config import setup_logging
        setup_logging()

        logger = logging.getLogger("warmindo_order")
        assert logger.level == logging.WARNING

    def test_setup_logging_invalid_level_defaults_to_info(self):
        """Test that invalid level falls back to INFO."""
        from warmindo_order.logging_config import setup_logging
        setup_logging(level="INVALID_LEVEL")

        assert logging.getLogger("warmindo_order").level == logging.INFO

    def test_third_party_noise_reduced(self):
        from warmindo_order.logging_config import setup_logging
        setup_logging(level="INFO")

        assert logging.getLogger("openai").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestNoSensitiveDataInLogs:
    """Test that secrets are not logged at INFO level or higher."""

    def test_llm_client_does_not_log_api_key(self, caplog, monkeypatch):
        import importlib

        import warmindo_order.llm_client as llm_client

        monkeypatch.setattr("warmindo_order.config.OPENAI_API_KEY", "sk-test-secret-value")
        with caplog.at_level(logging.DEBUG):
            importlib.reload(llm_client)

        for record in caplog.records:
            assert "sk-test-secret-value" not in record.getMessage()


class TestRequestIdInLogs:
    """Test that log records carry the id of the request being served."""

    def test_filter_outside_request(self):
        from warmindo_order.logging_config import RequestIdFilter

        record = logging.LogRecord("warmindo_order.x", logging.INFO, __file__, 1, "msg", None, None)
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "-"

    def test_request_id_visible_during_request(self, client):
        from fastapi import APIRouter

        from warmindo_order.logging_config import RequestIdFilter

        seen = {}
        router = APIRouter()

        @router.get("/_probe")
        def probe():
            record = logging.LogRecord("warmindo_order.x", logging.INFO, __file__, 1, "msg", None, None)
            RequestIdFilter().filter(record)
            seen["request_id"] = record.request_id
            return {}

        client.app.include_router(router)
        client.get("/_probe", headers={"X-Request-ID": "req-7"})

        assert seen["request_id"] == "req-7"
