"""Tests for structured logging configuration and request middleware."""

import json
import logging
import re
from io import StringIO
from unittest.mock import patch

import pytest
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from invitegen.logging_config import REDACTED, configure_logging


@pytest.fixture(autouse=True)
def _reset_structlog() -> None:
    """Reset structlog state after each test."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


def _capture_log_output(environment: str, **event_kw: object) -> str:
    """Configure logging, emit one event, return captured output."""
    configure_logging(environment=environment, log_level="DEBUG")

    stream = StringIO()
    root = logging.getLogger()
    if not root.handlers or not isinstance(root.handlers[0], logging.StreamHandler):
        raise RuntimeError("Expected configure_logging to set up a StreamHandler")

    original_stream = root.handlers[0].stream
    root.handlers[0].stream = stream

    structlog.get_logger().info("test_event", **event_kw)

    root.handlers[0].stream = original_stream
    return stream.getvalue()


class TestConfigureLogging:
    def test_production_json(self) -> None:
        parsed = json.loads(_capture_log_output("production", key="value"))
        assert parsed["event"] == "test_event"
        assert parsed["key"] == "value"
        assert parsed["level"] == "info"
        assert parsed["service"] == "invitegen-edge"

    def test_development_console(self) -> None:
        output = _capture_log_output("development", key="value")
        plain = re.sub(r"\x1b\[[0-9;]*m", "", output)
        assert "test_event" in plain
        assert "key=value" in plain

    def test_sets_log_level(self) -> None:
        configure_logging(log_level="WARNING")
        assert logging.getLogger().level == logging.WARNING

    def test_includes_timestamp(self) -> None:
        parsed = json.loads(_capture_log_output("production"))
        assert "T" in parsed["timestamp"]

    def test_redacts_sensitive_keys(self) -> None:
        parsed = json.loads(
            _capture_log_output("production", password="hunter2", csrf_token="ab")
        )
        assert parsed["password"] == REDACTED
        assert parsed["csrf_token"] == REDACTED

    def test_redacts_sensitive_headers(self) -> None:
        parsed = json.loads(
            _capture_log_output(
                "production",
                headers={"Cookie": "csrf-token=ab", "X-Forwarded-For": "1.2.3.4"},
            )
        )
        assert parsed["headers"]["Cookie"] == REDACTED
        assert parsed["headers"]["X-Forwarded-For"] == "1.2.3.4"


class TestRequestLoggingMiddleware:
    @pytest.fixture()
    def test_app(self) -> FastAPI:
        """Minimal app with only the logging middleware."""
        from invitegen.api.middleware import RequestLoggingMiddleware

        app = FastAPI()
        app.add_middleware(RequestLoggingMiddleware)

        @app.get("/test-endpoint")
        async def _test_endpoint() -> dict[str, str]:
            return {"ok": "true"}

        @app.get("/health")
        async def _health() -> dict[str, str]:
            return {"status": "ok"}

        @app.get("/_next/static/app.js")
        async def _asset() -> str:
            return "asset"

        return app

    async def test_logs_request(self, test_app: FastAPI) -> None:
        with patch("invitegen.api.middleware.logger") as mock_logger:
            async with AsyncClient(
                transport=ASGITransport(app=test_app),
                base_url="http://test",
            ) as client:
                await client.get(
                    "/test-endpoint", headers={"X-Forwarded-For": "9.9.9.9"}
                )

            mock_logger.info.assert_called_once()
            call_args = mock_logger.info.call_args
            assert call_args[0][0] == "http_request"
            assert call_args[1]["method"] == "GET"
            assert call_args[1]["path"] == "/test-endpoint"
            assert call_args[1]["status_code"] == 200
            assert call_args[1]["client_ip"] == "9.9.9.9"
            assert "latency_ms" in call_args[1]

    @pytest.mark.parametrize("path", ["/health", "/_next/static/app.js"])
    async def test_skips_health_and_assets(self, test_app: FastAPI, path: str) -> None:
        with patch("invitegen.api.middleware.logger") as mock_logger:
            async with AsyncClient(
                transport=ASGITransport(app=test_app),
                base_url="http://test",
            ) as client:
                await client.get(path)

            mock_logger.info.assert_not_called()
