"""Testes para logging estruturado, fallback observável e correlation_id."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from sales_hearing.observability.logging import (
    CorrelationIdFilter,
    configure_logging,
    log_fallback,
    preview,
)
from sales_hearing.observability.middleware import CorrelationIdMiddleware, get_correlation_id


def _record() -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)


class TestPreview:
    def test_short_text_unchanged(self) -> None:
        assert preview("abc") == "abc"

    def test_truncates_long_text(self) -> None:
        result = preview("x" * 500, limit=10)
        assert result == "x" * 10 + "..."

    def test_empty(self) -> None:
        assert preview(None) == ""


class TestLogFallback:
    def test_logs_component_and_reason(self) -> None:
        mock_logger = MagicMock()

        log_fallback(mock_logger, "decision", reason="llm_unavailable", elapsed_ms=12.5)

        mock_logger.info.assert_called_once()
        extra = mock_logger.info.call_args.kwargs["extra"]
        assert extra["fallback_used"] is True
        assert extra["component"] == "decision"
        assert extra["reason"] == "llm_unavailable"
        assert extra["elapsed_ms"] == 12.5

    def test_omits_optional_fields(self) -> None:
        mock_logger = MagicMock()

        log_fallback(mock_logger, "extraction")

        extra = mock_logger.info.call_args.kwargs["extra"]
        assert "reason" not in extra
        assert "elapsed_ms" not in extra


class TestCorrelationIdFilter:
    def test_injects_service_and_empty_correlation(self) -> None:
        record = _record()

        assert CorrelationIdFilter("sales_hearing").filter(record) is True
        assert record.service == "sales_hearing"
        assert record.correlation_id == ""

    def test_keeps_existing_correlation_id(self) -> None:
        record = _record()
        record.correlation_id = "abc"

        CorrelationIdFilter("sales_hearing").filter(record)

        assert record.correlation_id == "abc"


class TestConfigureLogging:
    def test_json_handler_installed(self) -> None:
        configure_logging("INFO", "sales_hearing", "json")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert type(root.handlers[0].formatter).__name__ == "JsonFormatter"

    def test_text_handler_installed(self) -> None:
        configure_logging("DEBUG", "sales_hearing", "text")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert type(root.handlers[0].formatter) is logging.Formatter


class TestCorrelationIdMiddleware:
    def _app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(CorrelationIdMiddleware)

        @app.get("/ping")
        async def ping() -> dict[str, str]:
            return {"correlation_id": get_correlation_id()}

        return app

    def test_generates_header(self) -> None:
        with TestClient(self._app()) as client:
            response = client.get("/ping")

        header = response.headers["x-correlation-id"]
        assert header
        assert response.json()["correlation_id"] == header

    def test_propagates_incoming_header(self) -> None:
        with TestClient(self._app()) as client:
            response = client.get("/ping", headers={"x-correlation-id": "req-123"})

        assert response.headers["x-correlation-id"] == "req-123"
        assert response.json()["correlation_id"] == "req-123"

    def test_logs_request(self) -> None:
        with patch("sales_hearing.observability.middleware._access_logger") as mock_logger:
            with TestClient(self._app()) as client:
                client.get("/ping")

        mock_logger.info.assert_called_once()
        extra = mock_logger.info.call_args.kwargs["extra"]
        assert extra["path"] == "/ping"
        assert extra["status_code"] == 200
        assert extra["method"] == "GET"
