"""Unit tests for logging setup, processors and request context."""

import sys
from unittest.mock import patch

import pytest
import structlog

from infrastructure.configuration import Settings
from infrastructure.logging import (
    bind_request_context,
    configure_logging,
    get_correlation_id,
    get_module_logger,
    mask_sensitive_data,
    add_app_info,
    mask_message_text,
    redact_secret_values,
    truncate_large_values,
)
from infrastructure.logging.setup import _is_test_environment


@pytest.mark.unit
class TestConfigureLogging:
    def test_detects_pytest(self):
        assert _is_test_environment() is True

    def test_returns_logger_under_test(self):
        logger = configure_logging()
        assert hasattr(logger, "bind")

    def test_outside_tests_uses_settings(self):
        settings = Settings(GIT_SHA="abc123")
        with patch(
            "infrastructure.logging.setup._is_test_environment", return_value=False
        ), patch("infrastructure.logging.setup.structlog.configure") as configure:
            configure_logging(settings=settings, is_production=True)

        processors = configure.call_args.kwargs["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

        configure_logging()

    def test_development_uses_console_renderer(self):
        with patch(
            "infrastructure.logging.setup._is_test_environment", return_value=False
        ), patch("infrastructure.logging.setup.structlog.configure") as configure:
            configure_logging(settings=Settings(), is_production=False)

        processors = configure.call_args.kwargs["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

        configure_logging()

    def test_get_module_logger(self):
        assert get_module_logger() is not None
        assert "pytest" in sys.modules


@pytest.mark.unit
class TestProcessors:
    def test_mask_sensitive_keys(self):
        processor = mask_sensitive_data()
        result = processor(None, "info", {"webhook_secret": "s3cr3t", "chat_id": 1})
        assert result == {"webhook_secret": "***REDACTED***", "chat_id": 1}

    def test_redact_secret_values_in_free_text(self):
        processor = redact_secret_values(["123:abc"])
        result = processor(
            None,
            "warning",
            {"error": "POST https://api.telegram.org/bot123:abc/sendMessage failed"},
        )
        assert "123:abc" not in result["error"]
        assert "***REDACTED***" in result["error"]

    def test_redact_without_secrets_is_noop(self):
        processor = redact_secret_values([""])
        event = {"error": "boom"}
        assert processor(None, "info", event) == {"error": "boom"}

    def test_mask_message_text_keeps_length_only(self):
        processor = mask_message_text()
        result = processor(None, "info", {"text": "secret plans", "chat_id": 1})
        assert result == {"text": "...[12 chars]", "chat_id": 1}

    def test_mask_message_text_preview(self):
        processor = mask_message_text(max_preview=4)
        assert processor(None, "info", {"text": "hi"})["text"] == "hi"
        assert processor(None, "info", {"text": "hello world"})["text"] == "hell...[11 chars]"

    def test_add_app_info(self):
        processor = add_app_info("bot", "abc123", "production")
        result = processor(None, "info", {"event": "x"})
        assert result["app_version"] == "abc123"
        assert result["environment"] == "production"

    def test_truncate_large_values(self):
        processor = truncate_large_values(max_length=10)
        result = processor(None, "info", {"text": "x" * 50})
        assert result["text"].startswith("x" * 10 + "...[truncated, 50 chars total]")


@pytest.mark.unit
class TestRequestContext:
    def test_binds_and_unbinds(self):
        with bind_request_context(correlation_id="update:1", chat_id=42):
            assert get_correlation_id() == "update:1"
            assert structlog.contextvars.get_contextvars()["chat_id"] == 42

        assert get_correlation_id() is None

    def test_generates_correlation_id(self):
        with bind_request_context():
            assert get_correlation_id()

    def test_nested_context_restores_outer_values(self):
        with bind_request_context(correlation_id="req-1", request_path="/webhook"):
            with bind_request_context(correlation_id="update:7", chat_id=42):
                assert get_correlation_id() == "update:7"

            ctx = structlog.contextvars.get_contextvars()
            assert ctx["correlation_id"] == "req-1"
            assert ctx["request_path"] == "/webhook"
            assert "chat_id" not in ctx

    def test_nested_context_inherits_correlation_id(self):
        with bind_request_context(correlation_id="req-1"):
            with bind_request_context(chat_id=42):
                assert get_correlation_id() == "req-1"
