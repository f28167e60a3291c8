"""Tests for the logging setup module."""

import logging
import sys

import pytest

from credocr.utils.logger import get_logger, preview, setup_logging


@pytest.fixture
def bare_root():
    """Root logger whose handlers and level are restored after the test."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestSetupLogging:
    """Tests for root logger configuration."""

    def test_stdout_handler_and_level(self, bare_root: logging.Logger) -> None:
        bare_root.handlers.clear()
        setup_logging("debug")

        assert bare_root.level == logging.DEBUG
        [handler] = bare_root.handlers
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stdout
        assert handler.formatter._fmt == "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def test_configures_once(self, bare_root: logging.Logger) -> None:
        bare_root.handlers.clear()
        setup_logging("INFO")
        setup_logging("DEBUG")
        assert len(bare_root.handlers) == 1
        assert bare_root.level == logging.INFO

    def test_unknown_level_falls_back_to_info(self, bare_root: logging.Logger) -> None:
        bare_root.handlers.clear()
        setup_logging("CHATTY")
        assert bare_root.level == logging.INFO

    @pytest.mark.parametrize("name", ["httpx", "httpcore", "openai", "google.auth"])
    def test_http_client_loggers_stay_at_warning(
        self, bare_root: logging.Logger, name: str
    ) -> None:
        bare_root.handlers.clear()
        setup_logging("DEBUG")
        assert logging.getLogger(name).level == logging.WARNING

    def test_http_client_loggers_follow_stricter_level(self, bare_root: logging.Logger) -> None:
        bare_root.handlers.clear()
        setup_logging("ERROR")
        assert logging.getLogger("httpx").level == logging.ERROR


class TestGetLogger:
    """Tests for module loggers."""

    def test_module_logger_is_shared(self) -> None:
        logger = get_logger("credocr.qr.detector")
        assert logger.name == "credocr.qr.detector"
        assert get_logger("credocr.qr.detector") is logger


class TestPreview:
    """Tests for payload previews in log lines."""

    def test_short_text_unchanged(self) -> None:
        assert preview("https://example.org/cert/42") == "https://example.org/cert/42"

    def test_long_text_truncated(self) -> None:
        assert preview("x" * 150) == "x" * 100 + "..."

    def test_custom_limit(self) -> None:
        assert preview("Name: Asha Devi", limit=4) == "Name..."

    @pytest.mark.parametrize("text", [None, ""])
    def test_empty(self, text: str | None) -> None:
        assert preview(text) == ""
