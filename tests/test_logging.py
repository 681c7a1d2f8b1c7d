# ABOUTME: Test cases for structured logging infrastructure with request ID tracking
# ABOUTME: Validates logging configuration, JSON output, level filtering and request ID binding

import json
import logging

import structlog

from tts_api.logging_config import configure_logging, get_logger, request_id_context


def read_entries(path):
    for handler in logging.getLogger().handlers:
        handler.flush()
    lines = [line for line in path.read_text().splitlines() if line]
    return [json.loads(line) for line in lines]


class TestLoggingConfiguration:
    """Test logging system configuration and functionality."""

    def setup_method(self):
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def teardown_method(self):
        for handler in logging.getLogger().handlers:
            handler.close()
        logging.getLogger().handlers.clear()
        structlog.reset_defaults()

    def test_configure_logging_with_custom_level(self):
        configure_logging(log_level="debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_json_output_format(self, tmp_path):
        log_file = tmp_path / "gateway.log"
        configure_logging(log_file=str(log_file))

        get_logger("test").info("tts_attempt_failed", model="models/x", status_code=500)

        entry = read_entries(log_file)[-1]
        assert entry["event"] == "tts_attempt_failed"
        assert entry["model"] == "models/x"
        assert entry["status_code"] == 500
        assert entry["level"] == "info"
        assert entry["logger"] == "test"
        assert "timestamp" in entry

    def test_console_output_format(self, tmp_path):
        log_file = tmp_path / "gateway.log"
        configure_logging(log_file=str(log_file), enable_json=False)

        get_logger("test").info("tts_backoff", delay_ms=600)

        for handler in logging.getLogger().handlers:
            handler.flush()
        content = log_file.read_text()
        assert "tts_backoff" in content
        assert "delay_ms" in content

    def test_log_level_filtering(self, tmp_path):
        log_file = tmp_path / "gateway.log"
        configure_logging(log_level="warning", log_file=str(log_file))

        logger = get_logger("test")
        logger.debug("debug message")
        logger.info("info message")
        logger.warning("warning message")
        logger.error("error message")

        events = [entry["event"] for entry in read_entries(log_file)]
        assert events == ["warning message", "error message"]

    def test_error_logging_with_exception(self, tmp_path):
        log_file = tmp_path / "gateway.log"
        configure_logging(log_file=str(log_file))

        try:
            raise ValueError("Test exception")
        except ValueError:
            get_logger("test").error("Test error occurred", exc_info=True)

        entry = read_entries(log_file)[-1]
        assert entry["level"] == "error"
        assert "ValueError: Test exception" in entry["exception"]

    def test_request_id_bound_inside_context(self, tmp_path):
        log_file = tmp_path / "gateway.log"
        configure_logging(log_file=str(log_file))
        logger = get_logger("test")

        with request_id_context("outer-123"):
            logger.info("outer message")
            with request_id_context("inner-456"):
                logger.info("inner message")
            logger.info("outer again")
        logger.info("after context")

        entries = {entry["event"]: entry for entry in read_entries(log_file)}
        assert entries["outer message"]["request_id"] == "outer-123"
        assert entries["inner message"]["request_id"] == "inner-456"
        assert entries["outer again"]["request_id"] == "outer-123"
        assert "request_id" not in entries["after context"]
