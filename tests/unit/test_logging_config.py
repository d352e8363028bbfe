"""
Unit tests for logging configuration.
"""

import logging

import pytest
import structlog
from structlog.testing import capture_logs

from photovault.logging_config import (
    configure_structured_logging,
    get_log_level,
    is_development_environment,
    log_performance,
    log_user_action,
    timed_operation,
)


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestLoggingConfig:
    """Test cases for logging helpers."""

    @pytest.mark.parametrize(
        ("name", "level"),
        [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("bogus", logging.INFO)],
    )
    def test_get_log_level(self, name, level):
        assert get_log_level(name) == level

    def test_get_log_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")

        assert get_log_level() == logging.ERROR

    def test_is_development_environment(self):
        assert is_development_environment("Dev") is True
        assert is_development_environment("test") is True
        assert is_development_environment("production") is False

    @pytest.mark.parametrize("environment", ["development", "production"])
    def test_configure_structured_logging(self, reset_structlog, environment):
        configure_structured_logging("DEBUG", environment)

        assert logging.getLogger().level == logging.DEBUG
        assert structlog.is_configured()

    def test_log_performance(self):
        with capture_logs() as logs:
            log_performance("encode", 0.123456, size=10)

        assert logs == [
            {"event": "performance_metric", "log_level": "info", "operation": "encode", "duration_seconds": 0.1235, "size": 10}
        ]

    def test_timed_operation_merges_extra_context(self):
        with capture_logs() as logs:
            with timed_operation("list_images", user_id="u") as extra:
                extra["returned"] = 3

        assert logs[0]["operation"] == "list_images"
        assert logs[0]["user_id"] == "u"
        assert logs[0]["returned"] == 3

    def test_log_user_action(self):
        with capture_logs() as logs:
            log_user_action("u", "image_ingested", image_id="i")

        assert logs[0]["event"] == "user_action"
        assert logs[0]["action"] == "image_ingested"
