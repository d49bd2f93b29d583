"""Tests for app.core.logging module."""

import pytest
import structlog

from app.core.config import get_config
from app.core.logging import add_app_context, get_logger, setup_logging


@pytest.mark.unit
def test_setup_logging():
    """Test that setup_logging configures structlog."""
    setup_logging()

    assert structlog.is_configured()
    logger = structlog.get_logger()
    assert hasattr(logger, "info")


@pytest.mark.unit
def test_add_app_context():
    """Test that app name and env are added to every event."""
    event = add_app_context(None, "info", {"event": "Run started"})

    assert event["event"] == "Run started"
    assert event["app"] == get_config().app_name
    assert event["env"] == get_config().app_env


@pytest.mark.unit
def test_get_logger_methods():
    """Test that logger has standard logging methods."""
    setup_logging()

    logger = get_logger("test")

    for method in ("debug", "info", "warning", "error", "critical", "exception"):
        assert callable(getattr(logger, method))


@pytest.mark.unit
def test_logger_with_context():
    """Test logging with structured key-value context."""
    setup_logging()

    logger = get_logger("test")

    logger.info("Stage completed", run_id="run-1", stage="script")
    logger.bind(run_id="run-1").warning("Stage retrying", attempt=2)
