"""Tests for structured logging module."""

import structlog

from packages.audit_store import set_correlation_id
from packages.bridge_config import BridgeConfig
from packages.structured_logging import (
    add_correlation_id,
    get_logger,
    setup_logging,
    setup_logging_from_config,
)


def test_get_logger_works():
    """Test that get_logger returns a working logger."""
    logger = get_logger(__name__)
    assert hasattr(logger, "info")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    assert hasattr(logger, "debug")


def test_setup_logging_default():
    setup_logging()
    logger = get_logger("test")

    # Should not raise exception
    logger.info("test_message", key="value")


def test_setup_logging_console_renderer():
    setup_logging(level="DEBUG", json_output=False)
    logger = get_logger("test")

    logger.debug("debug_message", extra="data")


def test_setup_logging_with_file(tmp_path):
    log_file = tmp_path / "logs" / "bridge.log"

    setup_logging(log_file=str(log_file))

    assert log_file.parent.exists()


def test_setup_logging_from_config(tmp_path):
    config = BridgeConfig(log_level="WARNING", json_logs=False, log_file=str(tmp_path / "b.log"))

    setup_logging_from_config(config)

    get_logger("test").warning("configured")


def test_logger_exception_logging():
    setup_logging()
    logger = get_logger("test")

    try:
        raise ValueError("Test error")
    except ValueError:
        logger.error("exception_occurred", exc_info=True)


class TestAddCorrelationId:
    """Tests for the correlation ID processor."""

    def test_adds_bound_correlation_id(self):
        set_correlation_id("corr-123")
        try:
            event_dict = add_correlation_id(None, "info", {"event": "x"})
        finally:
            set_correlation_id("")

        assert event_dict["correlation_id"] == "corr-123"

    def test_skips_when_unbound(self):
        set_correlation_id("")

        event_dict = add_correlation_id(None, "info", {"event": "x"})

        assert "correlation_id" not in event_dict

    def test_does_not_override_explicit_value(self):
        set_correlation_id("from-context")
        try:
            event_dict = add_correlation_id(None, "info", {"event": "x", "correlation_id": "explicit"})
        finally:
            set_correlation_id("")

        assert event_dict["correlation_id"] == "explicit"

    def test_contextvars_merged(self):
        """Values bound through structlog.contextvars reach the event dict."""
        with structlog.contextvars.bound_contextvars(span="audit_store_sink"):
            event_dict = structlog.contextvars.merge_contextvars(None, "info", {"event": "x"})

        assert event_dict["span"] == "audit_store_sink"
