"""Structured logging for the identity audit bridge.

Configures structlog for JSON (production) or console (development) output.
Every entry carries the correlation ID of the request being served, and any
context bound through ``structlog.contextvars`` (such as the span bound by
the sink tracing wrapper).
"""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from structlog.types import EventDict, WrappedLogger

from packages.audit_store import get_correlation_id

if TYPE_CHECKING:
    from packages.bridge_config import BridgeConfig


def add_correlation_id(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the request correlation ID to log entries when one is bound."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_output: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output (in addition to console)
        json_output: If True, output JSON format; if False, use human-readable format
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        stream=sys.stdout,
    )
    logging.getLogger().setLevel(numeric_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        add_correlation_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))

        logging.getLogger().addHandler(file_handler)


def setup_logging_from_config(config: "BridgeConfig") -> None:
    """Configure logging from the bridge settings."""
    setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_output=config.json_logs,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the module)
    """
    return structlog.get_logger(name)


__all__ = [
    "add_correlation_id",
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
]
