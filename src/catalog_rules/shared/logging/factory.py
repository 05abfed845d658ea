"""
Logging factory with structured logging and sensitive data masking.
"""

import logging
import os
import sys

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import (
    TimeStamper,
    add_log_level,
    CallsiteParameter,
    CallsiteParameterAdder,
    JSONRenderer,
    KeyValueRenderer,
    UnicodeDecoder,
    format_exc_info,
)
from structlog.stdlib import (
    ProcessorFormatter,
    add_logger_name,
    BoundLogger,
)

from .sanitizers import MaskingProcessor


def get_logger(name: str) -> BoundLogger:
    """
    Get a structured logger bound with service context.

    Args:
        name: Logger name (e.g., "application.validation", "infrastructure.rule_repository")

    Returns:
        Configured structured logger
    """
    return structlog.get_logger(name).bind(
        service="catalog-rules",
        version=os.getenv("SERVICE_VERSION", "0.1.0"),
        environment=os.getenv("ENVIRONMENT", "development"),
    )


def configure_logging(
    environment: str = "development",
    log_level: str = "INFO",
    json_logs: bool = True,
    include_caller_info: bool = True,
) -> None:
    """
    Configure structured logging for the rules engine.

    Args:
        environment: Environment name (development, staging, production, test)
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output JSON formatted logs
        include_caller_info: Include file, function, and line number
    """
    shared_processors = [
        merge_contextvars,
        TimeStamper(fmt="ISO", utc=True),
        add_log_level,
        add_logger_name,
        UnicodeDecoder(),
        # Mask credentials in action configs and payloads
        MaskingProcessor(),
    ]

    if include_caller_info and environment == "development":
        shared_processors.append(
            CallsiteParameterAdder(
                parameters=[
                    CallsiteParameter.FILENAME,
                    CallsiteParameter.FUNC_NAME,
                    CallsiteParameter.LINENO,
                ],
                additional_ignores=["structlog", "logging"],
            )
        )

    shared_processors.append(format_exc_info)

    if json_logs:
        renderer = JSONRenderer(sort_keys=True)
    else:
        renderer = KeyValueRenderer(key_order=["timestamp", "level", "event", "logger"])

    level = _get_log_level_int(log_level)

    structlog.configure(
        processors=shared_processors + [ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route standard library records through the same renderer
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processors=[ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def _get_log_level_int(level: str) -> int:
    """Convert string log level to integer."""
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return levels.get(level.upper(), logging.INFO)
