"""Structured logging configuration for the profiler trigger engine.

Domain and application modules log through the standard library
(``logging.getLogger(__name__)``); the handler installed here renders those
records, and structlog's own events, through one structlog processor chain.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from profiler_trigger.infrastructure.config import get_config


def add_service_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add service context to log entries."""
    event_dict["service"] = "profiler_trigger"
    return event_dict


def setup_logging(
    level: str | None = None, log_format: str | None = None
) -> structlog.stdlib.BoundLogger:
    """Configure structured logging.

    Args:
        level: Log level; defaults to the configured one.
        log_format: 'json' or 'console'; defaults to the configured one.
    """
    config = get_config()
    level = level or config.observability.log_level
    log_format = log_format or config.observability.log_format

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return structlog.get_logger("profiler_trigger")


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger instance with optional name and context binding."""
    logger = structlog.get_logger(name)
    if name:
        logger = logger.bind(component=name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
