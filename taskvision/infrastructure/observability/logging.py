"""Structlog configuration for Task Vision.

Production renders one JSON object per line for log aggregation;
development renders colored console output. The level comes from the
LOG_LEVEL environment variable unless passed explicitly.

Log entries look like:
    {
        "timestamp": "2026-01-01T00:00:00.000000Z",
        "level": "info",
        "event": "task_started",
        "service": "TaskLifecycleService",
        "component": "workflow",
        "operation": "start",
        "correlation_id": "uuid",
        "task_id": "uuid"
    }
"""

import logging
import os
from typing import cast

import structlog
from structlog.typing import Processor

from taskvision.infrastructure.observability.correlation import correlation_id_processor

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def _resolve_log_level(level: str | None = None) -> int:
    level_name = (level or os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)).upper()
    return getattr(logging, level_name, logging.INFO)


def configure_structlog(environment: str = "production", level: str | None = None) -> None:
    """Configure structlog once at startup.

    Args:
        environment: "production" for JSON output, anything else for console.
        level: Log level name; defaults to LOG_LEVEL or INFO.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        cast(Processor, correlation_id_processor),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_log_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger_for_component(
    name: str, component: str = "infrastructure"
) -> structlog.BoundLogger:
    """Return a logger bound with a service name and component.

    Used by adapters that do not mix in LoggingMixin.
    """
    return structlog.get_logger().bind(service=name, component=component)
