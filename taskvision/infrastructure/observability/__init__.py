"""Observability: structured logging and correlation ids.

Usage:
    from taskvision.infrastructure.observability import (
        configure_structlog,
        correlation_scope,
    )

    configure_structlog(environment="development")

    with correlation_scope() as correlation_id:
        await lifecycle.start(task_id, caller_id)
"""

from taskvision.infrastructure.observability.correlation import (
    correlation_id_processor,
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from taskvision.infrastructure.observability.logging import (
    configure_structlog,
    get_logger_for_component,
)

__all__: list[str] = [
    "configure_structlog",
    "correlation_id_processor",
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "get_logger_for_component",
    "set_correlation_id",
]
