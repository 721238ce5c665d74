"""Logging mixin shared by the workflow services.

Usage:
    from taskvision.application.services.base import LoggingMixin

    class MyService(LoggingMixin):
        def __init__(self, repo: TaskRepositoryProtocol) -> None:
            self._repo = repo
            self._init_logger(component="workflow")

        async def do_something(self, task_id: UUID) -> None:
            log = self._log_operation("do_something", task_id=str(task_id))
            log.info("something_started")
"""

import structlog

from taskvision.infrastructure.observability.correlation import get_correlation_id


class LoggingMixin:
    """Mixin providing structured, correlated logging for services.

    The logger is bound with the service class name and a component.
    Each operation adds its name, the current correlation id and any
    extra context.

    Attributes:
        _log: The structlog BoundLogger for this service instance.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "workflow") -> None:
        """Bind the service logger. Call from __init__.

        Args:
            component: Component name for log categorization.
        """
        self._log = structlog.get_logger().bind(
            service=self.__class__.__name__,
            component=component,
        )

    def _log_operation(
        self,
        operation: str,
        **context: object,
    ) -> structlog.BoundLogger:
        """Return a logger bound to one operation.

        Args:
            operation: Name of the operation being performed.
            **context: Additional context to bind.
        """
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **context,
        )
