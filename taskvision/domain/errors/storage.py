"""Storage errors raised by repository adapters.

SchemaDriftError is raised when the store rejects a write because a column
the application expects does not exist yet. It is consumed by
OptionalFieldWriter, which retries once with a narrowed payload, and is
never surfaced to callers of the workflow services.
"""

from __future__ import annotations

from taskvision.domain.exceptions import TaskVisionError


class SchemaDriftError(TaskVisionError):
    """Raised when a write references a column the store does not have.

    Attributes:
        table: Table the write targeted.
        column: The missing column, or None when the store did not name it.
    """

    def __init__(self, table: str, column: str | None = None, detail: str = "") -> None:
        self.table = table
        self.column = column
        self.detail = detail
        missing = f"column '{column}'" if column else "an unknown column"
        super().__init__(
            f"Schema drift on '{table}': {missing} does not exist"
            + (f" ({detail})" if detail else "")
        )


class TaskStoreError(TaskVisionError):
    """Raised when a storage operation fails and cannot be recovered locally.

    Attributes:
        operation: The storage operation that failed.
        table: Table the operation targeted.
    """

    def __init__(self, operation: str, table: str, detail: str) -> None:
        self.operation = operation
        self.table = table
        self.detail = detail
        super().__init__(f"Storage operation '{operation}' on '{table}' failed: {detail}")
