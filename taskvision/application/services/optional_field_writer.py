"""Schema-tolerant writes for optional columns.

Some columns were added to the store after the first deployments
(is_required, admin_review_status, rejection_count, ...). Installations
whose schema lags behind reject writes naming them. The writer tries the
full payload first; on SchemaDriftError it retries exactly once:

- without the offending column, when the store named an optional column
- without every optional column, when the column is unknown or not optional

A second failure, or a drift that narrowing cannot fix, surfaces as
TaskStoreError. SchemaDriftError itself never leaves this module.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from taskvision.application.ports.task_repository import TASKS_TABLE
from taskvision.application.ports.verification_request_repository import (
    VERIFICATION_REQUESTS_TABLE,
)
from taskvision.application.services.base import LoggingMixin
from taskvision.domain.errors.storage import SchemaDriftError, TaskStoreError

T = TypeVar("T")

TASK_OPTIONAL_COLUMNS: frozenset[str] = frozenset(
    {
        "is_required",
        "admin_review_status",
        "admin_rejection_reason",
        "rejection_reason",
        "rejection_count",
    }
)

VERIFICATION_REQUEST_OPTIONAL_COLUMNS: frozenset[str] = frozenset({"admin_reason"})

DEFAULT_OPTIONAL_COLUMNS: Mapping[str, frozenset[str]] = {
    TASKS_TABLE: TASK_OPTIONAL_COLUMNS,
    VERIFICATION_REQUESTS_TABLE: VERIFICATION_REQUEST_OPTIONAL_COLUMNS,
}


class OptionalFieldWriter(LoggingMixin):
    """Runs store writes with a single narrowed retry on schema drift.

    Example:
        task = await writer.write(
            TASKS_TABLE,
            values,
            lambda payload: repo.update(task_id, payload),
            operation="reassign",
        )
    """

    def __init__(
        self,
        optional_columns: Mapping[str, frozenset[str]] | None = None,
    ) -> None:
        """Initialize the writer.

        Args:
            optional_columns: Optional columns per table. Defaults to
                DEFAULT_OPTIONAL_COLUMNS.
        """
        self._optional_columns = dict(optional_columns or DEFAULT_OPTIONAL_COLUMNS)
        self._init_logger(component="storage")

    def optional_columns(self, table: str) -> frozenset[str]:
        return self._optional_columns.get(table, frozenset())

    def narrow(
        self,
        table: str,
        payload: dict[str, Any],
        column: str | None,
    ) -> dict[str, Any]:
        """Return the payload to retry with after a drift on ``column``."""
        optional = self.optional_columns(table)
        if column is not None and column in optional:
            dropped = {column}
        else:
            dropped = set(optional)
        return {key: value for key, value in payload.items() if key not in dropped}

    async def write(
        self,
        table: str,
        payload: dict[str, Any],
        write: Callable[[dict[str, Any]], Awaitable[T]],
        operation: str,
    ) -> T:
        """Run a write, narrowing the payload once on schema drift.

        Args:
            table: Table the write targets.
            payload: Full column payload.
            write: Performs the write with a given payload.
            operation: Operation name for logs and errors.

        Returns:
            Whatever ``write`` returns.

        Raises:
            TaskStoreError: If the drift could not be worked around.
        """
        try:
            return await write(payload)
        except SchemaDriftError as exc:
            drift = exc

        log = self._log_operation(operation, table=table)
        narrowed = self.narrow(table, payload, drift.column)
        if narrowed.keys() == payload.keys():
            log.error(
                "schema_drift_unrecoverable",
                column=drift.column,
                detail=str(drift),
            )
            raise TaskStoreError(operation, table, str(drift)) from drift

        log.warning(
            "schema_drift_retry",
            column=drift.column,
            dropped_columns=sorted(payload.keys() - narrowed.keys()),
        )
        try:
            return await write(narrowed)
        except SchemaDriftError as retry_drift:
            log.error(
                "schema_drift_retry_failed",
                column=retry_drift.column,
                detail=str(retry_drift),
            )
            raise TaskStoreError(operation, table, str(retry_drift)) from retry_drift
