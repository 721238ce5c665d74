"""Translation of PostgREST errors into domain storage errors."""

from __future__ import annotations

import re
from uuid import UUID

from postgrest.exceptions import APIError

from taskvision.domain.errors.storage import SchemaDriftError, TaskStoreError
from taskvision.domain.errors.verification import VerificationAlreadyPendingError
from taskvision.domain.exceptions import TaskVisionError

# Postgres undefined_column and PostgREST schema-cache miss
SCHEMA_DRIFT_CODES = frozenset({"42703", "PGRST204"})
UNIQUE_VIOLATION_CODE = "23505"

_COLUMN_PATTERNS = (
    re.compile(r'column "(?P<column>[^"]+)" of relation'),
    re.compile(r"Could not find the '(?P<column>[^']+)' column"),
    re.compile(r'column [\w.]*?"?(?P<column>\w+)"? does not exist'),
)


def missing_column(message: str | None) -> str | None:
    """Extract the missing column name from a PostgREST error message."""
    if not message:
        return None
    for pattern in _COLUMN_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group("column")
    return None


def translate_api_error(
    error: APIError,
    *,
    operation: str,
    table: str,
    task_id: UUID | None = None,
) -> TaskVisionError:
    """Map a PostgREST APIError to the matching domain error.

    Args:
        error: The error raised by the client.
        operation: Storage operation in progress.
        table: Table the operation targeted.
        task_id: Task involved, used for unique-index violations.
    """
    code = error.code or ""
    message = error.message or str(error)
    if code in SCHEMA_DRIFT_CODES:
        return SchemaDriftError(table, missing_column(message), message)
    if code == UNIQUE_VIOLATION_CODE and task_id is not None:
        return VerificationAlreadyPendingError(task_id=task_id)
    return TaskStoreError(operation, table, f"{code} {message}".strip())
