"""Reassignment audit log port (append-only)."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from taskvision.domain.models.reassignment import ReassignmentRecord

REASSIGNMENT_LOGS_TABLE = "task_reassignment_logs"


class ReassignmentLogRepositoryProtocol(Protocol):
    """Protocol for the reassignment audit log.

    Records are never updated or deleted.
    """

    async def append(self, record: ReassignmentRecord) -> None:
        """Append a record.

        Raises:
            TaskStoreError: If the record could not be written.
        """
        ...

    async def find_by_idempotency_key(self, key: str) -> list[ReassignmentRecord]:
        """Return every record written for one rejection."""
        ...

    async def list_for_task(self, task_id: UUID) -> list[ReassignmentRecord]:
        """Return the records of a task, oldest first."""
        ...
