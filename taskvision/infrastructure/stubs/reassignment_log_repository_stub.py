"""Reassignment audit log stub (append-only, in memory)."""

from __future__ import annotations

from uuid import UUID

from taskvision.application.ports.reassignment_log_repository import (
    REASSIGNMENT_LOGS_TABLE,
    ReassignmentLogRepositoryProtocol,
)
from taskvision.domain.errors.storage import TaskStoreError
from taskvision.domain.models.reassignment import ReassignmentRecord


class ReassignmentLogRepositoryStub(ReassignmentLogRepositoryProtocol):
    """In-memory stub implementation of ReassignmentLogRepositoryProtocol.

    Attributes:
        records: Appended records, in order.
    """

    def __init__(self) -> None:
        self.records: list[ReassignmentRecord] = []
        self._append_failures: list[Exception] = []

    def fail_next_append(self, error: Exception | None = None) -> None:
        self._append_failures.append(
            error or TaskStoreError("append", REASSIGNMENT_LOGS_TABLE, "injected failure")
        )

    async def append(self, record: ReassignmentRecord) -> None:
        if self._append_failures:
            raise self._append_failures.pop(0)
        self.records.append(record)

    async def find_by_idempotency_key(self, key: str) -> list[ReassignmentRecord]:
        return [record for record in self.records if record.idempotency_key == key]

    async def list_for_task(self, task_id: UUID) -> list[ReassignmentRecord]:
        return [
            record
            for record in self.records
            if record.task_id == task_id or record.source_task_id == task_id
        ]

    def clear(self) -> None:
        """Clear all stored data (for testing)."""
        self.records.clear()
        self._append_failures.clear()
