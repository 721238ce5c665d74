"""Task repository stub implementation.

In-memory implementation of TaskRepositoryProtocol for development and
testing. Rows are kept as column dictionaries, so narrowed writes from
the OptionalFieldWriter are stored exactly as a real table would store
them.

Test hooks:
- missing_columns: columns the simulated schema lacks. A write naming
  one raises SchemaDriftError, like Postgres error 42703.
- fail_next_insert / fail_next_update: inject one storage failure.
- writes: every accepted (operation, payload) pair, in order.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from taskvision.application.ports.task_repository import (
    TASKS_TABLE,
    TaskRepositoryProtocol,
)
from taskvision.domain.errors.storage import SchemaDriftError, TaskStoreError
from taskvision.domain.errors.task import TaskNotFoundError
from taskvision.domain.models.change_event import ChangeEvent, ChangeType
from taskvision.domain.models.task import Task, TaskStatus
from taskvision.infrastructure.stubs.change_feed_stub import InMemoryChangeFeed


class TaskRepositoryStub(TaskRepositoryProtocol):
    """In-memory stub implementation of TaskRepositoryProtocol.

    This stub is NOT suitable for production use.

    Attributes:
        _rows: Stored rows by task id.
        missing_columns: Columns the simulated schema does not have.
        writes: Accepted writes as (operation, payload) pairs.
    """

    def __init__(
        self,
        change_feed: InMemoryChangeFeed | None = None,
        missing_columns: Iterable[str] = (),
    ) -> None:
        self._rows: dict[UUID, dict[str, Any]] = {}
        self._change_feed = change_feed
        self.missing_columns: set[str] = set(missing_columns)
        self.writes: list[tuple[str, dict[str, Any]]] = []
        self._insert_failures: list[Exception] = []
        self._update_failures: list[Exception] = []

    def add(self, task: Task) -> Task:
        """Seed a task directly, bypassing failure injection."""
        self._rows[task.id] = self._strip_missing(task.to_row())
        return Task.from_row(self._rows[task.id])

    def row(self, task_id: UUID) -> dict[str, Any] | None:
        """Return a copy of the stored row (for assertions)."""
        row = self._rows.get(task_id)
        return dict(row) if row is not None else None

    def fail_next_insert(self, error: Exception | None = None) -> None:
        self._insert_failures.append(
            error or TaskStoreError("insert", TASKS_TABLE, "injected failure")
        )

    def fail_next_update(self, error: Exception | None = None) -> None:
        self._update_failures.append(
            error or TaskStoreError("update", TASKS_TABLE, "injected failure")
        )

    def _strip_missing(self, row: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in row.items() if k not in self.missing_columns}

    def _check_columns(self, values: dict[str, Any]) -> None:
        for column in values:
            if column in self.missing_columns:
                raise SchemaDriftError(
                    TASKS_TABLE,
                    column,
                    f'column "{column}" of relation "{TASKS_TABLE}" does not exist',
                )

    async def _publish(self, change_type: ChangeType, task_id: UUID) -> None:
        if self._change_feed is not None:
            await self._change_feed.publish(ChangeEvent(TASKS_TABLE, change_type, task_id))

    async def get(self, task_id: UUID) -> Task | None:
        row = self._rows.get(task_id)
        return Task.from_row(row) if row is not None else None

    async def get_many(self, task_ids: Iterable[UUID]) -> dict[UUID, Task]:
        return {
            task_id: Task.from_row(self._rows[task_id])
            for task_id in set(task_ids)
            if task_id in self._rows
        }

    async def insert(self, values: dict[str, Any]) -> Task:
        if self._insert_failures:
            raise self._insert_failures.pop(0)
        self._check_columns(values)

        task_id = UUID(str(values["id"]))
        if task_id in self._rows:
            raise TaskStoreError("insert", TASKS_TABLE, f"duplicate key {task_id}")
        row = dict(values)
        task = Task.from_row(row, normalize_legacy=False)
        self._rows[task_id] = row
        self.writes.append(("insert", dict(values)))
        await self._publish(ChangeType.INSERT, task_id)
        return task

    async def update(self, task_id: UUID, values: dict[str, Any]) -> Task:
        if self._update_failures:
            raise self._update_failures.pop(0)
        self._check_columns(values)

        existing = self._rows.get(task_id)
        if existing is None:
            raise TaskNotFoundError(task_id, operation="update")
        row = {**existing, **values}
        # Validate before committing so an invalid row never lands.
        task = Task.from_row(row, normalize_legacy=False)
        self._rows[task_id] = row
        self.writes.append(("update", dict(values)))
        await self._publish(ChangeType.UPDATE, task_id)
        return task

    async def delete(self, task_id: UUID) -> None:
        if self._rows.pop(task_id, None) is not None:
            self.writes.append(("delete", {"id": str(task_id)}))
            await self._publish(ChangeType.DELETE, task_id)

    async def list_by_assignee(
        self,
        employee_id: UUID,
        status: TaskStatus | None = None,
    ) -> list[Task]:
        tasks = [Task.from_row(row) for row in self._rows.values()]
        return [
            task
            for task in tasks
            if task.assigned_to == employee_id and (status is None or task.status == status)
        ]

    async def list_by_department(
        self,
        department_id: UUID,
        status: TaskStatus | None = None,
    ) -> list[Task]:
        tasks = [Task.from_row(row) for row in self._rows.values()]
        return [
            task
            for task in tasks
            if task.department_id == department_id
            and (status is None or task.status == status)
        ]

    def clear(self) -> None:
        """Clear all stored data (for testing)."""
        self._rows.clear()
        self.writes.clear()
        self._insert_failures.clear()
        self._update_failures.clear()
