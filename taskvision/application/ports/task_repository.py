"""Task store port.

Writes take column payloads rather than Task instances so that the
OptionalFieldWriter can narrow a payload when the store's schema lags
behind the application's.

Developer Golden Rules:
1. FAIL LOUD - adapters raise, they never return partial data silently
2. SCHEMA DRIFT - a write naming a missing column raises SchemaDriftError
3. NO POLICY - authorization and transition checks belong to services
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol
from uuid import UUID

from taskvision.domain.models.task import Task, TaskStatus

TASKS_TABLE = "tasks"


class TaskRepositoryProtocol(Protocol):
    """Protocol for task persistence.

    Methods:
        get: Retrieve a task by id
        get_many: Retrieve several tasks by id
        insert: Insert a task row
        update: Update columns of a task row
        delete: Delete a task row
        list_by_assignee: Tasks assigned to an employee
        list_by_department: Tasks of a department
    """

    async def get(self, task_id: UUID) -> Task | None:
        """Retrieve a task by id.

        Returns:
            The Task if found, None otherwise.
        """
        ...

    async def get_many(self, task_ids: Iterable[UUID]) -> dict[UUID, Task]:
        """Retrieve several tasks, keyed by id. Unknown ids are omitted."""
        ...

    async def insert(self, values: dict[str, Any]) -> Task:
        """Insert a task row.

        Args:
            values: Column payload including the id.

        Returns:
            The stored task.

        Raises:
            SchemaDriftError: If a column in the payload does not exist.
            TaskStoreError: On any other storage failure.
        """
        ...

    async def update(self, task_id: UUID, values: dict[str, Any]) -> Task:
        """Update columns of a task row.

        Returns:
            The stored task after the update.

        Raises:
            TaskNotFoundError: If the task does not exist.
            SchemaDriftError: If a column in the payload does not exist.
            TaskStoreError: On any other storage failure.
        """
        ...

    async def delete(self, task_id: UUID) -> None:
        """Delete a task row. Deleting a missing task is a no-op."""
        ...

    async def list_by_assignee(
        self,
        employee_id: UUID,
        status: TaskStatus | None = None,
    ) -> list[Task]:
        """List tasks assigned to an employee, optionally by status."""
        ...

    async def list_by_department(
        self,
        department_id: UUID,
        status: TaskStatus | None = None,
    ) -> list[Task]:
        """List tasks of a department, optionally by status."""
        ...
