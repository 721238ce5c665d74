"""Supabase implementation of the task repository.

Usage:
    from taskvision.infrastructure.adapters.supabase import SupabaseTaskRepository

    repository = SupabaseTaskRepository(client)
    task = await repository.get(task_id)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import AsyncClient

from taskvision.application.ports.task_repository import (
    TASKS_TABLE,
    TaskRepositoryProtocol,
)
from taskvision.application.services.base import LoggingMixin
from taskvision.domain.errors.storage import TaskStoreError
from taskvision.domain.errors.task import TaskNotFoundError
from taskvision.domain.models.task import Task, TaskStatus
from taskvision.infrastructure.adapters.supabase.errors import translate_api_error


def coerce_rows(data: object) -> list[dict[str, Any]]:
    """Normalize Supabase response payloads to a list of row dicts."""
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]


def row_to_task(row: dict[str, Any], operation: str) -> Task:
    """Map a row, reporting invariant violations as TaskStoreError."""
    try:
        return Task.from_row(row)
    except (KeyError, ValueError) as exc:
        raise TaskStoreError(
            operation, TASKS_TABLE, f"unreadable row {row.get('id')}: {exc}"
        ) from exc


class SupabaseTaskRepository(TaskRepositoryProtocol, LoggingMixin):
    """Task storage backed by the ``tasks`` table.

    Attributes:
        _client: Async Supabase client.
    """

    def __init__(self, client: AsyncClient) -> None:
        self._client = client
        self._init_logger(component="storage")

    async def get(self, task_id: UUID) -> Task | None:
        log = self._log_operation("get_task", task_id=str(task_id))
        try:
            result = (
                await self._client.table(TASKS_TABLE)
                .select("*")
                .eq("id", str(task_id))
                .execute()
            )
        except APIError as exc:
            raise translate_api_error(exc, operation="get", table=TASKS_TABLE) from exc

        rows = coerce_rows(result.data)
        if not rows:
            log.debug("task_not_found")
            return None
        return row_to_task(rows[0], "get")

    async def get_many(self, task_ids: Iterable[UUID]) -> dict[UUID, Task]:
        ids = sorted({str(task_id) for task_id in task_ids})
        if not ids:
            return {}
        try:
            result = (
                await self._client.table(TASKS_TABLE).select("*").in_("id", ids).execute()
            )
        except APIError as exc:
            raise translate_api_error(exc, operation="get_many", table=TASKS_TABLE) from exc

        tasks = [row_to_task(row, "get_many") for row in coerce_rows(result.data)]
        return {task.id: task for task in tasks}

    async def insert(self, values: dict[str, Any]) -> Task:
        log = self._log_operation("insert_task", task_id=str(values.get("id")))
        try:
            result = await self._client.table(TASKS_TABLE).insert(values).execute()
        except APIError as exc:
            raise translate_api_error(exc, operation="insert", table=TASKS_TABLE) from exc

        rows = coerce_rows(result.data)
        if not rows:
            raise TaskStoreError("insert", TASKS_TABLE, "insert returned no row")
        log.debug("task_inserted")
        return row_to_task(rows[0], "insert")

    async def update(self, task_id: UUID, values: dict[str, Any]) -> Task:
        log = self._log_operation(
            "update_task",
            task_id=str(task_id),
            columns=sorted(values),
        )
        try:
            result = (
                await self._client.table(TASKS_TABLE)
                .update(values)
                .eq("id", str(task_id))
                .execute()
            )
        except APIError as exc:
            raise translate_api_error(exc, operation="update", table=TASKS_TABLE) from exc

        rows = coerce_rows(result.data)
        if not rows:
            raise TaskNotFoundError(task_id, operation="update")
        log.debug("task_updated")
        return row_to_task(rows[0], "update")

    async def delete(self, task_id: UUID) -> None:
        try:
            await self._client.table(TASKS_TABLE).delete().eq("id", str(task_id)).execute()
        except APIError as exc:
            raise translate_api_error(exc, operation="delete", table=TASKS_TABLE) from exc
        self._log_operation("delete_task", task_id=str(task_id)).debug("task_deleted")

    async def _list(self, column: str, value: UUID, status: TaskStatus | None) -> list[Task]:
        query = self._client.table(TASKS_TABLE).select("*").eq(column, str(value))
        if status is not None:
            query = query.eq("status", status.value)
        try:
            result = await query.order("created_at", desc=True).execute()
        except APIError as exc:
            raise translate_api_error(exc, operation="list", table=TASKS_TABLE) from exc
        return [row_to_task(row, "list") for row in coerce_rows(result.data)]

    async def list_by_assignee(
        self,
        employee_id: UUID,
        status: TaskStatus | None = None,
    ) -> list[Task]:
        return await self._list("assigned_to", employee_id, status)

    async def list_by_department(
        self,
        department_id: UUID,
        status: TaskStatus | None = None,
    ) -> list[Task]:
        return await self._list("department_id", department_id, status)
