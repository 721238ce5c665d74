"""Supabase implementation of the employee directory.

Reads ``employees`` plus the two mapping tables: ``admin_departments``
(admin scope) and ``department_head_departments`` (extra departments a
supervisor heads).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from uuid import UUID

from postgrest import AsyncRequestBuilder
from postgrest.exceptions import APIError
from supabase import AsyncClient

from taskvision.application.ports.employee_directory import EmployeeDirectoryProtocol
from taskvision.application.services.base import LoggingMixin
from taskvision.domain.models.employee import Employee, EmployeeRole
from taskvision.infrastructure.adapters.supabase.errors import translate_api_error
from taskvision.infrastructure.adapters.supabase.task_repository import coerce_rows

EMPLOYEES_TABLE = "employees"
ADMIN_DEPARTMENTS_TABLE = "admin_departments"
DEPARTMENT_HEAD_DEPARTMENTS_TABLE = "department_head_departments"

_EMPLOYEE_COLUMNS = "id, name, role, department_id, is_active, created_at"


class SupabaseEmployeeDirectory(EmployeeDirectoryProtocol, LoggingMixin):
    """Read-only employee lookups against Supabase."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client
        self._init_logger(component="storage")

    async def _select(
        self,
        table: str,
        query_fn: Callable[[AsyncRequestBuilder], Any],
    ) -> list[dict[str, Any]]:
        try:
            result = await query_fn(self._client.table(table)).execute()
        except APIError as exc:
            raise translate_api_error(exc, operation="select", table=table) from exc
        return coerce_rows(result.data)

    async def _headed_departments(self, head_id: UUID) -> frozenset[UUID]:
        rows = await self._select(
            DEPARTMENT_HEAD_DEPARTMENTS_TABLE,
            lambda table: table.select("department_id").eq(
                "department_head_id", str(head_id)
            ),
        )
        return frozenset(UUID(str(row["department_id"])) for row in rows)

    async def _to_employee(self, row: dict[str, Any]) -> Employee:
        headed: frozenset[UUID] = frozenset()
        if row.get("role") == EmployeeRole.DEPARTMENT_HEAD.value:
            headed = await self._headed_departments(UUID(str(row["id"])))
        return Employee.from_row(row, headed)

    async def get(self, employee_id: UUID) -> Employee | None:
        rows = await self._select(
            EMPLOYEES_TABLE,
            lambda table: table.select(_EMPLOYEE_COLUMNS).eq("id", str(employee_id)),
        )
        if not rows:
            return None
        return await self._to_employee(rows[0])

    async def find_active_supervisor(self, department_id: UUID) -> Employee | None:
        log = self._log_operation(
            "find_active_supervisor", department_id=str(department_id)
        )
        rows = await self._select(
            EMPLOYEES_TABLE,
            lambda table: table.select(_EMPLOYEE_COLUMNS)
            .eq("role", EmployeeRole.DEPARTMENT_HEAD.value)
            .eq("department_id", str(department_id))
            .eq("is_active", True)
            .order("created_at")
            .limit(1),
        )
        if rows:
            return await self._to_employee(rows[0])

        # Fall back to supervisors heading the department through the mapping
        mappings = await self._select(
            DEPARTMENT_HEAD_DEPARTMENTS_TABLE,
            lambda table: table.select("department_head_id").eq(
                "department_id", str(department_id)
            ),
        )
        head_ids = sorted({str(row["department_head_id"]) for row in mappings})
        if not head_ids:
            log.debug("supervisor_not_found")
            return None
        rows = await self._select(
            EMPLOYEES_TABLE,
            lambda table: table.select(_EMPLOYEE_COLUMNS)
            .in_("id", head_ids)
            .eq("role", EmployeeRole.DEPARTMENT_HEAD.value)
            .eq("is_active", True)
            .order("created_at")
            .limit(1),
        )
        if not rows:
            log.debug("supervisor_not_found")
            return None
        return await self._to_employee(rows[0])

    async def find_active_worker(
        self,
        department_id: UUID,
        exclude: frozenset[UUID] = frozenset(),
    ) -> Employee | None:
        rows = await self._select(
            EMPLOYEES_TABLE,
            lambda table: table.select(_EMPLOYEE_COLUMNS)
            .eq("role", EmployeeRole.EMPLOYEE.value)
            .eq("department_id", str(department_id))
            .eq("is_active", True)
            .order("created_at"),
        )
        for row in rows:
            if UUID(str(row["id"])) not in exclude:
                return Employee.from_row(row)
        return None

    async def list_active_administrators(self) -> list[Employee]:
        rows = await self._select(
            EMPLOYEES_TABLE,
            lambda table: table.select(_EMPLOYEE_COLUMNS)
            .in_("role", [EmployeeRole.ADMIN.value, EmployeeRole.SUPER_ADMIN.value])
            .eq("is_active", True)
            .order("created_at"),
        )
        return [Employee.from_row(row) for row in rows]

    async def get_admin_departments(self, admin_id: UUID) -> frozenset[UUID]:
        rows = await self._select(
            ADMIN_DEPARTMENTS_TABLE,
            lambda table: table.select("department_id").eq("admin_id", str(admin_id)),
        )
        return frozenset(UUID(str(row["department_id"])) for row in rows)
