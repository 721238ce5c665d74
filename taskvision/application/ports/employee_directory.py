"""Employee directory port (read-only).

The workflow core never writes employees. It reads them to check roles,
resolve reviewer scope and find reassignment counterparts.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from taskvision.domain.models.employee import Employee


class EmployeeDirectoryProtocol(Protocol):
    """Protocol for employee lookups.

    Methods:
        get: Retrieve an employee by id
        find_active_supervisor: Active department head of a department
        find_active_worker: One active worker of a department
        list_active_administrators: Every active admin and super_admin
        get_admin_departments: Departments assigned to an admin
    """

    async def get(self, employee_id: UUID) -> Employee | None:
        """Retrieve an employee by id, or None."""
        ...

    async def find_active_supervisor(self, department_id: UUID) -> Employee | None:
        """Return the active department head of a department, or None.

        Supervisors heading the department through the
        department_head_departments mapping are included.
        """
        ...

    async def find_active_worker(
        self,
        department_id: UUID,
        exclude: frozenset[UUID] = frozenset(),
    ) -> Employee | None:
        """Return one active employee-tier worker of a department, or None."""
        ...

    async def list_active_administrators(self) -> list[Employee]:
        """Return every active admin and super_admin."""
        ...

    async def get_admin_departments(self, admin_id: UUID) -> frozenset[UUID]:
        """Return the departments assigned to an admin (may be empty)."""
        ...
