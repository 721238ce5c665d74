"""Employee directory stub implementation."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from taskvision.application.ports.employee_directory import EmployeeDirectoryProtocol
from taskvision.domain.models.employee import Employee, EmployeeRole


class EmployeeDirectoryStub(EmployeeDirectoryProtocol):
    """In-memory stub implementation of EmployeeDirectoryProtocol.

    Lookups that pick one employee return the first match in insertion
    order, so tests control which supervisor or worker is resolved.
    """

    def __init__(self, employees: Iterable[Employee] = ()) -> None:
        self._employees: dict[UUID, Employee] = {}
        self._admin_departments: dict[UUID, frozenset[UUID]] = {}
        for employee in employees:
            self.add(employee)

    def add(self, employee: Employee) -> Employee:
        self._employees[employee.id] = employee
        return employee

    def set_admin_departments(self, admin_id: UUID, department_ids: Iterable[UUID]) -> None:
        self._admin_departments[admin_id] = frozenset(department_ids)

    async def get(self, employee_id: UUID) -> Employee | None:
        return self._employees.get(employee_id)

    async def find_active_supervisor(self, department_id: UUID) -> Employee | None:
        return next(
            (e for e in self._employees.values() if e.supervises(department_id)),
            None,
        )

    async def find_active_worker(
        self,
        department_id: UUID,
        exclude: frozenset[UUID] = frozenset(),
    ) -> Employee | None:
        return next(
            (
                e
                for e in self._employees.values()
                if e.is_active
                and e.role == EmployeeRole.EMPLOYEE
                and e.department_id == department_id
                and e.id not in exclude
            ),
            None,
        )

    async def list_active_administrators(self) -> list[Employee]:
        return [
            e for e in self._employees.values() if e.is_active and e.role.is_administrator
        ]

    async def get_admin_departments(self, admin_id: UUID) -> frozenset[UUID]:
        return self._admin_departments.get(admin_id, frozenset())

    def clear(self) -> None:
        """Clear all stored data (for testing)."""
        self._employees.clear()
        self._admin_departments.clear()
