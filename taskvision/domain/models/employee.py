"""Employee domain model (read-only).

Employees are managed outside the workflow core. The core reads them to
resolve roles, departments and reassignment counterparts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID


class EmployeeRole(Enum):
    """Role tier of an employee."""

    EMPLOYEE = "employee"
    DEPARTMENT_HEAD = "department_head"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def is_administrator(self) -> bool:
        return self in (EmployeeRole.ADMIN, EmployeeRole.SUPER_ADMIN)

    @property
    def is_supervisor(self) -> bool:
        return self == EmployeeRole.DEPARTMENT_HEAD


@dataclass(frozen=True, eq=True)
class Employee:
    """An employee as seen by the workflow core.

    Attributes:
        id: Employee identifier.
        name: Display name, used in notification text.
        role: Role tier.
        department_id: Home department (None for unassigned staff).
        is_active: Inactive employees are never resolved as counterparts.
        headed_department_ids: Extra departments a supervisor heads.
    """

    id: UUID
    name: str
    role: EmployeeRole
    department_id: UUID | None = field(default=None)
    is_active: bool = field(default=True)
    headed_department_ids: frozenset[UUID] = field(default_factory=frozenset)

    def supervises(self, department_id: UUID | None) -> bool:
        """Check if this employee is an active supervisor of the department."""
        if not self.is_active or not self.role.is_supervisor or department_id is None:
            return False
        return (
            department_id == self.department_id
            or department_id in self.headed_department_ids
        )

    @classmethod
    def from_row(
        cls,
        row: dict[str, Any],
        headed_department_ids: frozenset[UUID] = frozenset(),
    ) -> Employee:
        """Build an employee from an ``employees`` row."""
        department = row.get("department_id")
        return cls(
            id=UUID(str(row["id"])),
            name=row.get("name") or "",
            role=EmployeeRole(row.get("role") or EmployeeRole.EMPLOYEE.value),
            department_id=UUID(str(department)) if department else None,
            is_active=row.get("is_active") is not False,
            headed_department_ids=headed_department_ids,
        )
