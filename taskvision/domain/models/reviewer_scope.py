"""Reviewer scope: which departments an administrator may review.

- A super_admin is unrestricted
- An admin with assigned departments is scoped to them
- An admin with no assigned departments is unrestricted
- Tasks without a department are visible only to unrestricted reviewers
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID


@dataclass(frozen=True, eq=True)
class ReviewerScope:
    """Department scope of an administrator.

    Attributes:
        reviewer_id: The administrator.
        unrestricted: Whether every department is in scope.
        department_ids: In-scope departments when restricted.
    """

    reviewer_id: UUID
    unrestricted: bool
    department_ids: frozenset[UUID] = field(default_factory=frozenset)

    def covers(self, department_id: UUID | None) -> bool:
        """Check if a task in the given department is in scope."""
        if self.unrestricted:
            return True
        return department_id is not None and department_id in self.department_ids
