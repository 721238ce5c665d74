"""Reassignment audit records and engine results.

A ReassignmentRecord is written for every task the reassignment engine
mutates or creates. Records are append-only and carry an idempotency key
derived from the task id and the rejection time, so a retried rejection
never spawns a second counterpart task.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from taskvision.domain.models.task import iso_or_none, parse_timestamp, parse_uuid


class ReassignmentKind(Enum):
    """What a reassignment record describes.

    Kinds:
        RECYCLED: The original task was reset for its assignee
        DERIVATIVE: A counterpart task was created
        ESCALATED: A policy escalation was raised to administrators
    """

    RECYCLED = "recycled"
    DERIVATIVE = "derivative"
    ESCALATED = "escalated"


class ReassignmentOutcome(Enum):
    """Overall outcome of a reassignment run.

    Outcomes:
        COMPLETE: Original reset and counterpart task created
        PRIMARY_ONLY: Original reset, no counterpart was resolvable
        PARTIAL: Original reset, counterpart creation failed
        FAILED: The original task could not be reset
    """

    COMPLETE = "complete"
    PRIMARY_ONLY = "primary_only"
    PARTIAL = "partial"
    FAILED = "failed"

    @property
    def succeeded(self) -> bool:
        return self != ReassignmentOutcome.FAILED


def idempotency_key(task_id: UUID, rejected_at: datetime) -> str:
    """Build the idempotency key for a rejection of a task."""
    return f"{task_id}:{rejected_at.isoformat()}"


@dataclass(frozen=True, eq=True)
class ReassignmentRecord:
    """Append-only audit entry for a reassignment step.

    Attributes:
        id: Record identifier.
        task_id: The task that was reset or created.
        kind: What the record describes.
        reason: Rejection reason.
        rejected_by_id: Who rejected.
        created_at: When the record was written.
        idempotency_key: "{original task id}:{rejected_at isoformat}".
        from_employee_id: Previous assignee.
        to_employee_id: New assignee.
        source_task_id: Original task, for derivative records.
    """

    id: UUID
    task_id: UUID
    kind: ReassignmentKind
    reason: str
    rejected_by_id: UUID
    created_at: datetime
    idempotency_key: str
    from_employee_id: UUID | None = field(default=None)
    to_employee_id: UUID | None = field(default=None)
    source_task_id: UUID | None = field(default=None)

    def to_row(self) -> dict[str, Any]:
        """Serialize to a ``task_reassignment_logs`` row."""
        return {
            "id": str(self.id),
            "task_id": str(self.task_id),
            "kind": self.kind.value,
            "reason": self.reason,
            "rejected_by_id": str(self.rejected_by_id),
            "from_employee_id": (
                str(self.from_employee_id) if self.from_employee_id else None
            ),
            "to_employee_id": str(self.to_employee_id) if self.to_employee_id else None,
            "source_task_id": str(self.source_task_id) if self.source_task_id else None,
            "idempotency_key": self.idempotency_key,
            "auto_reassigned": True,
            "created_at": iso_or_none(self.created_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ReassignmentRecord:
        """Build a record from a ``task_reassignment_logs`` row."""
        created_at = parse_timestamp(row.get("created_at"))
        if created_at is None:
            raise ValueError("Reassignment log row is missing created_at")
        return cls(
            id=UUID(str(row["id"])),
            task_id=UUID(str(row["task_id"])),
            kind=ReassignmentKind(row.get("kind") or ReassignmentKind.RECYCLED.value),
            reason=row.get("reason") or "",
            rejected_by_id=UUID(str(row["rejected_by_id"])),
            created_at=created_at,
            idempotency_key=row.get("idempotency_key") or "",
            from_employee_id=parse_uuid(row.get("from_employee_id")),
            to_employee_id=parse_uuid(row.get("to_employee_id")),
            source_task_id=parse_uuid(row.get("source_task_id")),
        )


@dataclass(frozen=True)
class ReassignmentResult:
    """Result of a reassignment run.

    The engine never raises on partial success. Callers inspect outcome.

    Attributes:
        task_id: The original (rejected) task.
        outcome: Overall outcome.
        original_reassigned: Whether the original task was reset.
        counterpart_reassigned: Whether a counterpart task exists for this rejection.
        counterpart_task_id: The derivative task (if any).
        counterpart_employee_id: The counterpart assignee (if any).
        escalated: Whether a policy escalation was raised.
        duplicate_suppressed: Whether steps were skipped because this
            rejection had already been processed.
        message: Human-readable summary.
    """

    task_id: UUID
    outcome: ReassignmentOutcome
    original_reassigned: bool
    counterpart_reassigned: bool = False
    counterpart_task_id: UUID | None = None
    counterpart_employee_id: UUID | None = None
    escalated: bool = False
    duplicate_suppressed: bool = False
    message: str = ""

    @property
    def success(self) -> bool:
        return self.outcome.succeeded
