"""Task domain model and lifecycle state machine.

State Machine:
    PENDING -> IN_PROGRESS (assignee starts work)
    IN_PROGRESS -> COMPLETED (assignee submits proof, supervisor path)
    IN_PROGRESS -> AWAITING_REVIEW (assignee submits proof, direct admin path)
    COMPLETED -> APPROVED | REJECTED
    AWAITING_REVIEW -> APPROVED | REJECTED
    REJECTED -> PENDING | IN_PROGRESS

APPROVED is terminal. REJECTED is passed through transiently by the
reassignment engine and is never persisted: a rejected task is stored
as PENDING with its rejection counter incremented.

Invariants (checked in __post_init__):
- started_at <= completed_at <= approved_at whenever present
- A PENDING task holds no completion data
- rejection_count is never negative

Rows written by older clients may be PENDING with stale completion
columns left over from a reset. from_row drops those columns instead of
failing the read.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

import structlog

from taskvision.domain.errors.task import InvalidTransitionError

log = structlog.get_logger()

# Columns a PENDING task never holds; older clients left them behind on reset
PENDING_CLEARED_COLUMNS = ("completed_at", "completion_photo_url", "approved_at", "approved_by")


class TaskStatus(Enum):
    """Lifecycle status of a task.

    Values are the strings stored in the ``tasks.status`` column.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    AWAITING_REVIEW = "awaiting_review"
    APPROVED = "approved"
    REJECTED = "rejected"

    def is_terminal(self) -> bool:
        """Check if no further transitions are permitted from this status."""
        return not STATE_TRANSITION_MATRIX.get(self)

    def valid_transitions(self) -> frozenset[TaskStatus]:
        """Get the statuses reachable from this status."""
        return STATE_TRANSITION_MATRIX.get(self, frozenset())


class TaskPriority(Enum):
    """Priority of a task."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AdminReviewStatus(Enum):
    """Review status on the direct administrator path."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


STATE_TRANSITION_MATRIX: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset(
        {TaskStatus.COMPLETED, TaskStatus.AWAITING_REVIEW}
    ),
    TaskStatus.COMPLETED: frozenset({TaskStatus.APPROVED, TaskStatus.REJECTED}),
    TaskStatus.AWAITING_REVIEW: frozenset(
        {TaskStatus.APPROVED, TaskStatus.REJECTED}
    ),
    TaskStatus.REJECTED: frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS}),
    TaskStatus.APPROVED: frozenset(),
}

# Statuses from which a reviewer may reject
REVIEWABLE_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.AWAITING_REVIEW}
)

DEFAULT_TASK_TYPE = "normal"


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_uuid(value: Any) -> UUID | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, UUID) else UUID(str(value))


def iso_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _str_or_none(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


@dataclass(frozen=True, eq=True)
class TaskLocation:
    """Location a task must be performed at.

    Attributes:
        address: Human-readable address.
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
    """

    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True, eq=True)
class Task:
    """A unit of work assigned to an employee.

    Tasks are immutable. Lifecycle methods validate the transition against
    STATE_TRANSITION_MATRIX and return a new instance.

    Attributes:
        id: Task identifier.
        title: Short title shown to the assignee.
        assigned_to: Employee responsible for the task.
        assigned_by: Employee who created the task.
        department_id: Department the task belongs to.
        description: Optional longer description.
        priority: Task priority.
        status: Current lifecycle status.
        is_active: Inactive tasks cannot be started.
        is_required: Mandatory supervisor-tier task (optional column).
        task_type: Free-form type keying reassignment rules.
        deadline: Optional due date.
        location: Optional location the work must happen at.
        rejection_count: Number of times the task was rejected.
        rejection_reason: Reason of the latest rejection.
        completion_photo_url: Reference to the proof photo.
        started_at: When the assignee started.
        completed_at: When the assignee submitted proof.
        approved_at: When the task was signed off.
        approved_by: Who signed the task off.
        admin_review_status: Status on the direct admin path (optional column).
        admin_rejection_reason: Admin reason on the direct path (optional column).
        created_at: Creation timestamp (UTC).
        updated_at: Last modification timestamp (UTC).
    """

    id: UUID
    title: str
    assigned_to: UUID | None = field(default=None)
    assigned_by: UUID | None = field(default=None)
    department_id: UUID | None = field(default=None)
    description: str | None = field(default=None)
    priority: TaskPriority = field(default=TaskPriority.MEDIUM)
    status: TaskStatus = field(default=TaskStatus.PENDING)
    is_active: bool = field(default=True)
    is_required: bool = field(default=False)
    task_type: str = field(default=DEFAULT_TASK_TYPE)
    deadline: datetime | None = field(default=None)
    location: TaskLocation | None = field(default=None)
    rejection_count: int = field(default=0)
    rejection_reason: str | None = field(default=None)
    completion_photo_url: str | None = field(default=None)
    started_at: datetime | None = field(default=None)
    completed_at: datetime | None = field(default=None)
    approved_at: datetime | None = field(default=None)
    approved_by: UUID | None = field(default=None)
    admin_review_status: AdminReviewStatus | None = field(default=None)
    admin_rejection_reason: str | None = field(default=None)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        """Validate task invariants."""
        if not self.title or not self.title.strip():
            raise ValueError("Task title must not be empty")
        if self.rejection_count < 0:
            raise ValueError("rejection_count must not be negative")
        if self.status == TaskStatus.PENDING and (
            self.completed_at is not None
            or self.completion_photo_url is not None
            or self.approved_at is not None
        ):
            raise ValueError("A pending task must not hold completion data")
        if (
            self.started_at is not None
            and self.completed_at is not None
            and self.started_at > self.completed_at
        ):
            raise ValueError("started_at must not be after completed_at")
        if (
            self.completed_at is not None
            and self.approved_at is not None
            and self.completed_at > self.approved_at
        ):
            raise ValueError("completed_at must not be after approved_at")

    def can_transition_to(self, new_status: TaskStatus) -> bool:
        """Check if the transition is legal from the current status."""
        return new_status in self.status.valid_transitions()

    def _transition(
        self,
        new_status: TaskStatus,
        operation: str,
        **changes: Any,
    ) -> Task:
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(
                task_id=self.id,
                from_status=self.status,
                to_status=new_status,
                allowed_transitions=list(self.status.valid_transitions()),
                operation=operation,
            )
        return replace(self, status=new_status, **changes)

    def start(self, at: datetime) -> Task:
        """Move the task to IN_PROGRESS and stamp started_at."""
        return self._transition(
            TaskStatus.IN_PROGRESS, "start", started_at=at, updated_at=at
        )

    def complete(self, at: datetime, photo_url: str) -> Task:
        """Move the task to COMPLETED with its proof photo."""
        return self._transition(
            TaskStatus.COMPLETED,
            "complete",
            completed_at=at,
            completion_photo_url=photo_url,
            updated_at=at,
        )

    def submit_for_review(self, at: datetime, photo_url: str) -> Task:
        """Move the task to AWAITING_REVIEW on the direct admin path."""
        return self._transition(
            TaskStatus.AWAITING_REVIEW,
            "submit_for_review",
            completed_at=at,
            completion_photo_url=photo_url,
            admin_review_status=AdminReviewStatus.PENDING,
            admin_rejection_reason=None,
            updated_at=at,
        )

    def sign_off(self, by: UUID, at: datetime) -> Task:
        """Stamp the supervisor sign-off without changing status.

        Raises:
            InvalidTransitionError: If the task is not COMPLETED.
        """
        if self.status != TaskStatus.COMPLETED:
            raise InvalidTransitionError(
                task_id=self.id,
                from_status=self.status,
                to_status=TaskStatus.APPROVED,
                allowed_transitions=list(self.status.valid_transitions()),
                operation="request_verification",
            )
        return replace(self, approved_by=by, approved_at=at, updated_at=at)

    def approve(self, by: UUID, at: datetime, *, keep_sign_off: bool = False) -> Task:
        """Move the task to APPROVED.

        Args:
            by: The approver.
            at: Approval time.
            keep_sign_off: Keep an existing supervisor sign-off instead of
                overwriting approved_by/approved_at.
        """
        changes: dict[str, Any] = {"updated_at": at}
        if not (keep_sign_off and self.approved_by is not None):
            changes["approved_by"] = by
            changes["approved_at"] = at
        if self.status == TaskStatus.AWAITING_REVIEW:
            changes["admin_review_status"] = AdminReviewStatus.APPROVED
        return self._transition(TaskStatus.APPROVED, "approve", **changes)

    def reset_after_rejection(self, reason: str, at: datetime) -> Task:
        """Return the task to PENDING after a rejection.

        The task passes through REJECTED. Completion data and the sign-off
        are cleared, the counter is incremented and the task is reactivated.

        Raises:
            InvalidTransitionError: If the task is APPROVED.
        """
        if self.status == TaskStatus.APPROVED:
            raise InvalidTransitionError(
                task_id=self.id,
                from_status=self.status,
                to_status=TaskStatus.REJECTED,
                operation="reassign",
            )
        rejected = replace(self, status=TaskStatus.REJECTED)
        return rejected._transition(
            TaskStatus.PENDING,
            "reassign",
            is_active=True,
            rejection_count=self.rejection_count + 1,
            rejection_reason=reason,
            completed_at=None,
            completion_photo_url=None,
            started_at=None,
            approved_by=None,
            approved_at=None,
            updated_at=at,
        )

    def with_active(self, active: bool, at: datetime) -> Task:
        """Return a copy with the active flag set."""
        return replace(self, is_active=active, updated_at=at)

    def to_row(self) -> dict[str, Any]:
        """Serialize to a ``tasks`` row."""
        location = self.location or TaskLocation()
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "status": self.status.value,
            "is_active": self.is_active,
            "is_required": self.is_required,
            "task_type": self.task_type,
            "deadline": iso_or_none(self.deadline),
            "location_address": location.address,
            "location_lat": location.latitude,
            "location_lng": location.longitude,
            "assigned_to": _str_or_none(self.assigned_to),
            "assigned_by": _str_or_none(self.assigned_by),
            "department_id": _str_or_none(self.department_id),
            "rejection_count": self.rejection_count,
            "rejection_reason": self.rejection_reason,
            "completion_photo_url": self.completion_photo_url,
            "started_at": iso_or_none(self.started_at),
            "completed_at": iso_or_none(self.completed_at),
            "approved_at": iso_or_none(self.approved_at),
            "approved_by": _str_or_none(self.approved_by),
            "admin_review_status": (
                self.admin_review_status.value if self.admin_review_status else None
            ),
            "admin_rejection_reason": self.admin_rejection_reason,
            "created_at": iso_or_none(self.created_at),
            "updated_at": iso_or_none(self.updated_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any], *, normalize_legacy: bool = True) -> Task:
        """Build a task from a ``tasks`` row.

        Columns missing from the row (for example optional columns absent
        from an older schema) fall back to their defaults.

        Args:
            row: Column values.
            normalize_legacy: Drop stale completion columns from PENDING
                rows. When False such rows fail validation.

        Raises:
            ValueError: If the row violates a task invariant.
        """
        if normalize_legacy and row.get("status") == TaskStatus.PENDING.value:
            stale = [key for key in PENDING_CLEARED_COLUMNS if row.get(key) is not None]
            if stale:
                log.warning("legacy_row_normalized", task_id=str(row.get("id")), columns=stale)
                row = {**row, **dict.fromkeys(stale)}
        location = None
        if any(
            row.get(key) is not None
            for key in ("location_address", "location_lat", "location_lng")
        ):
            location = TaskLocation(
                address=row.get("location_address"),
                latitude=row.get("location_lat"),
                longitude=row.get("location_lng"),
            )
        admin_review = row.get("admin_review_status")
        created_at = parse_timestamp(row.get("created_at")) or _utc_now()
        return cls(
            id=UUID(str(row["id"])),
            title=row["title"],
            description=row.get("description"),
            priority=TaskPriority(row.get("priority") or TaskPriority.MEDIUM.value),
            status=TaskStatus(row.get("status") or TaskStatus.PENDING.value),
            is_active=bool(row.get("is_active", True)),
            is_required=bool(row.get("is_required") or False),
            task_type=row.get("task_type") or DEFAULT_TASK_TYPE,
            deadline=parse_timestamp(row.get("deadline")),
            location=location,
            assigned_to=parse_uuid(row.get("assigned_to")),
            assigned_by=parse_uuid(row.get("assigned_by")),
            department_id=parse_uuid(row.get("department_id")),
            rejection_count=int(row.get("rejection_count") or 0),
            rejection_reason=row.get("rejection_reason"),
            completion_photo_url=row.get("completion_photo_url"),
            started_at=parse_timestamp(row.get("started_at")),
            completed_at=parse_timestamp(row.get("completed_at")),
            approved_at=parse_timestamp(row.get("approved_at")),
            approved_by=parse_uuid(row.get("approved_by")),
            admin_review_status=(
                AdminReviewStatus(admin_review) if admin_review else None
            ),
            admin_rejection_reason=row.get("admin_rejection_reason"),
            created_at=created_at,
            updated_at=parse_timestamp(row.get("updated_at")) or created_at,
        )


def changed_columns(
    before: Task,
    after: Task,
    *,
    include: Iterable[str] = (),
) -> dict[str, Any]:
    """Return the ``tasks`` columns whose values differ between two versions.

    Columns named in ``include`` are written even when unchanged. The id
    column is never included.
    """
    old_row = before.to_row()
    forced = set(include)
    return {
        key: value
        for key, value in after.to_row().items()
        if key != "id" and (key in forced or old_row.get(key) != value)
    }
