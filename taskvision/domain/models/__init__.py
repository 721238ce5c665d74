"""Domain models for Task Vision.

Contains value objects and domain models that represent the task
workflow. These models are immutable and contain no infrastructure
dependencies.
"""

from taskvision.domain.models.change_event import ChangeEvent, ChangeType
from taskvision.domain.models.disposition import SubmissionReview, VerificationDisposition
from taskvision.domain.models.employee import Employee, EmployeeRole
from taskvision.domain.models.notification import (
    NotificationDispatchResult,
    NotificationEvent,
    NotificationEventKind,
)
from taskvision.domain.models.reassignment import (
    ReassignmentKind,
    ReassignmentOutcome,
    ReassignmentRecord,
    ReassignmentResult,
    idempotency_key,
)
from taskvision.domain.models.reassignment_policy import (
    DEFAULT_REASSIGNMENT_POLICY,
    DEFAULT_REASSIGNMENT_RULES,
    ReassignmentPolicy,
    ReassignmentRule,
)
from taskvision.domain.models.reviewer_scope import ReviewerScope
from taskvision.domain.models.task import (
    REVIEWABLE_STATUSES,
    STATE_TRANSITION_MATRIX,
    AdminReviewStatus,
    Task,
    TaskLocation,
    TaskPriority,
    TaskStatus,
    changed_columns,
)
from taskvision.domain.models.verification_request import (
    VerificationDecision,
    VerificationRequest,
    VerificationStatus,
)

__all__: list[str] = [
    "DEFAULT_REASSIGNMENT_POLICY",
    "DEFAULT_REASSIGNMENT_RULES",
    "REVIEWABLE_STATUSES",
    "STATE_TRANSITION_MATRIX",
    "AdminReviewStatus",
    "ChangeEvent",
    "ChangeType",
    "Employee",
    "EmployeeRole",
    "NotificationDispatchResult",
    "NotificationEvent",
    "NotificationEventKind",
    "ReassignmentKind",
    "ReassignmentOutcome",
    "ReassignmentPolicy",
    "ReassignmentRecord",
    "ReassignmentResult",
    "ReassignmentRule",
    "ReviewerScope",
    "SubmissionReview",
    "Task",
    "TaskLocation",
    "TaskPriority",
    "TaskStatus",
    "VerificationDecision",
    "VerificationDisposition",
    "VerificationRequest",
    "VerificationStatus",
    "changed_columns",
    "idempotency_key",
]
