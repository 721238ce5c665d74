"""Domain errors for Task Vision.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from TaskVisionError.
"""

from taskvision.domain.errors.storage import SchemaDriftError, TaskStoreError
from taskvision.domain.errors.task import (
    InvalidTransitionError,
    MissingProofError,
    MissingReasonError,
    NotAssigneeError,
    NotAuthorizedError,
    TaskInactiveError,
    TaskNotFoundError,
    TaskValidationError,
    TaskWorkflowError,
)
from taskvision.domain.errors.verification import (
    VerificationAlreadyClosedError,
    VerificationAlreadyPendingError,
    VerificationRequestNotFoundError,
)

__all__: list[str] = [
    "InvalidTransitionError",
    "MissingProofError",
    "MissingReasonError",
    "NotAssigneeError",
    "NotAuthorizedError",
    "SchemaDriftError",
    "TaskInactiveError",
    "TaskNotFoundError",
    "TaskStoreError",
    "TaskValidationError",
    "TaskWorkflowError",
    "VerificationAlreadyClosedError",
    "VerificationAlreadyPendingError",
    "VerificationRequestNotFoundError",
]
