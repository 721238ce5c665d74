"""Verification request errors.

Errors raised by the verification request ledger. A task may hold at most
one pending request, and closed requests are immutable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from taskvision.domain.errors.task import TaskWorkflowError

if TYPE_CHECKING:
    from taskvision.domain.models.verification_request import VerificationStatus


class VerificationRequestNotFoundError(TaskWorkflowError):
    """Raised when a verification request id cannot be resolved.

    Attributes:
        request_id: The unresolved request id.
    """

    def __init__(self, request_id: UUID, operation: str | None = None) -> None:
        self.request_id = request_id
        super().__init__(
            f"Verification request {request_id} not found",
            operation=operation,
        )


class VerificationAlreadyPendingError(TaskWorkflowError):
    """Raised when a second pending request is opened for the same task.

    Attributes:
        existing_request_id: The request that is already pending (if known).
    """

    def __init__(
        self,
        task_id: UUID,
        existing_request_id: UUID | None = None,
        operation: str = "request_verification",
    ) -> None:
        self.existing_request_id = existing_request_id
        super().__init__(
            f"Task {task_id} already has a pending verification request",
            task_id=task_id,
            operation=operation,
        )


class VerificationAlreadyClosedError(TaskWorkflowError):
    """Raised when a closed request is disposed of again.

    Attributes:
        request_id: The closed request.
        status: Its final status.
    """

    def __init__(
        self,
        request_id: UUID,
        status: VerificationStatus,
        task_id: UUID | None = None,
        operation: str = "dispose_verification",
    ) -> None:
        self.request_id = request_id
        self.status = status
        super().__init__(
            f"Verification request {request_id} is already {status.value}",
            task_id=task_id,
            operation=operation,
            attempted_transition=f"{status.value} -> closed",
        )
