"""Task workflow errors.

This module defines the errors surfaced by the task lifecycle controller
and the reassignment engine. Every error carries enough context (task id,
operation, attempted transition, reason) for a caller to render a
specific message instead of a generic failure.

Propagation rules:
- Authorization and validation errors are raised before any write
- Notification failures are never surfaced (see TaskNotificationService)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from taskvision.domain.exceptions import TaskVisionError

if TYPE_CHECKING:
    from taskvision.domain.models.task import TaskStatus


class TaskWorkflowError(TaskVisionError):
    """Base error for task workflow operations.

    Attributes:
        task_id: Task the operation targeted (if known).
        operation: Name of the attempted operation.
        attempted_transition: "from -> to" description (if applicable).
        reason: Free text reason attached to the operation (if applicable).
    """

    def __init__(
        self,
        message: str,
        *,
        task_id: UUID | None = None,
        operation: str | None = None,
        attempted_transition: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Initialize the workflow error.

        Args:
            message: Human-readable error description.
            task_id: Task the operation targeted.
            operation: Name of the attempted operation.
            attempted_transition: Description of the attempted transition.
            reason: Reason attached to the operation.
        """
        self.task_id = task_id
        self.operation = operation
        self.attempted_transition = attempted_transition
        self.reason = reason
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        """Return structured context for rendering or logging.

        Returns:
            Dictionary with the non-empty context fields.
        """
        data: dict[str, Any] = {
            "error": self.__class__.__name__,
            "message": str(self),
        }
        if self.task_id is not None:
            data["task_id"] = str(self.task_id)
        if self.operation is not None:
            data["operation"] = self.operation
        if self.attempted_transition is not None:
            data["attempted_transition"] = self.attempted_transition
        if self.reason is not None:
            data["reason"] = self.reason
        return data


class TaskNotFoundError(TaskWorkflowError):
    """Raised when a task id cannot be resolved."""

    def __init__(self, task_id: UUID, operation: str | None = None) -> None:
        super().__init__(
            f"Task {task_id} not found",
            task_id=task_id,
            operation=operation,
        )


class InvalidTransitionError(TaskWorkflowError):
    """Raised when a transition is not legal from the task's current state.

    Attributes:
        from_status: Current status of the task.
        to_status: Attempted target status.
        allowed_transitions: Statuses reachable from the current status.
    """

    def __init__(
        self,
        task_id: UUID,
        from_status: TaskStatus,
        to_status: TaskStatus,
        allowed_transitions: list[TaskStatus] | None = None,
        operation: str | None = None,
    ) -> None:
        """Initialize invalid transition error.

        Args:
            task_id: Task the transition was attempted on.
            from_status: Current task status.
            to_status: Attempted target status.
            allowed_transitions: Valid targets from the current status.
            operation: Name of the attempted operation.
        """
        self.from_status = from_status
        self.to_status = to_status
        self.allowed_transitions = allowed_transitions or []

        allowed_str = (
            f" Valid transitions: {sorted(s.value for s in self.allowed_transitions)}"
            if self.allowed_transitions
            else ""
        )
        super().__init__(
            f"Invalid transition for task {task_id}: "
            f"{from_status.value} -> {to_status.value}.{allowed_str}",
            task_id=task_id,
            operation=operation,
            attempted_transition=f"{from_status.value} -> {to_status.value}",
        )


class TaskInactiveError(TaskWorkflowError):
    """Raised when an inactive task is started."""

    def __init__(self, task_id: UUID, operation: str | None = "start") -> None:
        super().__init__(
            f"Task {task_id} is inactive and cannot be started",
            task_id=task_id,
            operation=operation,
        )


class NotAssigneeError(TaskWorkflowError):
    """Raised when the caller is not the task's assignee.

    Attributes:
        caller_id: Employee that attempted the operation.
        assignee_id: Employee the task is assigned to.
    """

    def __init__(
        self,
        task_id: UUID,
        caller_id: UUID,
        assignee_id: UUID | None,
        operation: str | None = None,
    ) -> None:
        self.caller_id = caller_id
        self.assignee_id = assignee_id
        super().__init__(
            f"Employee {caller_id} is not the assignee of task {task_id}",
            task_id=task_id,
            operation=operation,
        )


class NotAuthorizedError(TaskWorkflowError):
    """Raised when the caller's role or scope does not permit the operation.

    Attributes:
        caller_id: Employee that attempted the operation.
        detail: Why authorization failed.
    """

    def __init__(
        self,
        caller_id: UUID,
        operation: str,
        detail: str,
        task_id: UUID | None = None,
    ) -> None:
        self.caller_id = caller_id
        self.detail = detail
        super().__init__(
            f"Employee {caller_id} is not authorized to {operation}: {detail}",
            task_id=task_id,
            operation=operation,
        )


class MissingReasonError(TaskWorkflowError):
    """Raised when a rejection is attempted without reason text."""

    def __init__(
        self,
        operation: str,
        task_id: UUID | None = None,
        request_id: UUID | None = None,
    ) -> None:
        self.request_id = request_id
        target = f"task {task_id}" if task_id else f"request {request_id}"
        super().__init__(
            f"A rejection reason is required to {operation} {target}",
            task_id=task_id,
            operation=operation,
        )


class MissingProofError(TaskWorkflowError):
    """Raised when a completion is submitted without a proof reference."""

    def __init__(self, task_id: UUID, operation: str = "complete") -> None:
        super().__init__(
            f"Task {task_id} cannot be completed without a proof photo reference",
            task_id=task_id,
            operation=operation,
        )


class TaskValidationError(TaskWorkflowError):
    """Raised when task data is inconsistent with the workflow rules."""

    pass
