"""Task lifecycle controller.

Every workflow operation on a task goes through this service. It checks
the caller's identity and role, validates the transition, persists the
result, informs the notification service and hands rejections to the
reassignment engine.

Caller identity is always an explicit parameter; nothing is read from an
ambient session. Authorization and validation errors are raised before
any write.

Supervisor path:
    start -> complete -> request_verification -> dispose_verification
Direct administrator path:
    start -> submit_for_review -> review_submission
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any, ParamSpec, TypeVar
from uuid import UUID, uuid4

from taskvision.application.ports.employee_directory import EmployeeDirectoryProtocol
from taskvision.application.ports.proof_upload import ProofUploadPort
from taskvision.application.ports.task_repository import (
    TASKS_TABLE,
    TaskRepositoryProtocol,
)
from taskvision.application.ports.time_authority import TimeAuthorityProtocol
from taskvision.application.services.base import LoggingMixin
from taskvision.application.services.optional_field_writer import OptionalFieldWriter
from taskvision.application.services.reassignment_service import (
    TaskReassignmentService,
)
from taskvision.application.services.task_notification_service import (
    TaskNotificationService,
)
from taskvision.application.services.verification_ledger_service import (
    VerificationLedgerService,
)
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
)
from taskvision.domain.errors.verification import (
    VerificationAlreadyClosedError,
    VerificationAlreadyPendingError,
)
from taskvision.domain.models.disposition import (
    SubmissionReview,
    VerificationDisposition,
)
from taskvision.domain.models.employee import Employee, EmployeeRole
from taskvision.domain.models.notification import NotificationEventKind
from taskvision.domain.models.reassignment import ReassignmentResult
from taskvision.domain.models.task import (
    DEFAULT_TASK_TYPE,
    PENDING_CLEARED_COLUMNS,
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
)
from taskvision.infrastructure.observability.correlation import correlation_scope

P = ParamSpec("P")
R = TypeVar("R")


def _correlated(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Run a public operation under a correlation scope."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with correlation_scope():
            return await func(*args, **kwargs)

    return wrapper


class TaskLifecycleService(LoggingMixin):
    """Workflow operations on tasks.

    Example:
        task = await lifecycle.start(task_id, caller_id=worker_id)
        task = await lifecycle.complete(task_id, worker_id, photo_url)
        request = await lifecycle.request_verification(task_id, supervisor_id)
        outcome = await lifecycle.dispose_verification(
            request.id, admin_id, VerificationDecision.REJECT, "Blurry photo"
        )
    """

    def __init__(
        self,
        tasks: TaskRepositoryProtocol,
        ledger: VerificationLedgerService,
        reassignment: TaskReassignmentService,
        directory: EmployeeDirectoryProtocol,
        notifier: TaskNotificationService,
        time_authority: TimeAuthorityProtocol,
        proof_upload: ProofUploadPort | None = None,
        writer: OptionalFieldWriter | None = None,
    ) -> None:
        self._tasks = tasks
        self._ledger = ledger
        self._reassignment = reassignment
        self._directory = directory
        self._notifier = notifier
        self._time = time_authority
        self._proof_upload = proof_upload
        self._writer = writer or OptionalFieldWriter()
        self._init_logger(component="workflow")

    # ------------------------------------------------------------------
    # Worker transitions
    # ------------------------------------------------------------------

    @_correlated
    async def start(self, task_id: UUID, caller_id: UUID) -> Task:
        """Start a pending task.

        Raises:
            TaskNotFoundError: If the task does not exist.
            NotAssigneeError: If the caller is not the assignee.
            InvalidTransitionError: If the task is not pending (including a
                second start; no write happens).
            TaskInactiveError: If the task is inactive.
        """
        log = self._log_operation("start", task_id=str(task_id), caller_id=str(caller_id))
        task = await self._load_task(task_id, "start")
        self._require_assignee(task, caller_id, "start")
        started = task.start(self._time.utcnow())
        if not task.is_active:
            raise TaskInactiveError(task_id)

        # Also clears completion columns an older client left on the row
        stored = await self._save(task, started, "start", include=PENDING_CLEARED_COLUMNS)
        log.info("task_started")

        worker = await self._directory.get(caller_id)
        await self._notifier.notify(
            NotificationEventKind.TASK_STARTED,
            [task.assigned_by],
            stored,
            actor_name=worker.name if worker else "",
        )
        return stored

    @_correlated
    async def complete(
        self,
        task_id: UUID,
        caller_id: UUID,
        proof_photo_ref: str | None,
    ) -> Task:
        """Complete an in-progress task with proof.

        Raises:
            TaskNotFoundError: If the task does not exist.
            NotAssigneeError: If the caller is not the assignee.
            InvalidTransitionError: If the task is not in progress.
            MissingProofError: If the proof reference is empty.
        """
        log = self._log_operation("complete", task_id=str(task_id), caller_id=str(caller_id))
        task = await self._load_task(task_id, "complete")
        self._require_assignee(task, caller_id, "complete")
        self._require_status(task, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, "complete")
        if proof_photo_ref is None or not proof_photo_ref.strip():
            raise MissingProofError(task_id)

        completed = task.complete(self._time.utcnow(), proof_photo_ref.strip())
        stored = await self._save(task, completed, "complete")
        log.info("task_completed")

        worker = await self._directory.get(caller_id)
        supervisor = None
        if task.department_id is not None:
            supervisor = await self._directory.find_active_supervisor(task.department_id)
        await self._notifier.notify(
            NotificationEventKind.TASK_COMPLETED,
            [task.assigned_by, supervisor.id if supervisor else None],
            stored,
            actor_name=worker.name if worker else "",
        )
        return stored

    @_correlated
    async def complete_with_upload(
        self,
        task_id: UUID,
        caller_id: UUID,
        content: bytes,
        content_type: str,
    ) -> Task:
        """Upload a proof photo and complete the task with it.

        The task is validated before the upload so that rejected
        completions never leave orphaned photos.

        Raises:
            Same as complete(); TaskStoreError if the upload fails.
        """
        task = await self._load_task(task_id, "complete")
        self._require_assignee(task, caller_id, "complete")
        self._require_status(task, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, "complete")
        if not content:
            raise MissingProofError(task_id)
        if self._proof_upload is None:
            raise TaskValidationError(
                "Proof upload is not configured",
                task_id=task_id,
                operation="complete",
            )

        photo_url = await self._proof_upload.upload(task_id, content, content_type)
        self._log_operation("complete", task_id=str(task_id)).info(
            "proof_uploaded", content_type=content_type, size=len(content)
        )
        return await self.complete(task_id, caller_id, photo_url)

    @_correlated
    async def submit_for_review(
        self,
        task_id: UUID,
        caller_id: UUID,
        proof_photo_ref: str | None,
    ) -> Task:
        """Submit an in-progress task directly for administrator review.

        Raises:
            TaskNotFoundError: If the task does not exist.
            NotAssigneeError: If the caller is not the assignee.
            InvalidTransitionError: If the task is not in progress.
            MissingProofError: If the proof reference is empty.
        """
        log = self._log_operation(
            "submit_for_review", task_id=str(task_id), caller_id=str(caller_id)
        )
        task = await self._load_task(task_id, "submit_for_review")
        self._require_assignee(task, caller_id, "submit_for_review")
        self._require_status(
            task, TaskStatus.IN_PROGRESS, TaskStatus.AWAITING_REVIEW, "submit_for_review"
        )
        if proof_photo_ref is None or not proof_photo_ref.strip():
            raise MissingProofError(task_id, operation="submit_for_review")

        submitted = task.submit_for_review(self._time.utcnow(), proof_photo_ref.strip())
        stored = await self._save(task, submitted, "submit_for_review")
        log.info("task_awaiting_review")

        submitter = await self._directory.get(caller_id)
        await self._notifier.notify(
            NotificationEventKind.TASK_AWAITING_REVIEW,
            [task.assigned_by],
            stored,
            actor_name=submitter.name if submitter else "",
        )
        return stored

    # ------------------------------------------------------------------
    # Supervisor decisions
    # ------------------------------------------------------------------

    @_correlated
    async def request_verification(
        self,
        task_id: UUID,
        supervisor_id: UUID,
    ) -> VerificationRequest:
        """Sign off a completed task and ask administrators to verify it.

        Raises:
            TaskNotFoundError: If the task does not exist.
            NotAuthorizedError: If the caller does not supervise the task.
            InvalidTransitionError: If the task is not completed.
            VerificationAlreadyPendingError: If a request is already pending.
            TaskStoreError: If the sign-off write failed; the request just
                opened is withdrawn first.
        """
        log = self._log_operation(
            "request_verification", task_id=str(task_id), supervisor_id=str(supervisor_id)
        )
        task = await self._load_task(task_id, "request_verification")
        supervisor = await self._require_supervisor(task, supervisor_id, "request_verification")
        now = self._time.utcnow()
        signed = task.sign_off(supervisor_id, now)

        request = await self._ledger.open_request(task_id, supervisor_id)
        try:
            stored = await self._save(task, signed, "request_verification")
        except (TaskStoreError, SchemaDriftError):
            # No pending request may outlive a sign-off that never landed
            await self._ledger.withdraw_request(request)
            raise
        log.info("verification_requested", request_id=str(request.id))

        administrators = await self._directory.list_active_administrators()
        await self._notifier.notify(
            NotificationEventKind.VERIFICATION_REQUESTED,
            [admin.id for admin in administrators],
            stored,
            actor_name=supervisor.name,
            request_id=str(request.id),
        )
        return request

    @_correlated
    async def reject_completion(
        self,
        task_id: UUID,
        supervisor_id: UUID,
        reason: str | None,
    ) -> ReassignmentResult:
        """Reject a worker's proof directly, without administrator review.

        Raises:
            TaskNotFoundError: If the task does not exist.
            NotAuthorizedError: If the caller does not supervise the task.
            InvalidTransitionError: If the task is not completed.
            MissingReasonError: If the reason is blank.
            VerificationAlreadyPendingError: If the task is already under
                administrator verification.
        """
        task = await self._load_task(task_id, "reject_completion")
        await self._require_supervisor(task, supervisor_id, "reject_completion")
        self._require_status(task, TaskStatus.COMPLETED, TaskStatus.REJECTED, "reject_completion")
        if reason is None or not reason.strip():
            raise MissingReasonError(operation="reject_completion", task_id=task_id)

        pending = await self._ledger.pending_for_task(task_id)
        if pending is not None:
            raise VerificationAlreadyPendingError(
                task_id=task_id,
                existing_request_id=pending.id,
                operation="reject_completion",
            )

        self._log_operation(
            "reject_completion", task_id=str(task_id), supervisor_id=str(supervisor_id)
        ).info("completion_rejected")
        return await self._reassignment.reassign(
            task_id, supervisor_id, reason.strip(), rejected_at=self._time.utcnow()
        )

    # ------------------------------------------------------------------
    # Administrator decisions
    # ------------------------------------------------------------------

    @_correlated
    async def dispose_verification(
        self,
        request_id: UUID,
        admin_id: UUID,
        decision: VerificationDecision,
        reason: str | None = None,
    ) -> VerificationDisposition:
        """Approve or reject a pending verification request.

        Approval makes the task APPROVED (terminal) and leaves the rejection
        counter unchanged. Rejection closes the request with the reason and
        runs the reassignment engine.

        Raises:
            VerificationRequestNotFoundError: If the request does not exist.
            TaskNotFoundError: If the request's task does not exist.
            NotAuthorizedError: If the caller's scope does not cover the task.
            VerificationAlreadyClosedError: If the request is not pending.
            MissingReasonError: If a rejection has no reason.
            InvalidTransitionError: If an approval finds the task not completed.
        """
        log = self._log_operation(
            "dispose_verification",
            request_id=str(request_id),
            admin_id=str(admin_id),
            decision=decision.value,
        )
        request = await self._ledger.get_request(request_id)
        task = await self._load_task(request.task_id, "dispose_verification")
        admin = await self._require_reviewer(task, admin_id, "dispose_verification")
        if not request.is_pending:
            raise VerificationAlreadyClosedError(
                request_id=request.id, status=request.status, task_id=task.id
            )

        if decision == VerificationDecision.APPROVE:
            approved = task.approve(admin_id, self._time.utcnow(), keep_sign_off=True)
            closed = await self._ledger.close_request(request, admin_id, decision)
            stored = await self._save(task, approved, "dispose_verification")
            log.info("verification_approved", task_id=str(task.id))

            await self._notifier.notify(
                NotificationEventKind.TASK_APPROVED,
                [task.assigned_to],
                stored,
                actor_name=admin.name,
            )
            await self._notifier.notify(
                NotificationEventKind.VERIFICATION_APPROVED,
                [request.requested_by],
                stored,
                actor_name=admin.name,
                request_id=str(request.id),
            )
            return VerificationDisposition(request=closed, task=stored)

        if reason is None or not reason.strip():
            raise MissingReasonError(
                operation="reject_verification",
                task_id=task.id,
                request_id=request.id,
            )
        reason = reason.strip()

        closed = await self._ledger.close_request(request, admin_id, decision, reason)
        log.info("verification_rejected", task_id=str(task.id))
        await self._notifier.notify(
            NotificationEventKind.VERIFICATION_REJECTED,
            [request.requested_by],
            task,
            actor_name=admin.name,
            reason=reason,
            request_id=str(request.id),
        )

        result = await self._reassignment.reassign(
            task.id, admin_id, reason, rejected_at=closed.approved_at
        )
        after = await self._tasks.get(task.id) or task
        return VerificationDisposition(request=closed, task=after, reassignment=result)

    @_correlated
    async def review_submission(
        self,
        task_id: UUID,
        admin_id: UUID,
        decision: VerificationDecision,
        reason: str | None = None,
    ) -> SubmissionReview:
        """Approve or reject a task awaiting direct administrator review.

        Raises:
            TaskNotFoundError: If the task does not exist.
            NotAuthorizedError: If the caller's scope does not cover the task.
            InvalidTransitionError: If the task is not awaiting review.
            MissingReasonError: If a rejection has no reason.
        """
        log = self._log_operation(
            "review_submission",
            task_id=str(task_id),
            admin_id=str(admin_id),
            decision=decision.value,
        )
        task = await self._load_task(task_id, "review_submission")
        admin = await self._require_reviewer(task, admin_id, "review_submission")
        target = (
            TaskStatus.APPROVED
            if decision == VerificationDecision.APPROVE
            else TaskStatus.REJECTED
        )
        self._require_status(task, TaskStatus.AWAITING_REVIEW, target, "review_submission")

        now = self._time.utcnow()
        if decision == VerificationDecision.APPROVE:
            stored = await self._save(task, task.approve(admin_id, now), "review_submission")
            log.info("submission_approved")
            await self._notifier.notify(
                NotificationEventKind.TASK_APPROVED,
                [task.assigned_to],
                stored,
                actor_name=admin.name,
            )
            return SubmissionReview(task=stored)

        if reason is None or not reason.strip():
            raise MissingReasonError(operation="review_submission", task_id=task_id)
        reason = reason.strip()

        await self._writer.write(
            TASKS_TABLE,
            {
                "admin_review_status": AdminReviewStatus.REJECTED.value,
                "admin_rejection_reason": reason,
                "updated_at": now.isoformat(),
            },
            lambda values: self._tasks.update(task_id, values),
            operation="review_submission",
        )
        log.info("submission_rejected")
        result = await self._reassignment.reassign(task_id, admin_id, reason, rejected_at=now)
        after = await self._tasks.get(task_id) or task
        return SubmissionReview(task=after, reassignment=result)

    # ------------------------------------------------------------------
    # Task management
    # ------------------------------------------------------------------

    @_correlated
    async def create_task(
        self,
        creator_id: UUID,
        title: str,
        assigned_to: UUID,
        *,
        description: str | None = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
        task_type: str = DEFAULT_TASK_TYPE,
        deadline: datetime | None = None,
        location: TaskLocation | None = None,
        department_id: UUID | None = None,
        is_required: bool = False,
    ) -> Task:
        """Create and assign a task.

        Raises:
            NotAuthorizedError: If the creator is not an active supervisor or
                administrator.
            TaskValidationError: If the title is blank, the assignee is not an
                active employee, or is_required is set for a non-supervisor.
        """
        log = self._log_operation(
            "create_task", creator_id=str(creator_id), assigned_to=str(assigned_to)
        )
        creator = await self._directory.get(creator_id)
        if creator is None or not creator.is_active or not (
            creator.role.is_supervisor or creator.role.is_administrator
        ):
            raise NotAuthorizedError(
                caller_id=creator_id,
                operation="create_task",
                detail="only active supervisors and administrators create tasks",
            )
        if not title or not title.strip():
            raise TaskValidationError("Task title must not be empty", operation="create_task")

        assignee = await self._directory.get(assigned_to)
        if assignee is None or not assignee.is_active:
            raise TaskValidationError(
                f"Assignee {assigned_to} is not an active employee",
                operation="create_task",
            )
        if is_required and assignee.role != EmployeeRole.DEPARTMENT_HEAD:
            raise TaskValidationError(
                "Only department head tasks can be marked as required",
                operation="create_task",
            )

        now = self._time.utcnow()
        task = Task(
            id=uuid4(),
            title=title.strip(),
            description=description,
            assigned_to=assigned_to,
            assigned_by=creator_id,
            department_id=department_id or assignee.department_id,
            priority=priority,
            task_type=task_type,
            deadline=deadline,
            location=location,
            is_required=is_required,
            created_at=now,
            updated_at=now,
        )
        stored = await self._writer.write(
            TASKS_TABLE, task.to_row(), self._tasks.insert, operation="create_task"
        )
        log.info("task_created", task_id=str(stored.id), is_required=stored.is_required)

        await self._notifier.notify(
            NotificationEventKind.TASK_ASSIGNED,
            [assigned_to],
            stored,
            actor_name=creator.name,
        )
        return stored

    @_correlated
    async def set_active(self, task_id: UUID, caller_id: UUID, active: bool) -> Task:
        """Activate or deactivate a task. Setting the current value is a no-op.

        Raises:
            TaskNotFoundError: If the task does not exist.
            NotAuthorizedError: If the caller is neither creator nor administrator.
        """
        task = await self._load_task(task_id, "set_active")
        await self._require_manager(task, caller_id, "set_active")
        if task.is_active == active:
            return task

        stored = await self._save(
            task, task.with_active(active, self._time.utcnow()), "set_active"
        )
        self._log_operation("set_active", task_id=str(task_id)).info(
            "task_activation_changed", is_active=active
        )
        await self._notifier.notify(
            NotificationEventKind.TASK_ACTIVATED
            if active
            else NotificationEventKind.TASK_DEACTIVATED,
            [task.assigned_to],
            stored,
        )
        return stored

    @_correlated
    async def delete_task(self, task_id: UUID, caller_id: UUID) -> None:
        """Delete a task and its verification requests.

        Raises:
            TaskNotFoundError: If the task does not exist.
            NotAuthorizedError: If the caller is neither creator nor administrator.
        """
        task = await self._load_task(task_id, "delete_task")
        await self._require_manager(task, caller_id, "delete_task")

        await self._ledger.remove_for_task(task_id)
        await self._tasks.delete(task_id)
        self._log_operation("delete_task", task_id=str(task_id)).info("task_deleted")

        await self._notifier.notify(
            NotificationEventKind.TASK_DELETED,
            [task.assigned_to],
            task,
        )

    async def get_task(self, task_id: UUID) -> Task:
        """Return a task.

        Raises:
            TaskNotFoundError: If the task does not exist.
        """
        return await self._load_task(task_id, "get_task")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_task(self, task_id: UUID, operation: str) -> Task:
        task = await self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id, operation=operation)
        return task

    async def _save(
        self,
        before: Task,
        after: Task,
        operation: str,
        *,
        include: Iterable[str] = (),
    ) -> Task:
        values: dict[str, Any] = changed_columns(before, after, include=include)
        return await self._writer.write(
            TASKS_TABLE,
            values,
            lambda payload: self._tasks.update(before.id, payload),
            operation=operation,
        )

    @staticmethod
    def _require_assignee(task: Task, caller_id: UUID, operation: str) -> None:
        if task.assigned_to != caller_id:
            raise NotAssigneeError(
                task_id=task.id,
                caller_id=caller_id,
                assignee_id=task.assigned_to,
                operation=operation,
            )

    @staticmethod
    def _require_status(
        task: Task,
        expected: TaskStatus,
        target: TaskStatus,
        operation: str,
    ) -> None:
        if task.status != expected:
            raise InvalidTransitionError(
                task_id=task.id,
                from_status=task.status,
                to_status=target,
                allowed_transitions=list(task.status.valid_transitions()),
                operation=operation,
            )

    async def _require_supervisor(
        self,
        task: Task,
        supervisor_id: UUID,
        operation: str,
    ) -> Employee:
        supervisor = await self._directory.get(supervisor_id)
        if (
            supervisor is None
            or not supervisor.is_active
            or supervisor.role != EmployeeRole.DEPARTMENT_HEAD
        ):
            raise NotAuthorizedError(
                caller_id=supervisor_id,
                operation=operation,
                detail="caller is not an active department head",
                task_id=task.id,
            )
        if not (supervisor.supervises(task.department_id) or task.assigned_by == supervisor_id):
            raise NotAuthorizedError(
                caller_id=supervisor_id,
                operation=operation,
                detail="caller neither supervises the task's department nor created it",
                task_id=task.id,
            )
        return supervisor

    async def _require_reviewer(
        self,
        task: Task,
        admin_id: UUID,
        operation: str,
    ) -> Employee:
        scope = await self._ledger.resolve_scope(admin_id)
        if not scope.covers(task.department_id):
            raise NotAuthorizedError(
                caller_id=admin_id,
                operation=operation,
                detail="task department is outside the reviewer's scope",
                task_id=task.id,
            )
        admin = await self._directory.get(admin_id)
        if admin is None:
            raise NotAuthorizedError(
                caller_id=admin_id,
                operation=operation,
                detail="reviewer not found",
                task_id=task.id,
            )
        return admin

    async def _require_manager(self, task: Task, caller_id: UUID, operation: str) -> None:
        if task.assigned_by == caller_id:
            return
        caller = await self._directory.get(caller_id)
        if caller is not None and caller.is_active and caller.role.is_administrator:
            return
        raise NotAuthorizedError(
            caller_id=caller_id,
            operation=operation,
            detail="only the task's creator or an administrator may do this",
            task_id=task.id,
        )
