"""Reassignment engine.

Runs after every rejection, whichever path produced it (administrator
disposition of a verification request, supervisor rejection of worker
proof, administrator review on the direct path).

Steps:
1. Load the task and its assignee
2. Reset the original task for its assignee (status pending, counter +1,
   completion data and sign-off cleared, reactivated)
3. Resolve the counterpart tier: a worker's task goes to the department's
   supervisor, a supervisor's task to one active worker
4. Create a derivative task for the counterpart
5. Append one audit record per task touched
6. Notify, then run the policy escalation check

The engine never raises on partial success. The outcome is reported in
ReassignmentResult: COMPLETE, PRIMARY_ONLY, PARTIAL or FAILED.

Each rejection is keyed by (task_id, rejected_at). A retry of the same
rejection skips steps whose audit records already exist, so it never
resets the task twice or spawns a second derivative.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from taskvision.application.ports.employee_directory import EmployeeDirectoryProtocol
from taskvision.application.ports.reassignment_log_repository import (
    ReassignmentLogRepositoryProtocol,
)
from taskvision.application.ports.task_repository import (
    TASKS_TABLE,
    TaskRepositoryProtocol,
)
from taskvision.application.ports.time_authority import TimeAuthorityProtocol
from taskvision.application.services.base import LoggingMixin
from taskvision.application.services.optional_field_writer import OptionalFieldWriter
from taskvision.application.services.task_notification_service import (
    TaskNotificationService,
)
from taskvision.domain.errors.task import (
    MissingReasonError,
    TaskNotFoundError,
    TaskValidationError,
)
from taskvision.domain.exceptions import TaskVisionError
from taskvision.domain.models.employee import Employee, EmployeeRole
from taskvision.domain.models.notification import NotificationEventKind
from taskvision.domain.models.reassignment import (
    ReassignmentKind,
    ReassignmentOutcome,
    ReassignmentRecord,
    ReassignmentResult,
    idempotency_key,
)
from taskvision.domain.models.reassignment_policy import (
    DEFAULT_REASSIGNMENT_POLICY,
    ReassignmentPolicy,
)
from taskvision.domain.models.task import Task, TaskStatus, changed_columns

DEFAULT_REJECTER_NAME = "Administrator"


def derivative_description(original: str | None, rejecter_name: str, reason: str) -> str:
    """Build the description of a counterpart task."""
    notice = (
        f"Original task was rejected by {rejecter_name}.\n"
        f"Reason: {reason}\n"
        "This task requires your attention."
    )
    return f"{original}\n\n{notice}" if original else notice


class TaskReassignmentService(LoggingMixin):
    """The single reassignment algorithm, with a policy hook."""

    def __init__(
        self,
        tasks: TaskRepositoryProtocol,
        reassignment_log: ReassignmentLogRepositoryProtocol,
        directory: EmployeeDirectoryProtocol,
        notifier: TaskNotificationService,
        time_authority: TimeAuthorityProtocol,
        writer: OptionalFieldWriter | None = None,
        policy: ReassignmentPolicy = DEFAULT_REASSIGNMENT_POLICY,
    ) -> None:
        self._tasks = tasks
        self._log_repo = reassignment_log
        self._directory = directory
        self._notifier = notifier
        self._time = time_authority
        self._writer = writer or OptionalFieldWriter()
        self._policy = policy
        self._init_logger(component="workflow")

    @property
    def policy(self) -> ReassignmentPolicy:
        return self._policy

    async def reassign(
        self,
        task_id: UUID,
        rejected_by_id: UUID,
        reason: str,
        rejected_at: datetime | None = None,
    ) -> ReassignmentResult:
        """Reassign a rejected task.

        Args:
            task_id: The rejected task.
            rejected_by_id: Who rejected it.
            reason: Rejection reason (required).
            rejected_at: When it was rejected. Retries of one rejection must
                pass the same value. Defaults to now.

        Returns:
            ReassignmentResult describing what was done.

        Raises:
            TaskNotFoundError: If the task does not exist.
            TaskValidationError: If the task has no assignee.
            MissingReasonError: If the reason is blank.
            InvalidTransitionError: If the task is already approved.
        """
        rejected_at = rejected_at or self._time.utcnow()
        log = self._log_operation(
            "reassign",
            task_id=str(task_id),
            rejected_by=str(rejected_by_id),
        )

        reason = (reason or "").strip()
        if not reason:
            raise MissingReasonError(operation="reassign", task_id=task_id)

        task = await self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id, operation="reassign")
        if task.assigned_to is None:
            raise TaskValidationError(
                f"Task {task_id} has no assignee to reassign",
                task_id=task_id,
                operation="reassign",
                reason=reason,
            )

        key = idempotency_key(task_id, rejected_at)
        existing = await self._existing_records(key)
        recycled = next(
            (r for r in existing if r.kind == ReassignmentKind.RECYCLED), None
        )
        derivative_record = next(
            (r for r in existing if r.kind == ReassignmentKind.DERIVATIVE), None
        )
        escalation_record = next(
            (r for r in existing if r.kind == ReassignmentKind.ESCALATED), None
        )
        # Only a recycle or a derivative is a step a retry can skip
        duplicate_suppressed = recycled is not None or derivative_record is not None
        if duplicate_suppressed:
            log.info("reassignment_duplicate_detected", idempotency_key=key)

        assignee = await self._directory.get(task.assigned_to)
        rejecter = await self._directory.get(rejected_by_id)
        rejecter_name = rejecter.name if rejecter and rejecter.name else DEFAULT_REJECTER_NAME

        # Step 2: reset the original task
        if recycled is not None:
            reset_task = task
        else:
            reset = task.reset_after_rejection(reason, rejected_at)
            try:
                reset_task = await self._writer.write(
                    TASKS_TABLE,
                    changed_columns(task, reset),
                    lambda values: self._tasks.update(task_id, values),
                    operation="reassign",
                )
            except TaskVisionError as exc:
                log.error("original_reset_failed", error=str(exc))
                return ReassignmentResult(
                    task_id=task_id,
                    outcome=ReassignmentOutcome.FAILED,
                    original_reassigned=False,
                    message=f"Failed to reassign task: {exc}",
                )
            log.info(
                "original_task_reset",
                assignee_id=str(task.assigned_to),
                rejection_count=reset_task.rejection_count,
            )
            await self._append(
                ReassignmentRecord(
                    id=uuid4(),
                    task_id=task_id,
                    kind=ReassignmentKind.RECYCLED,
                    reason=reason,
                    rejected_by_id=rejected_by_id,
                    created_at=self._time.utcnow(),
                    idempotency_key=key,
                    from_employee_id=task.assigned_to,
                    to_employee_id=task.assigned_to,
                ),
            )

        # Steps 3-4: counterpart
        counterpart_task: Task | None = None
        counterpart_task_id: UUID | None = None
        counterpart_employee_id: UUID | None = None
        counterpart_failed = False
        if derivative_record is not None:
            counterpart_task_id = derivative_record.task_id
            counterpart_employee_id = derivative_record.to_employee_id
        elif self._policy.spawn_counterpart:
            counterpart = await self._resolve_counterpart(task, assignee)
            if counterpart is not None and counterpart.id != task.assigned_to:
                counterpart_employee_id = counterpart.id
                counterpart_task = await self._create_derivative(
                    task, counterpart, rejected_by_id, rejecter_name, reason
                )
                if counterpart_task is None:
                    counterpart_failed = True
                else:
                    counterpart_task_id = counterpart_task.id
                    await self._append(
                        ReassignmentRecord(
                            id=uuid4(),
                            task_id=counterpart_task.id,
                            kind=ReassignmentKind.DERIVATIVE,
                            reason=reason,
                            rejected_by_id=rejected_by_id,
                            created_at=self._time.utcnow(),
                            idempotency_key=key,
                            from_employee_id=task.assigned_to,
                            to_employee_id=counterpart.id,
                            source_task_id=task_id,
                        ),
                    )

        # Step 6: notify
        if recycled is None:
            await self._notifier.notify(
                NotificationEventKind.TASK_REJECTED,
                [task.assigned_to],
                reset_task,
                actor_name=rejecter_name,
                reason=reason,
            )
            await self._notifier.notify(
                NotificationEventKind.TASK_REASSIGNED,
                [task.assigned_to],
                reset_task,
                actor_name=rejecter_name,
                reason=reason,
            )
        if counterpart_task is not None:
            await self._notifier.notify(
                NotificationEventKind.TASK_ASSIGNED,
                [counterpart_task.assigned_to],
                counterpart_task,
                actor_name=rejecter_name,
                source_task_id=str(task_id),
            )

        if escalation_record is not None:
            escalated = True
        else:
            escalated = await self._escalate_if_needed(
                reset_task, rejected_by_id, reason, key
            )

        counterpart_reassigned = counterpart_task_id is not None
        if counterpart_reassigned:
            outcome = ReassignmentOutcome.COMPLETE
            message = "Task reassigned to the assignee and the counterpart"
        elif counterpart_failed:
            outcome = ReassignmentOutcome.PARTIAL
            message = "Task reassigned to the assignee; counterpart task could not be created"
        else:
            outcome = ReassignmentOutcome.PRIMARY_ONLY
            message = "Task reassigned to the assignee; no counterpart available"

        log.info(
            "reassignment_completed",
            outcome=outcome.value,
            counterpart_task_id=str(counterpart_task_id) if counterpart_task_id else None,
            escalated=escalated,
            duplicate_suppressed=duplicate_suppressed,
        )
        return ReassignmentResult(
            task_id=task_id,
            outcome=outcome,
            original_reassigned=True,
            counterpart_reassigned=counterpart_reassigned,
            counterpart_task_id=counterpart_task_id,
            counterpart_employee_id=counterpart_employee_id,
            escalated=escalated,
            duplicate_suppressed=duplicate_suppressed,
            message=message,
        )

    async def _existing_records(self, key: str) -> list[ReassignmentRecord]:
        try:
            return await self._log_repo.find_by_idempotency_key(key)
        except TaskVisionError as exc:
            self._log_operation("reassign", idempotency_key=key).warning(
                "reassignment_log_lookup_failed", error=str(exc)
            )
            return []

    async def _append(self, record: ReassignmentRecord) -> None:
        try:
            await self._log_repo.append(record)
        except TaskVisionError as exc:
            self._log_operation("reassign", task_id=str(record.task_id)).warning(
                "reassignment_log_write_failed",
                kind=record.kind.value,
                error=str(exc),
            )

    async def _resolve_counterpart(
        self,
        task: Task,
        assignee: Employee | None,
    ) -> Employee | None:
        """Find the employee on the other tier of the task's department."""
        if task.department_id is None or assignee is None:
            return None
        try:
            if assignee.role == EmployeeRole.EMPLOYEE:
                return await self._directory.find_active_supervisor(task.department_id)
            if assignee.role == EmployeeRole.DEPARTMENT_HEAD:
                return await self._directory.find_active_worker(
                    task.department_id, exclude=frozenset({assignee.id})
                )
        except TaskVisionError as exc:
            self._log_operation("reassign", task_id=str(task.id)).warning(
                "counterpart_lookup_failed", error=str(exc)
            )
        return None

    async def _create_derivative(
        self,
        task: Task,
        counterpart: Employee,
        rejected_by_id: UUID,
        rejecter_name: str,
        reason: str,
    ) -> Task | None:
        now = self._time.utcnow()
        derivative = Task(
            id=uuid4(),
            title=self._policy.derivative_title(task.title),
            description=derivative_description(task.description, rejecter_name, reason),
            assigned_to=counterpart.id,
            assigned_by=rejected_by_id,
            department_id=task.department_id,
            priority=task.priority,
            status=TaskStatus.PENDING,
            is_active=True,
            task_type=task.task_type,
            deadline=task.deadline,
            location=task.location,
            created_at=now,
            updated_at=now,
        )
        log = self._log_operation(
            "reassign",
            task_id=str(task.id),
            counterpart_id=str(counterpart.id),
        )
        try:
            stored = await self._writer.write(
                TASKS_TABLE,
                derivative.to_row(),
                self._tasks.insert,
                operation="create_derivative_task",
            )
        except TaskVisionError as exc:
            log.warning("counterpart_task_creation_failed", error=str(exc))
            return None
        log.info("counterpart_task_created", derivative_task_id=str(stored.id))
        return stored

    async def _escalate_if_needed(
        self,
        task: Task,
        rejected_by_id: UUID,
        reason: str,
        key: str,
    ) -> bool:
        if not self._policy.should_escalate(task, reason):
            return False

        log = self._log_operation("reassign", task_id=str(task.id))
        try:
            administrators = await self._directory.list_active_administrators()
        except TaskVisionError as exc:
            log.warning("escalation_recipient_lookup_failed", error=str(exc))
            administrators = []

        await self._notifier.notify(
            NotificationEventKind.TASK_ESCALATED,
            [admin.id for admin in administrators],
            task,
            reason=reason,
            rejection_count=task.rejection_count,
        )
        await self._append(
            ReassignmentRecord(
                id=uuid4(),
                task_id=task.id,
                kind=ReassignmentKind.ESCALATED,
                reason=reason,
                rejected_by_id=rejected_by_id,
                created_at=self._time.utcnow(),
                idempotency_key=key,
                from_employee_id=task.assigned_to,
            ),
        )
        log.warning(
            "task_escalated",
            rejection_count=task.rejection_count,
            administrator_count=len(administrators),
        )
        return True
