"""Verification request ledger.

Owns the lifecycle of verification requests: opening one per completed
task, closing it exactly once, listing the review queue within an
administrator's department scope, and keeping a live queue in sync with
the change feed.

At most one pending request exists per task. Concurrent opens within
one process are serialized by a per-task asyncio.Lock, held only while
some caller references it; across processes the repository rejects a
second pending insert.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID, uuid4

from taskvision.application.ports.change_feed import ChangeFeedPort, ChangeSubscription
from taskvision.application.ports.employee_directory import EmployeeDirectoryProtocol
from taskvision.application.ports.task_repository import TaskRepositoryProtocol
from taskvision.application.ports.time_authority import TimeAuthorityProtocol
from taskvision.application.ports.verification_request_repository import (
    VERIFICATION_REQUESTS_TABLE,
    VerificationRequestRepositoryProtocol,
)
from taskvision.application.services.base import LoggingMixin
from taskvision.application.services.optional_field_writer import OptionalFieldWriter
from taskvision.domain.errors.task import MissingReasonError, NotAuthorizedError
from taskvision.domain.errors.verification import (
    VerificationAlreadyPendingError,
    VerificationRequestNotFoundError,
)
from taskvision.domain.models.change_event import ChangeEvent
from taskvision.domain.models.employee import EmployeeRole
from taskvision.domain.models.reviewer_scope import ReviewerScope
from taskvision.domain.models.verification_request import (
    VerificationDecision,
    VerificationRequest,
    VerificationStatus,
)

ReviewQueueCallback = Callable[[list[VerificationRequest]], Awaitable[None]]

_CLOSE_COLUMNS = ("status", "approved_by", "approved_at", "admin_reason")


class VerificationLedgerService(LoggingMixin):
    """Opens, closes and lists verification requests."""

    def __init__(
        self,
        requests: VerificationRequestRepositoryProtocol,
        tasks: TaskRepositoryProtocol,
        directory: EmployeeDirectoryProtocol,
        time_authority: TimeAuthorityProtocol,
        change_feed: ChangeFeedPort,
        writer: OptionalFieldWriter | None = None,
    ) -> None:
        self._requests = requests
        self._tasks = tasks
        self._directory = directory
        self._time = time_authority
        self._change_feed = change_feed
        self._writer = writer or OptionalFieldWriter()
        self._locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._init_logger(component="workflow")

    def _lock_for(self, task_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(task_id)
        if lock is None:
            lock = self._locks[task_id] = asyncio.Lock()
        return lock

    async def open_request(self, task_id: UUID, requested_by: UUID) -> VerificationRequest:
        """Open a pending request for a task.

        Args:
            task_id: The completed task.
            requested_by: The supervisor requesting verification.

        Returns:
            The stored pending request.

        Raises:
            VerificationAlreadyPendingError: If the task already has one.
            TaskStoreError: If the insert failed.
        """
        log = self._log_operation(
            "open_request",
            task_id=str(task_id),
            requested_by=str(requested_by),
        )
        async with self._lock_for(task_id):
            existing = await self._requests.find_pending_for_task(task_id)
            if existing is not None:
                log.info(
                    "verification_request_already_pending",
                    request_id=str(existing.id),
                )
                raise VerificationAlreadyPendingError(
                    task_id=task_id,
                    existing_request_id=existing.id,
                )

            request = VerificationRequest(
                id=uuid4(),
                task_id=task_id,
                requested_by=requested_by,
                created_at=self._time.utcnow(),
            )
            stored = await self._writer.write(
                VERIFICATION_REQUESTS_TABLE,
                request.to_row(),
                self._requests.insert,
                operation="open_request",
            )

        log.info("verification_request_opened", request_id=str(stored.id))
        return stored

    async def close_request(
        self,
        request: VerificationRequest,
        admin_id: UUID,
        decision: VerificationDecision,
        reason: str | None = None,
    ) -> VerificationRequest:
        """Persist the approved or rejected copy of a pending request.

        Raises:
            VerificationAlreadyClosedError: If the request is not pending.
            MissingReasonError: If a rejection has no reason.
            TaskStoreError: If the update failed.
        """
        log = self._log_operation(
            "close_request",
            request_id=str(request.id),
            task_id=str(request.task_id),
            decision=decision.value,
        )
        now = self._time.utcnow()
        if decision == VerificationDecision.APPROVE:
            closed = request.approve(admin_id, now)
        else:
            if not reason or not reason.strip():
                raise MissingReasonError(
                    operation="reject_verification",
                    task_id=request.task_id,
                    request_id=request.id,
                )
            closed = request.reject(admin_id, now, reason.strip())

        row = closed.to_row()
        payload: dict[str, Any] = {column: row[column] for column in _CLOSE_COLUMNS}
        if payload["admin_reason"] is None:
            del payload["admin_reason"]

        stored = await self._writer.write(
            VERIFICATION_REQUESTS_TABLE,
            payload,
            lambda values: self._requests.update(request.id, values),
            operation="close_request",
        )
        log.info("verification_request_closed", status=stored.status.value)
        return stored

    async def get_request(self, request_id: UUID) -> VerificationRequest:
        """Return a request.

        Raises:
            VerificationRequestNotFoundError: If it does not exist.
        """
        request = await self._requests.get(request_id)
        if request is None:
            raise VerificationRequestNotFoundError(request_id, operation="get_request")
        return request

    async def withdraw_request(self, request: VerificationRequest) -> None:
        """Delete a request whose task write failed after it was opened."""
        removed = await self._requests.delete(request.id)
        self._log_operation(
            "withdraw_request", request_id=str(request.id), task_id=str(request.task_id)
        ).warning("verification_request_withdrawn", removed=removed)

    async def pending_for_task(self, task_id: UUID) -> VerificationRequest | None:
        return await self._requests.find_pending_for_task(task_id)

    async def remove_for_task(self, task_id: UUID) -> int:
        """Delete every request of a task (task deletion cascade)."""
        removed = await self._requests.delete_for_task(task_id)
        self._locks.pop(task_id, None)
        self._log_operation("remove_for_task", task_id=str(task_id)).info(
            "verification_requests_removed", count=removed
        )
        return removed

    async def resolve_scope(self, reviewer_id: UUID) -> ReviewerScope:
        """Resolve the department scope of an administrator.

        Raises:
            NotAuthorizedError: If the reviewer is not an active administrator.
        """
        reviewer = await self._directory.get(reviewer_id)
        if reviewer is None or not reviewer.is_active or not reviewer.role.is_administrator:
            raise NotAuthorizedError(
                caller_id=reviewer_id,
                operation="review_verification",
                detail="only active administrators review verification requests",
            )
        if reviewer.role == EmployeeRole.SUPER_ADMIN:
            return ReviewerScope(reviewer_id=reviewer_id, unrestricted=True)

        departments = await self._directory.get_admin_departments(reviewer_id)
        return ReviewerScope(
            reviewer_id=reviewer_id,
            unrestricted=not departments,
            department_ids=frozenset(departments),
        )

    async def list_for_reviewer(
        self,
        reviewer_id: UUID,
        status: VerificationStatus | None = None,
    ) -> list[VerificationRequest]:
        """List requests within a reviewer's scope, newest first.

        Raises:
            NotAuthorizedError: If the reviewer is not an active administrator.
        """
        scope = await self.resolve_scope(reviewer_id)
        requests = await self._requests.list_by_status(status)
        tasks = await self._tasks.get_many({request.task_id for request in requests})
        visible = [
            request
            for request in requests
            if request.task_id in tasks and scope.covers(tasks[request.task_id].department_id)
        ]
        visible.sort(key=lambda request: request.created_at, reverse=True)
        return visible

    async def watch_for_reviewer(
        self,
        reviewer_id: UUID,
        on_change: ReviewQueueCallback,
        status: VerificationStatus | None = VerificationStatus.PENDING,
    ) -> ChangeSubscription:
        """Keep a reviewer's queue in sync with the request table.

        On every insert, update or delete the scoped list is re-fetched and
        passed to ``on_change``. Refresh failures are logged, not raised.

        Raises:
            NotAuthorizedError: If the reviewer is not an active administrator.
        """
        await self.resolve_scope(reviewer_id)
        log = self._log_operation("watch_for_reviewer", reviewer_id=str(reviewer_id))

        async def _refresh(event: ChangeEvent) -> None:
            try:
                queue = await self.list_for_reviewer(reviewer_id, status)
                await on_change(queue)
            except Exception as exc:
                log.warning(
                    "review_queue_refresh_failed",
                    change_type=event.change_type.value,
                    error=str(exc),
                )

        subscription = await self._change_feed.subscribe(
            VERIFICATION_REQUESTS_TABLE, _refresh
        )
        log.info("review_queue_watch_started")
        return subscription
