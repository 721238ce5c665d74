"""Workflow scenarios across the lifecycle, ledger and reassignment services.

Each scenario drives the public lifecycle operations end to end over the
in-memory stubs, the way the mobile client calls them.
"""

from __future__ import annotations

import asyncio

import pytest

from taskvision.domain.errors.task import InvalidTransitionError, MissingReasonError
from taskvision.domain.errors.verification import VerificationAlreadyPendingError
from taskvision.domain.models.notification import NotificationEventKind
from taskvision.domain.models.reassignment import ReassignmentKind, ReassignmentOutcome
from taskvision.domain.models.task import Task, TaskStatus
from taskvision.domain.models.verification_request import (
    VerificationDecision,
    VerificationStatus,
)
from tests.helpers import WorkflowHarness
from tests.helpers.workflow_harness import deactivate

pytestmark = pytest.mark.integration


async def _complete_worker_task(harness: WorkflowHarness, photo: str = "p1") -> Task:
    task = harness.seed_task(status=TaskStatus.IN_PROGRESS)
    return await harness.lifecycle.complete(task.id, harness.worker.id, photo)


class TestSupervisorVerificationPath:
    """Worker completes, supervisor signs off, administrator decides."""

    @pytest.mark.asyncio
    async def test_completion_notifies_creator(self, harness: WorkflowHarness) -> None:
        completed = await _complete_worker_task(harness)

        assert completed.status == TaskStatus.COMPLETED
        assert completed.completed_at is not None
        assert completed.completion_photo_url == "p1"
        assert NotificationEventKind.TASK_COMPLETED in harness.dispatcher.received_by(
            harness.supervisor.id
        )

    @pytest.mark.asyncio
    async def test_request_verification_notifies_every_admin(
        self, harness: WorkflowHarness
    ) -> None:
        completed = await _complete_worker_task(harness)

        request = await harness.lifecycle.request_verification(
            completed.id, harness.supervisor.id
        )

        assert request.status == VerificationStatus.PENDING
        assert await harness.ledger.pending_for_task(completed.id) == request
        [event] = harness.dispatcher.events_of(NotificationEventKind.VERIFICATION_REQUESTED)
        assert set(event.recipient_ids) == {
            harness.admin.id,
            harness.scoped_admin.id,
            harness.super_admin.id,
        }
        assert harness.stored(completed.id).status == TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_rejection_recycles_task_and_spawns_derivative(
        self, harness: WorkflowHarness
    ) -> None:
        completed = await _complete_worker_task(harness)
        request = await harness.lifecycle.request_verification(
            completed.id, harness.supervisor.id
        )

        disposition = await harness.lifecycle.dispose_verification(
            request.id, harness.admin.id, VerificationDecision.REJECT, "blurry photo"
        )

        assert disposition.request.status == VerificationStatus.REJECTED
        assert disposition.request.admin_reason == "blurry photo"
        original = harness.stored(completed.id)
        assert original.status == TaskStatus.PENDING
        assert original.rejection_count == 1
        assert original.is_active
        assert original.assigned_to == harness.worker.id
        assert original.completed_at is None

        assert disposition.reassignment is not None
        assert disposition.reassignment.outcome == ReassignmentOutcome.COMPLETE
        [derivative] = harness.derivative_tasks(completed)
        assert derivative.assigned_to == harness.supervisor.id
        assert derivative.status == TaskStatus.PENDING

    @pytest.mark.asyncio
    async def test_approval_finalizes_without_touching_rejections(
        self, harness: WorkflowHarness
    ) -> None:
        completed = await _complete_worker_task(harness)
        request = await harness.lifecycle.request_verification(
            completed.id, harness.supervisor.id
        )

        disposition = await harness.lifecycle.dispose_verification(
            request.id, harness.admin.id, VerificationDecision.APPROVE
        )

        assert disposition.request.status == VerificationStatus.APPROVED
        assert disposition.task.status == TaskStatus.APPROVED
        assert disposition.task.rejection_count == completed.rejection_count
        assert NotificationEventKind.TASK_APPROVED in harness.dispatcher.received_by(
            harness.worker.id
        )
        assert NotificationEventKind.VERIFICATION_APPROVED in harness.dispatcher.received_by(
            harness.supervisor.id
        )

    @pytest.mark.asyncio
    async def test_blank_reason_mutates_nothing(self, harness: WorkflowHarness) -> None:
        completed = await _complete_worker_task(harness)
        request = await harness.lifecycle.request_verification(
            completed.id, harness.supervisor.id
        )
        task_before = harness.tasks.row(completed.id)
        request_before = harness.requests.row(request.id)

        with pytest.raises(MissingReasonError):
            await harness.lifecycle.dispose_verification(
                request.id, harness.admin.id, VerificationDecision.REJECT, "   "
            )

        assert harness.tasks.row(completed.id) == task_before
        assert harness.requests.row(request.id) == request_before
        assert harness.reassignment_log.records == []


class TestDirectReviewPath:
    """Worker submits straight to administrator review."""

    @pytest.mark.asyncio
    async def test_submit_then_approve(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.IN_PROGRESS)

        submitted = await harness.lifecycle.submit_for_review(task.id, harness.worker.id, "p2")
        review = await harness.lifecycle.review_submission(
            task.id, harness.admin.id, VerificationDecision.APPROVE
        )

        assert submitted.status == TaskStatus.AWAITING_REVIEW
        assert review.task.status == TaskStatus.APPROVED
        assert review.task.approved_by == harness.admin.id
        assert review.reassignment is None

    @pytest.mark.asyncio
    async def test_submit_then_reject(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.IN_PROGRESS)
        await harness.lifecycle.submit_for_review(task.id, harness.worker.id, "p2")

        review = await harness.lifecycle.review_submission(
            task.id, harness.admin.id, VerificationDecision.REJECT, "Wrong gauge"
        )

        assert review.task.status == TaskStatus.PENDING
        assert review.task.rejection_count == 1
        assert review.reassignment is not None
        assert review.reassignment.counterpart_employee_id == harness.supervisor.id


class TestSupervisorRejectionPath:
    @pytest.mark.asyncio
    async def test_supervisor_rejects_proof_directly(self, harness: WorkflowHarness) -> None:
        completed = await _complete_worker_task(harness)

        result = await harness.lifecycle.reject_completion(
            completed.id, harness.supervisor.id, "Gauge not visible"
        )

        assert result.original_reassigned
        stored = harness.stored(completed.id)
        assert stored.status == TaskStatus.PENDING
        assert stored.rejection_reason == "Gauge not visible"
        assert NotificationEventKind.TASK_REJECTED in harness.dispatcher.received_by(
            harness.worker.id
        )

    @pytest.mark.asyncio
    async def test_repeated_rejections_escalate(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.IN_PROGRESS)

        results = []
        for attempt in range(2):
            if attempt:
                await harness.lifecycle.start(task.id, harness.worker.id)
            await harness.lifecycle.complete(task.id, harness.worker.id, f"p{attempt}")
            results.append(
                await harness.lifecycle.reject_completion(
                    task.id, harness.supervisor.id, "Still blurry"
                )
            )

        assert [result.escalated for result in results] == [False, True]
        assert harness.stored(task.id).rejection_count == 2
        escalations = [
            record
            for record in harness.reassignment_log.records
            if record.kind == ReassignmentKind.ESCALATED
        ]
        assert len(escalations) == 1
        [event] = harness.dispatcher.events_of(NotificationEventKind.TASK_ESCALATED)
        assert harness.admin.id in event.recipient_ids


class TestWorkflowProperties:
    @pytest.mark.asyncio
    async def test_second_start_fails_without_writing(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task()

        started = await harness.lifecycle.start(task.id, harness.worker.id)
        writes_after_first = len(harness.tasks.writes)
        with pytest.raises(InvalidTransitionError):
            await harness.lifecycle.start(task.id, harness.worker.id)

        assert len(harness.tasks.writes) == writes_after_first
        assert harness.stored(task.id).started_at == started.started_at

    @pytest.mark.asyncio
    async def test_concurrent_requests_leave_one_pending(
        self, harness: WorkflowHarness
    ) -> None:
        completed = await _complete_worker_task(harness)

        results = await asyncio.gather(
            harness.lifecycle.request_verification(completed.id, harness.supervisor.id),
            harness.lifecycle.request_verification(completed.id, harness.supervisor.id),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], VerificationAlreadyPendingError)
        requests = await harness.requests.list_for_task(completed.id)
        assert [r.status for r in requests] == [VerificationStatus.PENDING]

    @pytest.mark.asyncio
    async def test_no_counterpart_still_recycles_primary(
        self, harness: WorkflowHarness
    ) -> None:
        deactivate(harness, harness.supervisor)
        completed = await _complete_worker_task(harness)

        result = await harness.reassignment.reassign(
            completed.id, harness.admin.id, "blurry photo"
        )

        assert result.outcome == ReassignmentOutcome.PRIMARY_ONLY
        assert result.success
        assert not result.counterpart_reassigned
        assert harness.derivative_tasks(completed) == []
        assert harness.stored(completed.id).status == TaskStatus.PENDING

    @pytest.mark.asyncio
    async def test_rejection_increments_once_and_reactivates(
        self, harness: WorkflowHarness
    ) -> None:
        task = harness.seed_task(
            status=TaskStatus.COMPLETED, rejection_count=3, is_active=False
        )

        await harness.reassignment.reassign(task.id, harness.admin.id, "blurry photo")

        stored = harness.stored(task.id)
        assert stored.rejection_count == 4
        assert stored.is_active

    @pytest.mark.asyncio
    async def test_pending_tasks_never_hold_completion_data(
        self, harness: WorkflowHarness
    ) -> None:
        completed = await _complete_worker_task(harness)
        await harness.reassignment.reassign(completed.id, harness.admin.id, "blurry photo")

        for row in harness.tasks._rows.values():
            if row["status"] == TaskStatus.PENDING.value:
                assert row.get("completed_at") is None
                assert row.get("completion_photo_url") is None
