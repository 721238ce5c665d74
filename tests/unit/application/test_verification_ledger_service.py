"""Unit tests for VerificationLedgerService."""

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from taskvision.domain.errors.storage import TaskStoreError
from taskvision.domain.errors.task import MissingReasonError, NotAuthorizedError
from taskvision.domain.errors.verification import (
    VerificationAlreadyClosedError,
    VerificationAlreadyPendingError,
    VerificationRequestNotFoundError,
)
from taskvision.domain.models.task import TaskStatus
from taskvision.domain.models.verification_request import (
    VerificationDecision,
    VerificationRequest,
    VerificationStatus,
)
from tests.helpers import WorkflowHarness, build_harness


class TestOpenRequest:
    @pytest.mark.asyncio
    async def test_opens_pending_request(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.COMPLETED)
        request = await harness.ledger.open_request(task.id, harness.supervisor.id)

        assert request.is_pending
        assert request.task_id == task.id
        assert request.requested_by == harness.supervisor.id
        assert await harness.ledger.pending_for_task(task.id) == request

    @pytest.mark.asyncio
    async def test_second_open_raises_already_pending(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.COMPLETED)
        first = await harness.ledger.open_request(task.id, harness.supervisor.id)

        with pytest.raises(VerificationAlreadyPendingError) as exc_info:
            await harness.ledger.open_request(task.id, harness.supervisor.id)
        assert exc_info.value.existing_request_id == first.id

    @pytest.mark.asyncio
    async def test_concurrent_opens_create_one_request(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.COMPLETED)

        results = await asyncio.gather(
            harness.ledger.open_request(task.id, harness.supervisor.id),
            harness.ledger.open_request(task.id, harness.supervisor.id),
            return_exceptions=True,
        )

        opened = [r for r in results if isinstance(r, VerificationRequest)]
        refused = [r for r in results if isinstance(r, VerificationAlreadyPendingError)]
        assert len(opened) == 1
        assert len(refused) == 1
        assert len(await harness.requests.list_for_task(task.id)) == 1

    @pytest.mark.asyncio
    async def test_task_locks_are_released_after_use(self, harness: WorkflowHarness) -> None:
        for _ in range(3):
            task = harness.seed_task(status=TaskStatus.COMPLETED)
            await harness.ledger.open_request(task.id, harness.supervisor.id)

        assert len(harness.ledger._locks) == 0

    @pytest.mark.asyncio
    async def test_withdraw_request_deletes_only_that_request(
        self, harness: WorkflowHarness
    ) -> None:
        task = harness.seed_task(status=TaskStatus.COMPLETED)
        first = await harness.ledger.open_request(task.id, harness.supervisor.id)
        await harness.ledger.close_request(first, harness.admin.id, VerificationDecision.APPROVE)
        second = await harness.ledger.open_request(task.id, harness.supervisor.id)

        await harness.ledger.withdraw_request(second)

        assert [r.id for r in await harness.requests.list_for_task(task.id)] == [first.id]

    @pytest.mark.asyncio
    async def test_missing_admin_reason_column_is_tolerated(self) -> None:
        harness = build_harness(missing_request_columns=["admin_reason"])
        task = harness.seed_task(status=TaskStatus.COMPLETED)

        request = await harness.ledger.open_request(task.id, harness.supervisor.id)

        row = harness.requests.row(request.id)
        assert row is not None and "admin_reason" not in row


class TestCloseRequest:
    @pytest.mark.asyncio
    async def test_approve_closes_request(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.COMPLETED)
        request = await harness.ledger.open_request(task.id, harness.supervisor.id)

        closed = await harness.ledger.close_request(
            request, harness.admin.id, VerificationDecision.APPROVE
        )

        assert closed.status == VerificationStatus.APPROVED
        assert closed.approved_by == harness.admin.id
        assert await harness.ledger.pending_for_task(task.id) is None

    @pytest.mark.asyncio
    async def test_reject_requires_reason(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.COMPLETED)
        request = await harness.ledger.open_request(task.id, harness.supervisor.id)

        with pytest.raises(MissingReasonError):
            await harness.ledger.close_request(
                request, harness.admin.id, VerificationDecision.REJECT, "   "
            )
        assert (await harness.ledger.get_request(request.id)).is_pending

    @pytest.mark.asyncio
    async def test_reject_stores_trimmed_reason(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.COMPLETED)
        request = await harness.ledger.open_request(task.id, harness.supervisor.id)

        closed = await harness.ledger.close_request(
            request, harness.admin.id, VerificationDecision.REJECT, "  Wrong room "
        )
        assert closed.admin_reason == "Wrong room"

    @pytest.mark.asyncio
    async def test_closing_twice_raises(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.COMPLETED)
        request = await harness.ledger.open_request(task.id, harness.supervisor.id)
        closed = await harness.ledger.close_request(
            request, harness.admin.id, VerificationDecision.APPROVE
        )

        with pytest.raises(VerificationAlreadyClosedError):
            await harness.ledger.close_request(
                closed, harness.admin.id, VerificationDecision.APPROVE
            )

    @pytest.mark.asyncio
    async def test_store_failure_surfaces(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.COMPLETED)
        request = await harness.ledger.open_request(task.id, harness.supervisor.id)
        harness.requests.fail_next_update()

        with pytest.raises(TaskStoreError):
            await harness.ledger.close_request(
                request, harness.admin.id, VerificationDecision.APPROVE
            )

    @pytest.mark.asyncio
    async def test_get_unknown_request_raises(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task()
        with pytest.raises(VerificationRequestNotFoundError):
            await harness.ledger.get_request(task.id)


class TestReviewerScope:
    """Department scoping of the review queue."""

    @pytest.mark.asyncio
    async def test_non_administrator_is_refused(self, harness: WorkflowHarness) -> None:
        with pytest.raises(NotAuthorizedError):
            await harness.ledger.resolve_scope(harness.supervisor.id)

    @pytest.mark.asyncio
    async def test_admin_without_departments_is_unrestricted(
        self, harness: WorkflowHarness
    ) -> None:
        scope = await harness.ledger.resolve_scope(harness.admin.id)
        assert scope.unrestricted

    @pytest.mark.asyncio
    async def test_scoped_admin_sees_only_their_departments(
        self, harness: WorkflowHarness
    ) -> None:
        home_task = harness.seed_task(status=TaskStatus.COMPLETED)
        other_task = harness.seed_task(
            status=TaskStatus.COMPLETED, department_id=harness.other_department_id
        )
        # seed_task falls back to the assignee's department
        orphan_task = harness.tasks.add(
            replace(harness.seed_task(status=TaskStatus.COMPLETED), department_id=None)
        )
        for task in (home_task, other_task, orphan_task):
            await harness.ledger.open_request(task.id, harness.supervisor.id)

        scoped = await harness.ledger.list_for_reviewer(harness.scoped_admin.id)
        unrestricted = await harness.ledger.list_for_reviewer(harness.super_admin.id)

        assert [r.task_id for r in scoped] == [other_task.id]
        assert {r.task_id for r in unrestricted} == {
            home_task.id,
            other_task.id,
            orphan_task.id,
        }

    @pytest.mark.asyncio
    async def test_queue_is_newest_first_and_filtered_by_status(
        self, harness: WorkflowHarness
    ) -> None:
        first = harness.seed_task(status=TaskStatus.COMPLETED)
        second = harness.seed_task(status=TaskStatus.COMPLETED)
        older = await harness.ledger.open_request(first.id, harness.supervisor.id)
        newer = await harness.ledger.open_request(second.id, harness.supervisor.id)
        await harness.ledger.close_request(
            older, harness.admin.id, VerificationDecision.APPROVE
        )

        everything = await harness.ledger.list_for_reviewer(harness.admin.id)
        pending = await harness.ledger.list_for_reviewer(
            harness.admin.id, VerificationStatus.PENDING
        )

        assert [r.id for r in everything] == [newer.id, older.id]
        assert [r.id for r in pending] == [newer.id]


class TestWatchForReviewer:
    @pytest.mark.asyncio
    async def test_queue_refreshes_on_every_change(self, harness: WorkflowHarness) -> None:
        snapshots: list[list[VerificationRequest]] = []

        async def on_change(queue: list[VerificationRequest]) -> None:
            snapshots.append(queue)

        subscription = await harness.ledger.watch_for_reviewer(harness.admin.id, on_change)
        task = harness.seed_task(status=TaskStatus.COMPLETED)
        request = await harness.ledger.open_request(task.id, harness.supervisor.id)
        await harness.ledger.close_request(
            request, harness.admin.id, VerificationDecision.APPROVE
        )

        assert [[r.id for r in queue] for queue in snapshots] == [[request.id], []]

        await subscription.unsubscribe()
        other = harness.seed_task(status=TaskStatus.COMPLETED)
        await harness.ledger.open_request(other.id, harness.supervisor.id)
        assert len(snapshots) == 2

    @pytest.mark.asyncio
    async def test_watch_requires_administrator(self, harness: WorkflowHarness) -> None:
        async def on_change(queue: list[VerificationRequest]) -> None:
            raise AssertionError("never called")

        with pytest.raises(NotAuthorizedError):
            await harness.ledger.watch_for_reviewer(harness.worker.id, on_change)

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_break_writes(
        self, harness: WorkflowHarness
    ) -> None:
        async def on_change(queue: list[VerificationRequest]) -> None:
            raise RuntimeError("ui gone")

        await harness.ledger.watch_for_reviewer(harness.admin.id, on_change)
        task = harness.seed_task(status=TaskStatus.COMPLETED)

        request = await harness.ledger.open_request(task.id, harness.supervisor.id)
        assert request.is_pending


class TestRemoveForTask:
    @pytest.mark.asyncio
    async def test_removes_every_request(self, harness: WorkflowHarness) -> None:
        task = harness.seed_task(status=TaskStatus.COMPLETED)
        request = await harness.ledger.open_request(task.id, harness.supervisor.id)
        await harness.ledger.close_request(
            request, harness.admin.id, VerificationDecision.APPROVE
        )
        await harness.ledger.open_request(task.id, harness.supervisor.id)

        assert await harness.ledger.remove_for_task(task.id) == 2
        assert await harness.requests.list_for_task(task.id) == []
