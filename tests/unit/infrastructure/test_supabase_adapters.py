"""Unit tests for the Supabase adapters with a mocked client.

The PostgREST query builder is chainable, so each table gets one
MagicMock whose filter methods return itself and whose execute() is an
AsyncMock returning the configured rows.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from postgrest.exceptions import APIError
from storage3.utils import StorageException

from taskvision.domain.errors.storage import SchemaDriftError, TaskStoreError
from taskvision.domain.errors.task import TaskNotFoundError
from taskvision.domain.errors.verification import VerificationAlreadyPendingError
from taskvision.domain.models.change_event import ChangeType
from taskvision.domain.models.employee import EmployeeRole
from taskvision.domain.models.task import Task, TaskPriority, TaskStatus
from taskvision.infrastructure.adapters.supabase import (
    SupabaseEmployeeDirectory,
    SupabaseProofStorage,
    SupabaseReassignmentLogRepository,
    SupabaseReassignmentRuleSource,
    SupabaseTaskRepository,
    SupabaseVerificationRequestRepository,
)
from taskvision.infrastructure.adapters.supabase.proof_storage import proof_path
from taskvision.infrastructure.adapters.supabase.realtime_change_feed import (
    change_event_from_payload,
)
from tests.helpers import FakeTimeAuthority

_CHAIN_METHODS = ("select", "eq", "in_", "insert", "update", "delete", "order", "limit", "or_")


def make_builder(*responses: list[dict[str, Any]] | Exception) -> MagicMock:
    """Create a chainable query builder returning each response in turn."""
    builder = MagicMock()
    for method in _CHAIN_METHODS:
        getattr(builder, method).return_value = builder
    builder.execute = AsyncMock(
        side_effect=[
            r if isinstance(r, Exception) else SimpleNamespace(data=r) for r in responses
        ]
    )
    return builder


def make_client(**tables: MagicMock) -> MagicMock:
    client = MagicMock()
    client.table.side_effect = lambda name: tables[name]
    return client


def _task_row(**overrides: Any) -> dict[str, Any]:
    row = Task(id=uuid4(), title="Inspect pump", assigned_to=uuid4()).to_row()
    row.update(overrides)
    return row


class TestSupabaseTaskRepository:
    @pytest.mark.asyncio
    async def test_get_returns_task(self) -> None:
        row = _task_row()
        builder = make_builder([row])
        repository = SupabaseTaskRepository(make_client(tasks=builder))

        row_id = Task.from_row(row).id
        task = await repository.get(row_id)

        assert task is not None and task.id == row_id
        builder.eq.assert_called_with("id", str(row_id))

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self) -> None:
        repository = SupabaseTaskRepository(make_client(tasks=make_builder([])))
        assert await repository.get(uuid4()) is None

    @pytest.mark.asyncio
    async def test_update_without_rows_is_not_found(self) -> None:
        repository = SupabaseTaskRepository(make_client(tasks=make_builder([])))
        with pytest.raises(TaskNotFoundError):
            await repository.update(uuid4(), {"status": "in_progress"})

    @pytest.mark.asyncio
    async def test_undefined_column_becomes_schema_drift(self) -> None:
        error = APIError(
            {"code": "42703", "message": 'column "is_required" of relation "tasks" does not exist'}
        )
        repository = SupabaseTaskRepository(make_client(tasks=make_builder(error)))

        with pytest.raises(SchemaDriftError) as exc_info:
            await repository.insert(_task_row())
        assert exc_info.value.column == "is_required"
        assert isinstance(exc_info.value.__cause__, APIError)

    @pytest.mark.asyncio
    async def test_insert_without_returned_row_fails(self) -> None:
        repository = SupabaseTaskRepository(make_client(tasks=make_builder([])))
        with pytest.raises(TaskStoreError):
            await repository.insert(_task_row())

    @pytest.mark.asyncio
    async def test_list_by_assignee_filters_status(self) -> None:
        assignee = uuid4()
        builder = make_builder([_task_row(assigned_to=str(assignee))])
        repository = SupabaseTaskRepository(make_client(tasks=builder))

        tasks = await repository.list_by_assignee(assignee, TaskStatus.PENDING)

        assert len(tasks) == 1
        builder.eq.assert_any_call("assigned_to", str(assignee))
        builder.eq.assert_any_call("status", "pending")
        builder.order.assert_called_once_with("created_at", desc=True)

    @pytest.mark.asyncio
    async def test_get_many_skips_query_for_no_ids(self) -> None:
        builder = make_builder()
        repository = SupabaseTaskRepository(make_client(tasks=builder))
        assert await repository.get_many([]) == {}
        builder.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_legacy_pending_row_is_readable(self) -> None:
        row = _task_row(completed_at="2025-01-01T10:00:00Z", completion_photo_url="x.jpg")
        repository = SupabaseTaskRepository(make_client(tasks=make_builder([row])))

        task = await repository.get(uuid4())

        assert task is not None
        assert task.status == TaskStatus.PENDING
        assert task.completed_at is None

    @pytest.mark.asyncio
    async def test_unreadable_row_becomes_store_error(self) -> None:
        row = _task_row(title="   ")
        repository = SupabaseTaskRepository(make_client(tasks=make_builder([row])))

        with pytest.raises(TaskStoreError) as exc_info:
            await repository.get(uuid4())

        assert exc_info.value.operation == "get"
        assert isinstance(exc_info.value.__cause__, ValueError)


class TestSupabaseVerificationRequestRepository:
    @pytest.mark.asyncio
    async def test_unique_violation_is_already_pending(self) -> None:
        task_id = uuid4()
        error = APIError({"code": "23505", "message": "duplicate key value"})
        repository = SupabaseVerificationRequestRepository(
            make_client(task_verification_requests=make_builder(error))
        )

        with pytest.raises(VerificationAlreadyPendingError) as exc_info:
            await repository.insert(
                {"id": str(uuid4()), "task_id": str(task_id), "requested_by": str(uuid4())}
            )
        assert exc_info.value.task_id == task_id

    @pytest.mark.asyncio
    async def test_delete_for_task_counts_rows(self) -> None:
        builder = make_builder([{"id": "a"}, {"id": "b"}])
        repository = SupabaseVerificationRequestRepository(
            make_client(task_verification_requests=builder)
        )
        assert await repository.delete_for_task(uuid4()) == 2

    @pytest.mark.asyncio
    async def test_delete_single_request(self) -> None:
        request_id = uuid4()
        builder = make_builder([{"id": str(request_id)}], [])
        repository = SupabaseVerificationRequestRepository(
            make_client(task_verification_requests=builder)
        )

        assert await repository.delete(request_id) is True
        assert await repository.delete(request_id) is False
        builder.eq.assert_called_with("id", str(request_id))


class TestSupabaseReassignmentLogRepository:
    @pytest.mark.asyncio
    async def test_list_for_task_matches_source_too(self) -> None:
        task_id = uuid4()
        builder = make_builder([])
        repository = SupabaseReassignmentLogRepository(
            make_client(task_reassignment_logs=builder)
        )

        assert await repository.list_for_task(task_id) == []
        builder.or_.assert_called_once_with(
            f"task_id.eq.{task_id},source_task_id.eq.{task_id}"
        )


class TestSupabaseReassignmentRuleSource:
    @pytest.mark.asyncio
    async def test_maps_rows_and_skips_unreadable_ones(self) -> None:
        rows = [
            {
                "id": "r1",
                "task_type": "normal",
                "priority": "critical",
                "auto_reassign": True,
                "max_rejections": 0,
                "auto_reassign_reasons": ["capacity"],
            },
            {"id": "r2", "task_type": "normal", "priority": "someday"},
        ]
        builder = make_builder(rows)
        source = SupabaseReassignmentRuleSource(make_client(reassignment_rules=builder))

        [rule] = await source.list_rules()

        assert rule.priority == TaskPriority.URGENT
        assert rule.auto_reassign_reasons == ("capacity",)
        builder.select.assert_called_once_with("*")

    @pytest.mark.asyncio
    async def test_api_error_becomes_store_error(self) -> None:
        error = APIError({"code": "42P01", "message": "relation does not exist"})
        source = SupabaseReassignmentRuleSource(
            make_client(reassignment_rules=make_builder(error))
        )

        with pytest.raises(TaskStoreError) as exc_info:
            await source.list_rules()
        assert exc_info.value.table == "reassignment_rules"

class TestSupabaseEmployeeDirectory:
    @pytest.mark.asyncio
    async def test_supervisor_falls_back_to_mapping_table(self) -> None:
        department_id, head_id = uuid4(), uuid4()
        head_row = {
            "id": str(head_id),
            "name": "Carla",
            "role": "department_head",
            "department_id": str(uuid4()),
            "is_active": True,
        }
        employees = make_builder([], [head_row])
        mappings = make_builder(
            [{"department_head_id": str(head_id)}],
            [{"department_id": str(department_id)}],
        )
        directory = SupabaseEmployeeDirectory(
            make_client(employees=employees, department_head_departments=mappings)
        )

        supervisor = await directory.find_active_supervisor(department_id)

        assert supervisor is not None
        assert supervisor.id == head_id
        assert supervisor.role == EmployeeRole.DEPARTMENT_HEAD
        assert supervisor.supervises(department_id)

    @pytest.mark.asyncio
    async def test_find_active_worker_skips_excluded(self) -> None:
        excluded, chosen = uuid4(), uuid4()
        rows = [
            {"id": str(excluded), "name": "A", "role": "employee"},
            {"id": str(chosen), "name": "B", "role": "employee"},
        ]
        directory = SupabaseEmployeeDirectory(make_client(employees=make_builder(rows)))

        worker = await directory.find_active_worker(uuid4(), exclude=frozenset({excluded}))

        assert worker is not None and worker.id == chosen

    @pytest.mark.asyncio
    async def test_admin_departments(self) -> None:
        department = uuid4()
        directory = SupabaseEmployeeDirectory(
            make_client(admin_departments=make_builder([{"department_id": str(department)}]))
        )
        assert await directory.get_admin_departments(uuid4()) == frozenset({department})


class TestSupabaseProofStorage:
    @pytest.fixture
    def bucket(self) -> AsyncMock:
        """Mock storage bucket."""
        bucket = AsyncMock()
        bucket.get_public_url.return_value = "https://cdn.example/task-photos/p.jpg"
        return bucket

    @pytest.fixture
    def storage(self, bucket: AsyncMock) -> SupabaseProofStorage:
        client = MagicMock()
        client.storage.from_.return_value = bucket
        time = FakeTimeAuthority(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))
        return SupabaseProofStorage(client, time)

    def test_proof_path(self) -> None:
        task_id = uuid4()
        assert proof_path(task_id, 1700000000000, "image/png") == (
            f"{task_id}/1700000000000-proof.png"
        )
        assert proof_path(task_id, 1, "application/octet-stream").endswith("-proof.jpg")

    @pytest.mark.asyncio
    async def test_upload_returns_public_url(
        self, storage: SupabaseProofStorage, bucket: AsyncMock
    ) -> None:
        task_id = uuid4()

        url = await storage.upload(task_id, b"jpeg", "image/jpeg")

        assert url == "https://cdn.example/task-photos/p.jpg"
        path, content, options = bucket.upload.call_args.args
        assert path.startswith(f"{task_id}/")
        assert content == b"jpeg"
        assert options["content-type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_empty_content_rejected(self, storage: SupabaseProofStorage) -> None:
        with pytest.raises(TaskStoreError):
            await storage.upload(uuid4(), b"", "image/jpeg")

    @pytest.mark.asyncio
    async def test_storage_error_translated(
        self, storage: SupabaseProofStorage, bucket: AsyncMock
    ) -> None:
        bucket.upload.side_effect = StorageException({"message": "Bucket not found"})
        with pytest.raises(TaskStoreError):
            await storage.upload(uuid4(), b"jpeg", "image/jpeg")


class TestChangeEventFromPayload:
    def test_insert_payload(self) -> None:
        record_id = uuid4()
        payload = {"data": {"type": "INSERT", "record": {"id": str(record_id)}}}

        event = change_event_from_payload("tasks", payload)

        assert event is not None
        assert event.change_type == ChangeType.INSERT
        assert event.record_id == record_id

    def test_delete_payload_uses_old_record(self) -> None:
        record_id = uuid4()
        payload = {"data": {"type": "DELETE", "record": None, "old_record": {"id": str(record_id)}}}

        event = change_event_from_payload("tasks", payload)

        assert event is not None and event.record_id == record_id

    def test_unknown_type_ignored(self) -> None:
        assert change_event_from_payload("tasks", {"data": {"type": "TRUNCATE"}}) is None
