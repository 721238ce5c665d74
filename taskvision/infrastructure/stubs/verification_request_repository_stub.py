"""Verification request repository stub implementation.

In-memory implementation of VerificationRequestRepositoryProtocol. It
emulates the partial unique index on (task_id) WHERE status = 'pending':
a second pending insert for a task raises VerificationAlreadyPendingError.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any
from uuid import UUID

from taskvision.application.ports.verification_request_repository import (
    VERIFICATION_REQUESTS_TABLE,
    VerificationRequestRepositoryProtocol,
)
from taskvision.domain.errors.storage import SchemaDriftError, TaskStoreError
from taskvision.domain.errors.verification import (
    VerificationAlreadyPendingError,
    VerificationRequestNotFoundError,
)
from taskvision.domain.models.change_event import ChangeEvent, ChangeType
from taskvision.domain.models.verification_request import (
    VerificationRequest,
    VerificationStatus,
)
from taskvision.infrastructure.stubs.change_feed_stub import InMemoryChangeFeed


class VerificationRequestRepositoryStub(VerificationRequestRepositoryProtocol):
    """In-memory stub implementation of VerificationRequestRepositoryProtocol.

    Attributes:
        _rows: Stored rows by request id.
        missing_columns: Columns the simulated schema does not have.
        insert_attempts: Number of insert calls, accepted or not.
    """

    def __init__(
        self,
        change_feed: InMemoryChangeFeed | None = None,
        missing_columns: Iterable[str] = (),
    ) -> None:
        self._rows: dict[UUID, dict[str, Any]] = {}
        self._change_feed = change_feed
        self.missing_columns: set[str] = set(missing_columns)
        self.insert_attempts = 0
        self._update_failures: list[Exception] = []
        # Serializes the unique-index check with the insert
        self._index_lock = asyncio.Lock()

    def add(self, request: VerificationRequest) -> VerificationRequest:
        """Seed a request directly."""
        self._rows[request.id] = request.to_row()
        return request

    def row(self, request_id: UUID) -> dict[str, Any] | None:
        row = self._rows.get(request_id)
        return dict(row) if row is not None else None

    def fail_next_update(self, error: Exception | None = None) -> None:
        self._update_failures.append(
            error or TaskStoreError("update", VERIFICATION_REQUESTS_TABLE, "injected failure")
        )

    def _check_columns(self, values: dict[str, Any]) -> None:
        for column in values:
            if column in self.missing_columns:
                raise SchemaDriftError(VERIFICATION_REQUESTS_TABLE, column)

    def _pending_for(self, task_id: UUID) -> dict[str, Any] | None:
        return next(
            (
                row
                for row in self._rows.values()
                if row["task_id"] == str(task_id)
                and row.get("status") == VerificationStatus.PENDING.value
            ),
            None,
        )

    async def _publish(self, change_type: ChangeType, request_id: UUID) -> None:
        if self._change_feed is not None:
            await self._change_feed.publish(
                ChangeEvent(VERIFICATION_REQUESTS_TABLE, change_type, request_id)
            )

    async def get(self, request_id: UUID) -> VerificationRequest | None:
        row = self._rows.get(request_id)
        return VerificationRequest.from_row(row) if row is not None else None

    async def insert(self, values: dict[str, Any]) -> VerificationRequest:
        self.insert_attempts += 1
        self._check_columns(values)
        async with self._index_lock:
            task_id = UUID(str(values["task_id"]))
            status = values.get("status") or VerificationStatus.PENDING.value
            if status == VerificationStatus.PENDING.value:
                existing = self._pending_for(task_id)
                if existing is not None:
                    raise VerificationAlreadyPendingError(
                        task_id=task_id,
                        existing_request_id=UUID(existing["id"]),
                    )
            request_id = UUID(str(values["id"]))
            row = {**values, "status": status}
            request = VerificationRequest.from_row(row)
            self._rows[request_id] = row
        await self._publish(ChangeType.INSERT, request_id)
        return request

    async def update(self, request_id: UUID, values: dict[str, Any]) -> VerificationRequest:
        if self._update_failures:
            raise self._update_failures.pop(0)
        self._check_columns(values)
        existing = self._rows.get(request_id)
        if existing is None:
            raise VerificationRequestNotFoundError(request_id, operation="update")
        row = {**existing, **values}
        request = VerificationRequest.from_row(row)
        self._rows[request_id] = row
        await self._publish(ChangeType.UPDATE, request_id)
        return request

    async def find_pending_for_task(self, task_id: UUID) -> VerificationRequest | None:
        row = self._pending_for(task_id)
        return VerificationRequest.from_row(row) if row is not None else None

    async def list_for_task(self, task_id: UUID) -> list[VerificationRequest]:
        requests = [
            VerificationRequest.from_row(row)
            for row in self._rows.values()
            if row["task_id"] == str(task_id)
        ]
        requests.sort(key=lambda request: request.created_at)
        return requests

    async def list_by_status(
        self,
        status: VerificationStatus | None = None,
    ) -> list[VerificationRequest]:
        requests = [VerificationRequest.from_row(row) for row in self._rows.values()]
        if status is not None:
            requests = [request for request in requests if request.status == status]
        requests.sort(key=lambda request: request.created_at, reverse=True)
        return requests

    async def delete_for_task(self, task_id: UUID) -> int:
        doomed = [
            request_id
            for request_id, row in self._rows.items()
            if row["task_id"] == str(task_id)
        ]
        for request_id in doomed:
            del self._rows[request_id]
            await self._publish(ChangeType.DELETE, request_id)
        return len(doomed)

    async def delete(self, request_id: UUID) -> bool:
        if self._rows.pop(request_id, None) is None:
            return False
        await self._publish(ChangeType.DELETE, request_id)
        return True

    def clear(self) -> None:
        """Clear all stored data (for testing)."""
        self._rows.clear()
        self._update_failures.clear()
        self.insert_attempts = 0
