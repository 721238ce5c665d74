"""Verification request store port.

Implementations must reject a second pending request for the same task
(a partial unique index in Postgres, emulated by the in-memory stub).
Otherwise the store is last-writer-wins.
"""

from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from taskvision.domain.models.verification_request import (
    VerificationRequest,
    VerificationStatus,
)

VERIFICATION_REQUESTS_TABLE = "task_verification_requests"


class VerificationRequestRepositoryProtocol(Protocol):
    """Protocol for verification request persistence."""

    async def get(self, request_id: UUID) -> VerificationRequest | None:
        """Retrieve a request by id, or None."""
        ...

    async def insert(self, values: dict[str, Any]) -> VerificationRequest:
        """Insert a request row.

        Raises:
            VerificationAlreadyPendingError: If the task already has a
                pending request.
            SchemaDriftError: If a column in the payload does not exist.
            TaskStoreError: On any other storage failure.
        """
        ...

    async def update(self, request_id: UUID, values: dict[str, Any]) -> VerificationRequest:
        """Update columns of a request row.

        Raises:
            VerificationRequestNotFoundError: If the request does not exist.
            SchemaDriftError: If a column in the payload does not exist.
            TaskStoreError: On any other storage failure.
        """
        ...

    async def find_pending_for_task(self, task_id: UUID) -> VerificationRequest | None:
        """Return the task's pending request, or None."""
        ...

    async def list_for_task(self, task_id: UUID) -> list[VerificationRequest]:
        """List every request of a task, oldest first."""
        ...

    async def list_by_status(
        self,
        status: VerificationStatus | None = None,
    ) -> list[VerificationRequest]:
        """List requests, optionally by status, newest first."""
        ...

    async def delete_for_task(self, task_id: UUID) -> int:
        """Delete every request of a task.

        Returns:
            Number of deleted requests.
        """
        ...

    async def delete(self, request_id: UUID) -> bool:
        """Delete one request.

        Returns:
            True if a row was deleted.
        """
        ...
