"""Supabase implementation of the verification request repository.

The table carries a partial unique index on (task_id) WHERE status =
'pending'. A 23505 violation on insert surfaces as
VerificationAlreadyPendingError.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from postgrest import AsyncRequestBuilder
from postgrest.exceptions import APIError
from supabase import AsyncClient

from taskvision.application.ports.verification_request_repository import (
    VERIFICATION_REQUESTS_TABLE,
    VerificationRequestRepositoryProtocol,
)
from taskvision.application.services.base import LoggingMixin
from taskvision.domain.errors.storage import TaskStoreError
from taskvision.domain.errors.verification import VerificationRequestNotFoundError
from taskvision.domain.exceptions import TaskVisionError
from taskvision.domain.models.verification_request import (
    VerificationRequest,
    VerificationStatus,
)
from taskvision.infrastructure.adapters.supabase.errors import translate_api_error
from taskvision.infrastructure.adapters.supabase.task_repository import coerce_rows


class SupabaseVerificationRequestRepository(
    VerificationRequestRepositoryProtocol, LoggingMixin
):
    """Verification requests backed by ``task_verification_requests``."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client
        self._init_logger(component="storage")

    def _table(self) -> AsyncRequestBuilder:
        return self._client.table(VERIFICATION_REQUESTS_TABLE)

    def _error(
        self,
        exc: APIError,
        operation: str,
        task_id: UUID | None = None,
    ) -> TaskVisionError:
        return translate_api_error(
            exc,
            operation=operation,
            table=VERIFICATION_REQUESTS_TABLE,
            task_id=task_id,
        )

    async def get(self, request_id: UUID) -> VerificationRequest | None:
        try:
            result = await self._table().select("*").eq("id", str(request_id)).execute()
        except APIError as exc:
            raise self._error(exc, "get") from exc
        rows = coerce_rows(result.data)
        return VerificationRequest.from_row(rows[0]) if rows else None

    async def insert(self, values: dict[str, Any]) -> VerificationRequest:
        task_id = UUID(str(values["task_id"]))
        log = self._log_operation("insert_verification_request", task_id=str(task_id))
        try:
            result = await self._table().insert(values).execute()
        except APIError as exc:
            raise self._error(exc, "insert", task_id=task_id) from exc

        rows = coerce_rows(result.data)
        if not rows:
            raise TaskStoreError(
                "insert", VERIFICATION_REQUESTS_TABLE, "insert returned no row"
            )
        log.debug("verification_request_inserted", request_id=rows[0].get("id"))
        return VerificationRequest.from_row(rows[0])

    async def update(self, request_id: UUID, values: dict[str, Any]) -> VerificationRequest:
        try:
            result = (
                await self._table().update(values).eq("id", str(request_id)).execute()
            )
        except APIError as exc:
            raise self._error(exc, "update") from exc

        rows = coerce_rows(result.data)
        if not rows:
            raise VerificationRequestNotFoundError(request_id, operation="update")
        return VerificationRequest.from_row(rows[0])

    async def find_pending_for_task(self, task_id: UUID) -> VerificationRequest | None:
        try:
            result = (
                await self._table()
                .select("*")
                .eq("task_id", str(task_id))
                .eq("status", VerificationStatus.PENDING.value)
                .limit(1)
                .execute()
            )
        except APIError as exc:
            raise self._error(exc, "find_pending") from exc
        rows = coerce_rows(result.data)
        return VerificationRequest.from_row(rows[0]) if rows else None

    async def list_for_task(self, task_id: UUID) -> list[VerificationRequest]:
        try:
            result = (
                await self._table()
                .select("*")
                .eq("task_id", str(task_id))
                .order("created_at")
                .execute()
            )
        except APIError as exc:
            raise self._error(exc, "list_for_task") from exc
        return [VerificationRequest.from_row(row) for row in coerce_rows(result.data)]

    async def list_by_status(
        self,
        status: VerificationStatus | None = None,
    ) -> list[VerificationRequest]:
        query = self._table().select("*")
        if status is not None:
            query = query.eq("status", status.value)
        try:
            result = await query.order("created_at", desc=True).execute()
        except APIError as exc:
            raise self._error(exc, "list_by_status") from exc
        return [VerificationRequest.from_row(row) for row in coerce_rows(result.data)]

    async def delete_for_task(self, task_id: UUID) -> int:
        try:
            result = await self._table().delete().eq("task_id", str(task_id)).execute()
        except APIError as exc:
            raise self._error(exc, "delete_for_task") from exc
        deleted = len(coerce_rows(result.data))
        self._log_operation("delete_verification_requests", task_id=str(task_id)).debug(
            "verification_requests_deleted", count=deleted
        )
        return deleted

    async def delete(self, request_id: UUID) -> bool:
        try:
            result = await self._table().delete().eq("id", str(request_id)).execute()
        except APIError as exc:
            raise self._error(exc, "delete") from exc
        return bool(coerce_rows(result.data))
