"""Supabase implementation of the reassignment audit log."""

from __future__ import annotations

from uuid import UUID

from postgrest.exceptions import APIError
from supabase import AsyncClient

from taskvision.application.ports.reassignment_log_repository import (
    REASSIGNMENT_LOGS_TABLE,
    ReassignmentLogRepositoryProtocol,
)
from taskvision.domain.models.reassignment import ReassignmentRecord
from taskvision.infrastructure.adapters.supabase.errors import translate_api_error
from taskvision.infrastructure.adapters.supabase.task_repository import coerce_rows


class SupabaseReassignmentLogRepository(ReassignmentLogRepositoryProtocol):
    """Append-only log backed by ``task_reassignment_logs``."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def append(self, record: ReassignmentRecord) -> None:
        try:
            await self._client.table(REASSIGNMENT_LOGS_TABLE).insert(record.to_row()).execute()
        except APIError as exc:
            raise translate_api_error(
                exc, operation="append", table=REASSIGNMENT_LOGS_TABLE
            ) from exc

    async def find_by_idempotency_key(self, key: str) -> list[ReassignmentRecord]:
        try:
            result = (
                await self._client.table(REASSIGNMENT_LOGS_TABLE)
                .select("*")
                .eq("idempotency_key", key)
                .execute()
            )
        except APIError as exc:
            raise translate_api_error(
                exc, operation="find_by_idempotency_key", table=REASSIGNMENT_LOGS_TABLE
            ) from exc
        return [ReassignmentRecord.from_row(row) for row in coerce_rows(result.data)]

    async def list_for_task(self, task_id: UUID) -> list[ReassignmentRecord]:
        try:
            result = (
                await self._client.table(REASSIGNMENT_LOGS_TABLE)
                .select("*")
                .or_(f"task_id.eq.{task_id},source_task_id.eq.{task_id}")
                .order("created_at")
                .execute()
            )
        except APIError as exc:
            raise translate_api_error(
                exc, operation="list_for_task", table=REASSIGNMENT_LOGS_TABLE
            ) from exc
        return [ReassignmentRecord.from_row(row) for row in coerce_rows(result.data)]
