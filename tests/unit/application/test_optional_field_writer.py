"""Unit tests for OptionalFieldWriter."""

from __future__ import annotations

from typing import Any

import pytest

from taskvision.application.ports.task_repository import TASKS_TABLE
from taskvision.application.services.optional_field_writer import (
    TASK_OPTIONAL_COLUMNS,
    OptionalFieldWriter,
)
from taskvision.domain.errors.storage import SchemaDriftError, TaskStoreError


class RecordingWrite:
    """Write callable that fails with drift for the given columns."""

    def __init__(self, *missing: str | None) -> None:
        self.missing = list(missing)
        self.payloads: list[dict[str, Any]] = []

    async def __call__(self, payload: dict[str, Any]) -> str:
        self.payloads.append(payload)
        if self.missing:
            column = self.missing.pop(0)
            if column is None or column in payload:
                raise SchemaDriftError(TASKS_TABLE, column)
        return "ok"


PAYLOAD = {
    "title": "Sweep floor",
    "status": "pending",
    "is_required": True,
    "rejection_count": 1,
}


class TestNarrow:
    def test_drops_only_the_named_optional_column(self) -> None:
        writer = OptionalFieldWriter()
        narrowed = writer.narrow(TASKS_TABLE, PAYLOAD, "is_required")
        assert narrowed == {"title": "Sweep floor", "status": "pending", "rejection_count": 1}

    def test_unknown_column_drops_every_optional_column(self) -> None:
        writer = OptionalFieldWriter()
        narrowed = writer.narrow(TASKS_TABLE, PAYLOAD, None)
        assert not TASK_OPTIONAL_COLUMNS & narrowed.keys()
        assert narrowed == {"title": "Sweep floor", "status": "pending"}

    def test_unknown_table_has_no_optional_columns(self) -> None:
        writer = OptionalFieldWriter()
        assert writer.optional_columns("employees") == frozenset()


class TestWrite:
    """Single narrowed retry on schema drift."""

    @pytest.mark.asyncio
    async def test_success_writes_full_payload_once(self) -> None:
        write = RecordingWrite()
        result = await OptionalFieldWriter().write(TASKS_TABLE, PAYLOAD, write, "create")
        assert result == "ok"
        assert write.payloads == [PAYLOAD]

    @pytest.mark.asyncio
    async def test_drift_on_optional_column_retries_without_it(self) -> None:
        write = RecordingWrite("is_required")
        await OptionalFieldWriter().write(TASKS_TABLE, PAYLOAD, write, "create")
        assert len(write.payloads) == 2
        assert "is_required" not in write.payloads[1]
        assert write.payloads[1]["rejection_count"] == 1

    @pytest.mark.asyncio
    async def test_drift_on_required_column_is_unrecoverable(self) -> None:
        write = RecordingWrite("title")
        writer = OptionalFieldWriter()
        with pytest.raises(TaskStoreError) as exc_info:
            await writer.write(TASKS_TABLE, {"title": "x"}, write, "create")
        assert exc_info.value.operation == "create"
        assert len(write.payloads) == 1

    @pytest.mark.asyncio
    async def test_second_drift_surfaces_as_store_error(self) -> None:
        write = RecordingWrite("is_required", "rejection_count")
        with pytest.raises(TaskStoreError):
            await OptionalFieldWriter().write(TASKS_TABLE, PAYLOAD, write, "reassign")
        assert len(write.payloads) == 2

    @pytest.mark.asyncio
    async def test_custom_optional_columns(self) -> None:
        writer = OptionalFieldWriter({"notes": frozenset({"pinned"})})
        write = RecordingWrite("pinned")
        await writer.write("notes", {"text": "hi", "pinned": True}, write, "pin")
        assert write.payloads[1] == {"text": "hi"}
