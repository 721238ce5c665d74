"""Unit tests for PostgREST error translation."""

from uuid import uuid4

import pytest
from postgrest.exceptions import APIError

from taskvision.domain.errors.storage import SchemaDriftError, TaskStoreError
from taskvision.domain.errors.verification import VerificationAlreadyPendingError
from taskvision.infrastructure.adapters.supabase.errors import (
    missing_column,
    translate_api_error,
)


class TestMissingColumn:
    @pytest.mark.parametrize(
        ("message", "column"),
        [
            ('column "is_required" of relation "tasks" does not exist', "is_required"),
            (
                "Could not find the 'admin_review_status' column of 'tasks' in the schema cache",
                "admin_review_status",
            ),
            ("column tasks.rejection_count does not exist", "rejection_count"),
            ('column "admin_reason" does not exist', "admin_reason"),
        ],
    )
    def test_extracts_column(self, message: str, column: str) -> None:
        assert missing_column(message) == column

    def test_unknown_message(self) -> None:
        assert missing_column("permission denied for table tasks") is None
        assert missing_column(None) is None


class TestTranslateApiError:
    def test_undefined_column_is_schema_drift(self) -> None:
        error = APIError(
            {
                "code": "42703",
                "message": 'column "is_required" of relation "tasks" does not exist',
            }
        )
        translated = translate_api_error(error, operation="insert", table="tasks")
        assert isinstance(translated, SchemaDriftError)
        assert translated.column == "is_required"
        assert translated.table == "tasks"

    def test_schema_cache_miss_is_schema_drift(self) -> None:
        error = APIError(
            {
                "code": "PGRST204",
                "message": "Could not find the 'admin_reason' column of "
                "'task_verification_requests' in the schema cache",
            }
        )
        translated = translate_api_error(
            error, operation="insert", table="task_verification_requests"
        )
        assert isinstance(translated, SchemaDriftError)
        assert translated.column == "admin_reason"

    def test_unique_violation_with_task_is_already_pending(self) -> None:
        task_id = uuid4()
        error = APIError({"code": "23505", "message": "duplicate key value"})
        translated = translate_api_error(
            error, operation="insert", table="task_verification_requests", task_id=task_id
        )
        assert isinstance(translated, VerificationAlreadyPendingError)
        assert translated.task_id == task_id

    def test_unique_violation_without_task_is_store_error(self) -> None:
        error = APIError({"code": "23505", "message": "duplicate key value"})
        translated = translate_api_error(error, operation="insert", table="tasks")
        assert isinstance(translated, TaskStoreError)

    def test_other_errors_keep_code_and_message(self) -> None:
        error = APIError({"code": "42501", "message": "permission denied"})
        translated = translate_api_error(error, operation="update", table="tasks")
        assert isinstance(translated, TaskStoreError)
        assert translated.operation == "update"
        assert translated.detail == "42501 permission denied"
