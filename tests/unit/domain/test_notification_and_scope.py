"""Unit tests for notification events, reviewer scope and employees."""

from datetime import datetime, timezone
from types import MappingProxyType
from uuid import uuid4

import pytest

from taskvision.domain.errors.task import NotAuthorizedError, TaskNotFoundError
from taskvision.domain.models.employee import Employee, EmployeeRole
from taskvision.domain.models.notification import (
    NotificationDispatchResult,
    NotificationEvent,
    NotificationEventKind,
)
from taskvision.domain.models.reviewer_scope import ReviewerScope

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class TestNotificationEvent:
    def test_requires_recipients(self) -> None:
        with pytest.raises(ValueError, match="recipient"):
            NotificationEvent(
                kind=NotificationEventKind.TASK_ASSIGNED,
                title="New task",
                body="You have a new task",
                recipient_ids=(),
                created_at=T0,
            )

    def test_rejects_duplicate_recipients(self) -> None:
        employee = uuid4()
        with pytest.raises(ValueError, match="unique"):
            NotificationEvent(
                kind=NotificationEventKind.TASK_ASSIGNED,
                title="New task",
                body="You have a new task",
                recipient_ids=(employee, employee),
                created_at=T0,
            )

    def test_context_is_read_only(self) -> None:
        event = NotificationEvent(
            kind=NotificationEventKind.TASK_REJECTED,
            title="Rejected",
            body="Your task was rejected",
            recipient_ids=(uuid4(),),
            created_at=T0,
            context={"reason": "Blurry"},
        )
        assert isinstance(event.context, MappingProxyType)
        with pytest.raises(TypeError):
            event.context["reason"] = "changed"  # type: ignore[index]

    def test_dispatch_result_success(self) -> None:
        event_id = uuid4()
        assert NotificationDispatchResult(event_id=event_id).success
        assert not NotificationDispatchResult(event_id=event_id, error="boom").success
        assert not NotificationDispatchResult(
            event_id=event_id, failed_recipients=(uuid4(),)
        ).success


class TestReviewerScope:
    def test_unrestricted_covers_everything(self) -> None:
        scope = ReviewerScope(reviewer_id=uuid4(), unrestricted=True)
        assert scope.covers(uuid4())
        assert scope.covers(None)

    def test_restricted_covers_only_its_departments(self) -> None:
        department = uuid4()
        scope = ReviewerScope(
            reviewer_id=uuid4(),
            unrestricted=False,
            department_ids=frozenset({department}),
        )
        assert scope.covers(department)
        assert not scope.covers(uuid4())

    def test_restricted_never_covers_tasks_without_department(self) -> None:
        scope = ReviewerScope(
            reviewer_id=uuid4(), unrestricted=False, department_ids=frozenset({uuid4()})
        )
        assert not scope.covers(None)


class TestEmployee:
    def test_supervises_home_and_headed_departments(self) -> None:
        home, extra = uuid4(), uuid4()
        head = Employee(
            id=uuid4(),
            name="Carla",
            role=EmployeeRole.DEPARTMENT_HEAD,
            department_id=home,
            headed_department_ids=frozenset({extra}),
        )
        assert head.supervises(home)
        assert head.supervises(extra)
        assert not head.supervises(uuid4())
        assert not head.supervises(None)

    def test_inactive_or_non_supervisor_supervises_nothing(self) -> None:
        department = uuid4()
        worker = Employee(uuid4(), "Ana", EmployeeRole.EMPLOYEE, department)
        retired = Employee(
            uuid4(), "Old", EmployeeRole.DEPARTMENT_HEAD, department, is_active=False
        )
        assert not worker.supervises(department)
        assert not retired.supervises(department)

    def test_from_row_defaults(self) -> None:
        employee_id = uuid4()
        employee = Employee.from_row({"id": str(employee_id)})
        assert employee.role == EmployeeRole.EMPLOYEE
        assert employee.is_active
        assert employee.department_id is None
        assert employee.name == ""


class TestErrorContext:
    def test_context_includes_task_and_operation(self) -> None:
        task_id = uuid4()
        context = TaskNotFoundError(task_id, operation="start").context()
        assert context == {
            "error": "TaskNotFoundError",
            "message": f"Task {task_id} not found",
            "task_id": str(task_id),
            "operation": "start",
        }

    def test_not_authorized_keeps_detail(self) -> None:
        caller = uuid4()
        error = NotAuthorizedError(caller, "reject_completion", "not a supervisor")
        assert error.detail == "not a supervisor"
        assert "not a supervisor" in str(error)
        assert error.context()["operation"] == "reject_completion"
