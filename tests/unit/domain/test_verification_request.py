"""Unit tests for VerificationRequest."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from taskvision.domain.errors.verification import VerificationAlreadyClosedError
from taskvision.domain.models.verification_request import (
    VerificationRequest,
    VerificationStatus,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _pending() -> VerificationRequest:
    return VerificationRequest(
        id=uuid4(), task_id=uuid4(), requested_by=uuid4(), created_at=T0
    )


class TestVerificationRequestInvariants:
    def test_pending_request_cannot_carry_close_time(self) -> None:
        with pytest.raises(ValueError, match="pending"):
            VerificationRequest(
                id=uuid4(),
                task_id=uuid4(),
                requested_by=uuid4(),
                created_at=T0,
                approved_at=T0,
            )

    def test_admin_reason_only_on_rejections(self) -> None:
        with pytest.raises(ValueError, match="admin_reason"):
            VerificationRequest(
                id=uuid4(),
                task_id=uuid4(),
                requested_by=uuid4(),
                created_at=T0,
                status=VerificationStatus.APPROVED,
                approved_at=T0,
                admin_reason="nope",
            )


class TestClosingRequests:
    """A request is closed exactly once."""

    def test_approve_closes_request(self) -> None:
        admin = uuid4()
        approved = _pending().approve(admin, T0 + timedelta(hours=1))
        assert approved.status == VerificationStatus.APPROVED
        assert approved.approved_by == admin
        assert approved.admin_reason is None
        assert not approved.is_pending

    def test_reject_records_reason(self) -> None:
        rejected = _pending().reject(uuid4(), T0 + timedelta(hours=1), "Wrong room")
        assert rejected.status == VerificationStatus.REJECTED
        assert rejected.admin_reason == "Wrong room"

    def test_closed_request_cannot_be_closed_again(self) -> None:
        approved = _pending().approve(uuid4(), T0 + timedelta(hours=1))
        with pytest.raises(VerificationAlreadyClosedError) as exc_info:
            approved.reject(uuid4(), T0 + timedelta(hours=2), "late")
        assert exc_info.value.status == VerificationStatus.APPROVED
        assert exc_info.value.attempted_transition == "approved -> closed"


class TestRowMapping:
    def test_from_row_round_trips_closed_request(self) -> None:
        rejected = _pending().reject(uuid4(), T0 + timedelta(hours=1), "Blurry")
        assert VerificationRequest.from_row(rejected.to_row()) == rejected

    def test_from_row_requires_created_at(self) -> None:
        row = _pending().to_row()
        row["created_at"] = None
        with pytest.raises(ValueError, match="created_at"):
            VerificationRequest.from_row(row)
