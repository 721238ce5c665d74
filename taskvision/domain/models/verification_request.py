"""Verification request domain model.

A verification request is opened by a supervisor once a worker's task is
completed, and closed exactly once by an administrator. Closed requests
are immutable.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from taskvision.domain.errors.verification import VerificationAlreadyClosedError
from taskvision.domain.models.task import iso_or_none, parse_timestamp, parse_uuid


class VerificationStatus(Enum):
    """Status of a verification request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationDecision(Enum):
    """Administrator decision on a pending request or review."""

    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True, eq=True)
class VerificationRequest:
    """A supervisor's request for administrator verification.

    Attributes:
        id: Request identifier.
        task_id: The task under verification.
        requested_by: Supervisor who opened the request.
        created_at: When the request was opened.
        status: Current status.
        admin_reason: Rejection reason (rejections only).
        approved_by: Administrator who closed the request.
        approved_at: When the request was closed.
    """

    id: UUID
    task_id: UUID
    requested_by: UUID
    created_at: datetime
    status: VerificationStatus = field(default=VerificationStatus.PENDING)
    admin_reason: str | None = field(default=None)
    approved_by: UUID | None = field(default=None)
    approved_at: datetime | None = field(default=None)

    def __post_init__(self) -> None:
        if self.status == VerificationStatus.PENDING and self.approved_at is not None:
            raise ValueError("A pending verification request must not be closed")
        if self.admin_reason is not None and self.status != VerificationStatus.REJECTED:
            raise ValueError("admin_reason is only valid on rejected requests")

    @property
    def is_pending(self) -> bool:
        return self.status == VerificationStatus.PENDING

    def _ensure_pending(self) -> None:
        if not self.is_pending:
            raise VerificationAlreadyClosedError(
                request_id=self.id,
                status=self.status,
                task_id=self.task_id,
            )

    def approve(self, by: UUID, at: datetime) -> VerificationRequest:
        """Return the approved copy of this request.

        Raises:
            VerificationAlreadyClosedError: If the request is not pending.
        """
        self._ensure_pending()
        return replace(
            self,
            status=VerificationStatus.APPROVED,
            approved_by=by,
            approved_at=at,
        )

    def reject(self, by: UUID, at: datetime, reason: str) -> VerificationRequest:
        """Return the rejected copy of this request.

        Raises:
            VerificationAlreadyClosedError: If the request is not pending.
        """
        self._ensure_pending()
        return replace(
            self,
            status=VerificationStatus.REJECTED,
            approved_by=by,
            approved_at=at,
            admin_reason=reason,
        )

    def to_row(self) -> dict[str, Any]:
        """Serialize to a ``task_verification_requests`` row."""
        return {
            "id": str(self.id),
            "task_id": str(self.task_id),
            "requested_by": str(self.requested_by),
            "status": self.status.value,
            "admin_reason": self.admin_reason,
            "approved_by": str(self.approved_by) if self.approved_by else None,
            "approved_at": iso_or_none(self.approved_at),
            "created_at": iso_or_none(self.created_at),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> VerificationRequest:
        """Build a request from a ``task_verification_requests`` row."""
        created_at = parse_timestamp(row.get("created_at"))
        if created_at is None:
            raise ValueError("Verification request row is missing created_at")
        return cls(
            id=UUID(str(row["id"])),
            task_id=UUID(str(row["task_id"])),
            requested_by=UUID(str(row["requested_by"])),
            created_at=created_at,
            status=VerificationStatus(row.get("status") or "pending"),
            admin_reason=row.get("admin_reason"),
            approved_by=parse_uuid(row.get("approved_by")),
            approved_at=parse_timestamp(row.get("approved_at")),
        )
