"""Notification events emitted at workflow boundaries.

The workflow core decides that a notification fires and to whom. The
NotificationDispatcherPort decides how it is delivered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID, uuid4


class NotificationEventKind(Enum):
    """Kinds of workflow notification."""

    TASK_ASSIGNED = "task_assigned"
    TASK_STARTED = "task_started"
    TASK_COMPLETED = "task_completed"
    TASK_AWAITING_REVIEW = "task_awaiting_review"
    TASK_APPROVED = "task_approved"
    TASK_REJECTED = "task_rejected"
    TASK_REASSIGNED = "task_reassigned"
    TASK_ESCALATED = "task_escalated"
    TASK_ACTIVATED = "task_activated"
    TASK_DEACTIVATED = "task_deactivated"
    TASK_DELETED = "task_deleted"
    VERIFICATION_REQUESTED = "verification_requested"
    VERIFICATION_APPROVED = "verification_approved"
    VERIFICATION_REJECTED = "verification_rejected"


@dataclass(frozen=True)
class NotificationEvent:
    """A structured notification addressed to employees.

    Attributes:
        kind: What happened.
        title: Short title.
        body: Message body.
        recipient_ids: Deduplicated recipients, in first-seen order.
        context: Read-only structured data (task id, reason, ...).
        event_id: Unique event identifier.
        created_at: When the event was built.
    """

    kind: NotificationEventKind
    title: str
    body: str
    recipient_ids: tuple[UUID, ...]
    created_at: datetime
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    event_id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if not self.recipient_ids:
            raise ValueError("A notification event needs at least one recipient")
        if len(set(self.recipient_ids)) != len(self.recipient_ids):
            raise ValueError("Notification recipients must be unique")
        if not isinstance(self.context, MappingProxyType):
            object.__setattr__(self, "context", MappingProxyType(dict(self.context)))


@dataclass(frozen=True)
class NotificationDispatchResult:
    """Per-batch outcome of a dispatch.

    Attributes:
        event_id: The dispatched event.
        delivered_to: Recipients the transport accepted.
        failed_recipients: Recipients the transport rejected.
        error: Transport error message, if the whole batch failed.
    """

    event_id: UUID
    delivered_to: tuple[UUID, ...] = ()
    failed_recipients: tuple[UUID, ...] = ()
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and not self.failed_recipients
