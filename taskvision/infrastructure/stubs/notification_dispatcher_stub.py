"""Notification dispatcher stub.

Records every dispatched event. Failures can be configured to exercise
the fire-and-forget path.
"""

from __future__ import annotations

from uuid import UUID

from taskvision.application.ports.notification_dispatcher import (
    NotificationDispatcherPort,
)
from taskvision.domain.models.notification import (
    NotificationDispatchResult,
    NotificationEvent,
    NotificationEventKind,
)


class NotificationDispatcherStub(NotificationDispatcherPort):
    """In-memory notification dispatcher.

    Attributes:
        events: Every dispatched event, in order (including failed ones).
        raise_error: When set, dispatch raises it.
        unreachable: Recipients reported as failed.
    """

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []
        self.raise_error: Exception | None = None
        self.unreachable: set[UUID] = set()

    async def dispatch(self, event: NotificationEvent) -> NotificationDispatchResult:
        self.events.append(event)
        if self.raise_error is not None:
            raise self.raise_error
        failed = tuple(r for r in event.recipient_ids if r in self.unreachable)
        delivered = tuple(r for r in event.recipient_ids if r not in self.unreachable)
        return NotificationDispatchResult(
            event_id=event.event_id,
            delivered_to=delivered,
            failed_recipients=failed,
        )

    def events_of(self, kind: NotificationEventKind) -> list[NotificationEvent]:
        return [event for event in self.events if event.kind == kind]

    def received_by(self, recipient_id: UUID) -> list[NotificationEventKind]:
        return [event.kind for event in self.events if recipient_id in event.recipient_ids]

    def clear(self) -> None:
        """Clear recorded events and failure configuration (for testing)."""
        self.events.clear()
        self.raise_error = None
        self.unreachable.clear()
