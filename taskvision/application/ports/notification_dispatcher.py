"""Notification dispatcher port.

The workflow core builds NotificationEvents. A dispatcher delivers them
over some transport (push, messaging, in-app). Dispatch is
fire-and-forget from the workflow's point of view: the caller logs and
swallows any failure.
"""

from typing import Protocol

from taskvision.domain.models.notification import (
    NotificationDispatchResult,
    NotificationEvent,
)


class NotificationDispatcherPort(Protocol):
    """Port for delivering notification events."""

    async def dispatch(self, event: NotificationEvent) -> NotificationDispatchResult:
        """Deliver an event to its recipients.

        Args:
            event: The event to deliver.

        Returns:
            Per-batch delivery result. Implementations may also raise on
            transport failure; callers treat both the same way.
        """
        ...
