"""Task notification service.

Turns workflow boundary crossings into NotificationEvents and hands them
to the NotificationDispatcherPort. The workflow only decides that a
notification fires and to whom; delivery is the dispatcher's concern.

Dispatch is fire-and-forget: recipients are deduplicated, empty
recipient lists are skipped, and any dispatcher failure is logged and
swallowed so that a transport outage never fails a workflow operation.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from taskvision.application.ports.notification_dispatcher import (
    NotificationDispatcherPort,
)
from taskvision.application.ports.time_authority import TimeAuthorityProtocol
from taskvision.application.services.base import LoggingMixin
from taskvision.domain.models.notification import (
    NotificationDispatchResult,
    NotificationEvent,
    NotificationEventKind,
)
from taskvision.domain.models.task import Task

# (title, body) per event kind. Bodies are str.format templates.
NOTIFICATION_TEMPLATES: dict[NotificationEventKind, tuple[str, str]] = {
    NotificationEventKind.TASK_ASSIGNED: (
        "New Task Assigned",
        '{actor} assigned you: "{task_title}"',
    ),
    NotificationEventKind.TASK_STARTED: (
        "Task Started",
        '{actor} started: "{task_title}"',
    ),
    NotificationEventKind.TASK_COMPLETED: (
        "Task Completed",
        '{actor} completed: "{task_title}" - Pending approval',
    ),
    NotificationEventKind.TASK_AWAITING_REVIEW: (
        "Task Awaiting Review",
        '{actor} submitted "{task_title}" for administrator review',
    ),
    NotificationEventKind.TASK_APPROVED: (
        "Task Approved",
        '{actor} approved: "{task_title}"',
    ),
    NotificationEventKind.TASK_REJECTED: (
        "Task Rejected",
        '{actor} rejected: "{task_title}"{reason_suffix}',
    ),
    NotificationEventKind.TASK_REASSIGNED: (
        "Task Reassigned",
        '"{task_title}" was sent back to you by {actor}{reason_suffix}',
    ),
    NotificationEventKind.TASK_ESCALATED: (
        "Task Escalated",
        '"{task_title}" was rejected {rejection_count} time(s) '
        "and needs attention{reason_suffix}",
    ),
    NotificationEventKind.TASK_ACTIVATED: (
        "Task Activated",
        '"{task_title}" is now available',
    ),
    NotificationEventKind.TASK_DEACTIVATED: (
        "Task Deactivated",
        '"{task_title}" has been deactivated',
    ),
    NotificationEventKind.TASK_DELETED: (
        "Task Deleted",
        '"{task_title}" has been removed',
    ),
    NotificationEventKind.VERIFICATION_REQUESTED: (
        "Verification Request",
        '{actor} requests verification for: "{task_title}"',
    ),
    NotificationEventKind.VERIFICATION_APPROVED: (
        "Task Verified",
        '{actor} verified: "{task_title}"',
    ),
    NotificationEventKind.VERIFICATION_REJECTED: (
        "Verification Rejected",
        '{actor} rejected verification for: "{task_title}"{reason_suffix}',
    ),
}


def dedupe_recipients(recipients: Iterable[UUID | None]) -> tuple[UUID, ...]:
    """Drop empty and repeated recipients, keeping first-seen order."""
    seen: dict[UUID, None] = {}
    for recipient in recipients:
        if recipient is not None:
            seen.setdefault(recipient, None)
    return tuple(seen)


class TaskNotificationService(LoggingMixin):
    """Builds and dispatches workflow notifications.

    Example:
        await notifier.notify(
            NotificationEventKind.TASK_STARTED,
            [task.assigned_by],
            task,
            actor_name=worker.name,
        )
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcherPort,
        time_authority: TimeAuthorityProtocol,
    ) -> None:
        self._dispatcher = dispatcher
        self._time = time_authority
        self._init_logger(component="notification")

    def build_event(
        self,
        kind: NotificationEventKind,
        recipients: Iterable[UUID | None],
        task: Task,
        actor_name: str = "",
        reason: str | None = None,
        **context: Any,
    ) -> NotificationEvent | None:
        """Build the event for a boundary crossing.

        Returns:
            The event, or None when no recipient remains after dedupe.
        """
        recipient_ids = dedupe_recipients(recipients)
        if not recipient_ids:
            return None

        title, template = NOTIFICATION_TEMPLATES[kind]
        body = template.format(
            actor=actor_name or "Someone",
            task_title=task.title,
            reason_suffix=f" - {reason}" if reason else "",
            rejection_count=task.rejection_count,
        )
        event_context: dict[str, Any] = {"task_id": str(task.id)}
        if reason:
            event_context["reason"] = reason
        event_context.update(context)
        return NotificationEvent(
            kind=kind,
            title=title,
            body=body,
            recipient_ids=recipient_ids,
            created_at=self._time.utcnow(),
            context=event_context,
        )

    async def notify(
        self,
        kind: NotificationEventKind,
        recipients: Iterable[UUID | None],
        task: Task,
        actor_name: str = "",
        reason: str | None = None,
        **context: Any,
    ) -> NotificationDispatchResult | None:
        """Build and dispatch a notification, never raising.

        Args:
            kind: Event kind.
            recipients: Candidate recipients (None entries are dropped).
            task: Task the event is about.
            actor_name: Display name of the employee who acted.
            reason: Rejection reason, when relevant.
            **context: Extra structured context for the event.

        Returns:
            The dispatch result, or None when skipped or failed.
        """
        log = self._log_operation("notify", kind=kind.value, task_id=str(task.id))
        event = self.build_event(kind, recipients, task, actor_name, reason, **context)
        if event is None:
            log.debug("notification_skipped_no_recipients")
            return None

        try:
            result = await self._dispatcher.dispatch(event)
        except Exception as exc:
            log.warning(
                "notification_dispatch_failed",
                event_id=str(event.event_id),
                recipient_count=len(event.recipient_ids),
                error=str(exc),
            )
            return None

        if not result.success:
            log.warning(
                "notification_partially_delivered",
                event_id=str(event.event_id),
                failed_recipients=[str(r) for r in result.failed_recipients],
                error=result.error,
            )
        else:
            log.debug(
                "notification_dispatched",
                event_id=str(event.event_id),
                recipient_count=len(event.recipient_ids),
            )
        return result
