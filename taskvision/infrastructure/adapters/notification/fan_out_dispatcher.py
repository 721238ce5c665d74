"""Dispatcher fanning one event out to several transports."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from uuid import UUID

import structlog

from taskvision.application.ports.notification_dispatcher import (
    NotificationDispatcherPort,
)
from taskvision.domain.models.notification import (
    NotificationDispatchResult,
    NotificationEvent,
)

log = structlog.get_logger()


class FanOutNotificationDispatcher(NotificationDispatcherPort):
    """Sends each event through every wrapped dispatcher concurrently.

    A recipient counts as delivered when any transport reached them.
    The combined result carries an error only when every transport failed.
    """

    def __init__(self, dispatchers: Sequence[NotificationDispatcherPort]) -> None:
        if not dispatchers:
            raise ValueError("FanOutNotificationDispatcher needs at least one dispatcher")
        self._dispatchers = tuple(dispatchers)

    async def dispatch(self, event: NotificationEvent) -> NotificationDispatchResult:
        outcomes = await asyncio.gather(
            *(dispatcher.dispatch(event) for dispatcher in self._dispatchers),
            return_exceptions=True,
        )

        delivered: set[UUID] = set()
        errors: list[str] = []
        for dispatcher, outcome in zip(self._dispatchers, outcomes):
            if isinstance(outcome, BaseException):
                log.warning(
                    "notification_transport_failed",
                    transport=getattr(dispatcher, "channel", type(dispatcher).__name__),
                    event_id=str(event.event_id),
                    error=str(outcome),
                )
                errors.append(str(outcome))
                continue
            delivered.update(outcome.delivered_to)
            if outcome.error is not None:
                errors.append(outcome.error)

        delivered_to = tuple(r for r in event.recipient_ids if r in delivered)
        failed = tuple(r for r in event.recipient_ids if r not in delivered)
        error = "; ".join(errors) if not delivered_to and errors else None
        return NotificationDispatchResult(
            event_id=event.event_id,
            delivered_to=delivered_to,
            failed_recipients=failed,
            error=error,
        )
