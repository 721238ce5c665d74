"""In-memory change feed.

The repository stubs publish to this feed after every write, so services
watching a table (the review queue) behave as they would against
Supabase realtime.
"""

from __future__ import annotations

from uuid import uuid4

import structlog

from taskvision.application.ports.change_feed import ChangeFeedPort, ChangeHandler
from taskvision.domain.models.change_event import ChangeEvent

logger = structlog.get_logger()


class InMemoryChangeSubscription:
    """Subscription handle for InMemoryChangeFeed."""

    def __init__(self, feed: InMemoryChangeFeed, table: str, key: str) -> None:
        self._feed = feed
        self._table = table
        self._key = key
        self.active = True

    async def unsubscribe(self) -> None:
        self._feed._remove(self._table, self._key)
        self.active = False


class InMemoryChangeFeed(ChangeFeedPort):
    """Dispatches published ChangeEvents to subscribed handlers in order.

    A failing handler is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, dict[str, ChangeHandler]] = {}
        self.published: list[ChangeEvent] = []

    async def subscribe(self, table: str, handler: ChangeHandler) -> InMemoryChangeSubscription:
        key = str(uuid4())
        self._handlers.setdefault(table, {})[key] = handler
        return InMemoryChangeSubscription(self, table, key)

    def _remove(self, table: str, key: str) -> None:
        self._handlers.get(table, {}).pop(key, None)

    def subscriber_count(self, table: str) -> int:
        return len(self._handlers.get(table, {}))

    async def publish(self, event: ChangeEvent) -> None:
        """Deliver an event to every handler subscribed to its table."""
        self.published.append(event)
        for handler in list(self._handlers.get(event.table, {}).values()):
            try:
                await handler(event)
            except Exception as exc:
                logger.warning(
                    "change_handler_failed",
                    table=event.table,
                    change_type=event.change_type.value,
                    error=str(exc),
                )

    def clear(self) -> None:
        """Drop every subscription and published event (for testing)."""
        self._handlers.clear()
        self.published.clear()
