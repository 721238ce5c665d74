"""Change feed port.

Per-table change notification. Handlers are async callables receiving a
ChangeEvent. Subscriptions are released with unsubscribe().
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

from taskvision.domain.models.change_event import ChangeEvent

ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]


class ChangeSubscription(Protocol):
    """Handle returned by ChangeFeedPort.subscribe."""

    async def unsubscribe(self) -> None:
        """Stop delivering events to the handler. Idempotent."""
        ...


class ChangeFeedPort(Protocol):
    """Port for subscribing to row changes."""

    async def subscribe(self, table: str, handler: ChangeHandler) -> ChangeSubscription:
        """Subscribe to insert, update and delete events on a table.

        Args:
            table: Table to watch.
            handler: Called once per change.

        Returns:
            Subscription handle.
        """
        ...
