"""Change feed backed by Supabase realtime postgres_changes."""

from __future__ import annotations

import asyncio
from typing import Any
from uuid import uuid4

from realtime import AsyncRealtimeChannel, RealtimePostgresChangesListenEvent
from supabase import AsyncClient

from taskvision.application.ports.change_feed import ChangeFeedPort, ChangeHandler
from taskvision.domain.models.change_event import ChangeEvent, ChangeType
from taskvision.domain.models.task import parse_uuid
from taskvision.infrastructure.observability.logging import get_logger_for_component

logger = get_logger_for_component("SupabaseRealtimeChangeFeed", component="storage")


def change_event_from_payload(table: str, payload: dict[str, Any]) -> ChangeEvent | None:
    """Convert a postgres_changes payload into a ChangeEvent.

    Returns:
        None when the payload's event type is not recognized.
    """
    data = payload.get("data", payload)
    try:
        change_type = ChangeType(str(data.get("type", "")).upper())
    except ValueError:
        return None
    record = data.get("record") or data.get("old_record") or {}
    return ChangeEvent(table, change_type, parse_uuid(record.get("id")))


class RealtimeChangeSubscription:
    """Subscription handle owning one realtime channel."""

    def __init__(self, client: AsyncClient, channel: AsyncRealtimeChannel) -> None:
        self._client = client
        self._channel = channel
        self.active = True

    async def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        await self._client.remove_channel(self._channel)


class SupabaseRealtimeChangeFeed(ChangeFeedPort):
    """Subscribes to table changes over a realtime channel per subscription.

    Realtime callbacks are synchronous, so each event schedules the async
    handler on the running loop. Handler failures are logged.
    """

    def __init__(self, client: AsyncClient, schema: str = "public") -> None:
        self._client = client
        self._schema = schema
        self._pending: set[asyncio.Task[None]] = set()

    async def _deliver(self, table: str, handler: ChangeHandler, event: ChangeEvent) -> None:
        try:
            await handler(event)
        except Exception as exc:
            logger.warning(
                "change_handler_failed",
                table=table,
                change_type=event.change_type.value,
                record_id=str(event.record_id) if event.record_id else None,
                error=str(exc),
            )

    async def subscribe(self, table: str, handler: ChangeHandler) -> RealtimeChangeSubscription:
        loop = asyncio.get_running_loop()

        def on_change(payload: dict[str, Any]) -> None:
            event = change_event_from_payload(table, payload)
            if event is None:
                logger.debug("change_payload_ignored", table=table)
                return
            task = loop.create_task(self._deliver(table, handler, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        channel = self._client.channel(f"taskvision-{table}-{uuid4().hex[:8]}")
        channel.on_postgres_changes(
            RealtimePostgresChangesListenEvent.All,
            on_change,
            table=table,
            schema=self._schema,
        )
        await channel.subscribe()
        logger.info("change_feed_subscribed", table=table, topic=channel.topic)
        return RealtimeChangeSubscription(self._client, channel)

