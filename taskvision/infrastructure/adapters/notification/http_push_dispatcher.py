"""HTTP push notification dispatcher.

Posts a PushNotificationPayload to the push function with retry and
exponential backoff. Client errors (4xx) are not retried.

The same transport serves the messaging relay, which accepts the payload
and looks up each recipient's phone number itself. The channel name
tells the two apart in the logs.

Usage:
    dispatcher = HttpPushNotificationDispatcher(
        endpoint="https://project.supabase.co/functions/v1/send-push-notification",
        api_key=service_role_key,
    )
    result = await dispatcher.dispatch(event)
"""

from __future__ import annotations

import asyncio
from uuid import UUID

import httpx
from pydantic import ValidationError

from taskvision.application.dtos.notification import (
    PushNotificationPayload,
    PushNotificationResponse,
)
from taskvision.application.ports.notification_dispatcher import (
    NotificationDispatcherPort,
)
from taskvision.domain.models.notification import (
    NotificationDispatchResult,
    NotificationEvent,
)
from taskvision.infrastructure.observability.logging import get_logger_for_component

log = get_logger_for_component("HttpPushNotificationDispatcher", component="notification")

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_RETRIES = 3


class HttpPushNotificationDispatcher(NotificationDispatcherPort):
    """Delivers notification events to an HTTP push endpoint.

    Attributes:
        _endpoint: URL receiving the payload.
        _max_retries: Retries after the first attempt.
        _backoff_base: Seconds multiplied by 2 ** attempt between attempts.
        channel: Transport name used in log events ("push", "relay").
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = 1.0,
        client: httpx.AsyncClient | None = None,
        channel: str = "push",
    ) -> None:
        self._endpoint = endpoint
        self.channel = channel
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
            headers["apikey"] = self._api_key
        return headers

    def _result(
        self,
        event: NotificationEvent,
        response: httpx.Response,
    ) -> NotificationDispatchResult:
        try:
            body = PushNotificationResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            body = PushNotificationResponse()

        failed_ids = set(body.failed_employee_ids)
        failed = tuple(r for r in event.recipient_ids if str(r) in failed_ids)
        delivered = tuple(r for r in event.recipient_ids if str(r) not in failed_ids)
        return NotificationDispatchResult(
            event_id=event.event_id,
            delivered_to=delivered,
            failed_recipients=failed,
        )

    def _failure(self, event_id: UUID, error: str) -> NotificationDispatchResult:
        return NotificationDispatchResult(event_id=event_id, error=error)

    async def dispatch(self, event: NotificationEvent) -> NotificationDispatchResult:
        """Post the event, retrying server and transport errors.

        Returns:
            The dispatch result. Transport failures are reported through
            ``error`` rather than raised.
        """
        payload = PushNotificationPayload.from_event(event)
        content = payload.model_dump_json(by_alias=True)

        if self._client is not None:
            return await self._post_with_retry(self._client, event, content)
        async with httpx.AsyncClient() as client:
            return await self._post_with_retry(client, event, content)

    async def _post_with_retry(
        self,
        client: httpx.AsyncClient,
        event: NotificationEvent,
        content: str,
    ) -> NotificationDispatchResult:
        last_error = "no attempt made"
        attempts = self._max_retries + 1
        for attempt in range(attempts):
            try:
                response = await client.post(
                    self._endpoint,
                    content=content,
                    headers=self._headers(),
                    timeout=self._timeout,
                )

                if response.status_code < 300:
                    log.info(
                        "push_notification_delivered",
                        channel=self.channel,
                        event_id=str(event.event_id),
                        kind=event.kind.value,
                        recipients=len(event.recipient_ids),
                        status_code=response.status_code,
                        attempt=attempt + 1,
                    )
                    return self._result(event, response)

                last_error = f"HTTP {response.status_code}"
                log.warning(
                    "push_notification_delivery_failed",
                    channel=self.channel,
                    event_id=str(event.event_id),
                    status_code=response.status_code,
                    attempt=attempt + 1,
                )
                if response.status_code < 500:
                    return self._failure(event.event_id, last_error)

            except httpx.HTTPError as e:
                last_error = str(e) or e.__class__.__name__
                log.warning(
                    "push_notification_delivery_error",
                    channel=self.channel,
                    event_id=str(event.event_id),
                    error=last_error,
                    attempt=attempt + 1,
                )

            # Exponential backoff before retry
            if attempt < attempts - 1:
                await asyncio.sleep(self._backoff_base * 2**attempt)

        log.error(
            "push_notification_delivery_exhausted",
            channel=self.channel,
            event_id=str(event.event_id),
            kind=event.kind.value,
            attempts=attempts,
        )
        return self._failure(event.event_id, last_error)
