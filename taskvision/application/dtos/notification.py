"""Outbound notification payload DTOs.

These Pydantic models describe the JSON body posted to the push
notification edge function. Field aliases match the function's camelCase
contract.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from taskvision.domain.models.notification import NotificationEvent


def _camel_case(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


class NotificationAction(BaseModel):
    """Action button shown with a push notification."""

    model_config = ConfigDict(frozen=True)

    action: str
    title: str


class PushNotificationPayload(BaseModel):
    """Request body for the push notification function."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: Annotated[str, Field(min_length=1, description="Notification title")]
    body: Annotated[str, Field(description="Notification body text")]
    employee_ids: Annotated[
        list[str],
        Field(
            alias="employeeIds",
            min_length=1,
            description="Recipient employee ids",
        ),
    ]
    data: Annotated[
        dict[str, Any],
        Field(
            default_factory=dict,
            description="Structured context (taskId, kind, eventId, ...)",
        ),
    ]
    actions: Annotated[
        list[NotificationAction],
        Field(default_factory=list, description="Action buttons"),
    ]

    @classmethod
    def from_event(
        cls,
        event: NotificationEvent,
        actions: list[NotificationAction] | None = None,
    ) -> PushNotificationPayload:
        """Build the payload for a workflow notification event."""
        data: dict[str, Any] = {
            "kind": event.kind.value,
            "eventId": str(event.event_id),
        }
        for key, value in event.context.items():
            if not isinstance(value, (str, int, float, bool)):
                value = str(value)
            data[_camel_case(key)] = value
        return cls(
            title=event.title,
            body=event.body,
            employee_ids=[str(recipient) for recipient in event.recipient_ids],
            data=data,
            actions=actions or [],
        )


class PushNotificationResponse(BaseModel):
    """Response body of the push notification function.

    The function reports per-recipient failures when some subscriptions
    could not be reached.
    """

    model_config = ConfigDict(extra="ignore")

    success: bool = True
    sent: int = 0
    failed_employee_ids: Annotated[
        list[str],
        Field(default_factory=list, alias="failedEmployeeIds"),
    ]
