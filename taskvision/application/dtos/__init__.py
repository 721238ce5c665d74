"""Application DTOs."""

from taskvision.application.dtos.notification import (
    NotificationAction,
    PushNotificationPayload,
    PushNotificationResponse,
)

__all__: list[str] = [
    "NotificationAction",
    "PushNotificationPayload",
    "PushNotificationResponse",
]
