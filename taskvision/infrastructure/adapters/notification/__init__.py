"""Notification transports."""

from taskvision.infrastructure.adapters.notification.fan_out_dispatcher import (
    FanOutNotificationDispatcher,
)
from taskvision.infrastructure.adapters.notification.http_push_dispatcher import (
    HttpPushNotificationDispatcher,
)

__all__ = [
    "FanOutNotificationDispatcher",
    "HttpPushNotificationDispatcher",
]
