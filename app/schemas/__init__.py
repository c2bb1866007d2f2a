"""Pydantic schemas package."""

from app.schemas.presence import PresenceRecord
from app.schemas.push import (
    DeleteSubscriptionRequest,
    DeviceSubscription,
    NotificationData,
    NotificationPayload,
    PublicKeyResponse,
    PushNotificationRequest,
    PushStatusResponse,
    SaveSubscriptionRequest,
    SubscriptionKeys,
    SuccessResponse,
)
from app.schemas.relay import PendingNotification, RelayNotificationContent, RelayWebhookRequest

__all__ = [
    "DeleteSubscriptionRequest",
    "DeviceSubscription",
    "NotificationData",
    "NotificationPayload",
    "PendingNotification",
    "PresenceRecord",
    "PublicKeyResponse",
    "PushNotificationRequest",
    "PushStatusResponse",
    "RelayNotificationContent",
    "RelayWebhookRequest",
    "SaveSubscriptionRequest",
    "SubscriptionKeys",
    "SuccessResponse",
]
