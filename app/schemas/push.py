"""Pydantic models for Web Push subscriptions and delivery."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model speaking the frontend's camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SubscriptionKeys(BaseModel):
    """Encryption keys handed out by the browser push service."""

    p256dh: str
    auth: str


class DeviceSubscription(CamelModel):
    """A browser push subscription as serialized by ``PushSubscription.toJSON()``."""

    endpoint: str = Field(..., min_length=1)
    keys: SubscriptionKeys
    expiration_time: Optional[int] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_subscription_info(self) -> dict[str, Any]:
        """Return the mapping ``pywebpush.webpush`` expects."""

        return {"endpoint": self.endpoint, "keys": self.keys.model_dump()}


class SaveSubscriptionRequest(CamelModel):
    user_id: Optional[str] = None
    subscription: Optional[DeviceSubscription] = None


class DeleteSubscriptionRequest(CamelModel):
    user_id: Optional[str] = None


class PushStatusResponse(CamelModel):
    """Server-side push configuration; never exposes key material."""

    push_notifications_configured: bool
    public_key_available: bool
    private_key_available: bool


class PublicKeyResponse(CamelModel):
    public_key: Optional[str] = None


class PushNotificationRequest(CamelModel):
    """Request to alert a chat recipient about a new message."""

    subscription: Optional[DeviceSubscription] = None
    user_id: Optional[str] = None
    message: Optional[str] = None
    chat_id: Optional[str] = None
    sender_id: Optional[str] = None
    title: Optional[str] = None


class NotificationData(CamelModel):
    url: str = "/"
    chat_id: Optional[str] = None
    sender_id: Optional[str] = None


class NotificationPayload(CamelModel):
    """JSON body delivered to the delivery agent's ``push`` handler."""

    title: str
    body: str
    icon: Optional[str] = None
    badge: Optional[str] = None
    tag: str = "message"
    data: NotificationData = Field(default_factory=NotificationData)


class SuccessResponse(BaseModel):
    success: bool = True
