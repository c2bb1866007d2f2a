"""Service for storing push subscriptions and alerting chat recipients."""
from __future__ import annotations

from typing import Any, Optional

from loguru import logger
from starlette.concurrency import run_in_threadpool

from app.config import Settings, settings as default_settings
from app.db.realtime import RealtimeStore, child_path, user_path
from app.schemas.push import (
    DeviceSubscription,
    NotificationData,
    NotificationPayload,
    PushNotificationRequest,
)
from app.services.web_push import WebPushService
from app.utils.cache import CacheBackend, cache_backend
from app.utils.exceptions import StoreError

SUBSCRIPTION_FIELD = "pushSubscription"
DEFAULT_SENDER_NAME = "Someone"
DEFAULT_BODY = "You have a new message"


class NotificationService:
    """Persist device subscriptions on the user record and deliver message alerts."""

    profile_namespace = "sender:profile"

    def __init__(
        self,
        store: RealtimeStore,
        web_push: WebPushService,
        cache: CacheBackend = cache_backend,
        config: Settings = default_settings,
    ) -> None:
        self.store = store
        self.web_push = web_push
        self.cache = cache
        self.config = config

    async def save_subscription(self, user_id: str, subscription: DeviceSubscription) -> None:
        """Replace the stored subscription for ``user_id`` (last write wins)."""

        await self.store.update(user_path(user_id), {SUBSCRIPTION_FIELD: subscription.to_json()})
        logger.info("Push subscription saved", user_id=user_id, endpoint=subscription.endpoint)

    async def delete_subscription(self, user_id: str) -> None:
        """Remove the stored subscription; deleting an absent one is a no-op."""

        await self.store.update(user_path(user_id), {SUBSCRIPTION_FIELD: None})
        logger.info("Push subscription deleted", user_id=user_id)

    async def get_subscription(self, user_id: str) -> Optional[DeviceSubscription]:
        raw = await self.store.read(child_path(user_path(user_id), SUBSCRIPTION_FIELD))
        if not raw:
            return None
        return DeviceSubscription.model_validate(raw)

    async def sender_profile(self, sender_id: Optional[str]) -> dict[str, str]:
        """Return the display name and photo used in the notification title and icon."""

        profile = {"name": DEFAULT_SENDER_NAME, "photo": self.config.DEFAULT_ICON}
        if not sender_id:
            return profile

        cached = self.cache.get(self.profile_namespace, sender_id)
        if cached is not None:
            return cached

        try:
            sender: Any = await self.store.read(user_path(sender_id))
        except StoreError as exc:
            # A missing name must not block delivery.
            logger.error("Error fetching sender data", sender_id=sender_id, error=str(exc))
            return profile

        if isinstance(sender, dict):
            profile["name"] = sender.get("username") or DEFAULT_SENDER_NAME
            profile["photo"] = sender.get("photoURL") or self.config.DEFAULT_ICON
        self.cache.set(
            self.profile_namespace,
            sender_id,
            profile,
            ttl_seconds=self.config.SENDER_PROFILE_CACHE_SECONDS,
        )
        return profile

    async def build_payload(self, request: PushNotificationRequest) -> NotificationPayload:
        profile = await self.sender_profile(request.sender_id)
        return NotificationPayload(
            title=request.title or f"New message from {profile['name']}",
            body=request.message or DEFAULT_BODY,
            icon=profile["photo"],
            badge=self.config.DEFAULT_ICON,
            tag=request.chat_id or "message",
            data=NotificationData(
                url=self.config.APP_BASE_URL,
                chat_id=request.chat_id,
                sender_id=request.sender_id,
            ),
        )

    async def send_message_notification(self, request: PushNotificationRequest) -> None:
        """Deliver a message alert to the subscription carried by the request."""

        self.web_push.ensure_configured()
        payload = await self.build_payload(request)
        await run_in_threadpool(self.web_push.send_notification, request.subscription, payload)


__all__ = ["NotificationService", "SUBSCRIPTION_FIELD"]
