"""New-message alerts dispatched over whichever notification path is active."""
from __future__ import annotations

from typing import Optional

from loguru import logger

from app.client.api_client import ChatApiClient
from app.client.relay import PollingRelayClient
from app.core.platform import NotificationPath
from app.db.realtime import RealtimeStore, child_path, user_path
from app.schemas.push import DeviceSubscription, PushNotificationRequest
from app.services.notification_service import SUBSCRIPTION_FIELD
from app.utils.exceptions import ChatNotifyException, StaleSubscriptionError


class MessageNotifier:
    """Alert the recipient of a chat message; never blocks or fails the send."""

    def __init__(
        self,
        path: NotificationPath,
        store: RealtimeStore,
        api: ChatApiClient,
        relay: PollingRelayClient,
    ) -> None:
        self.path = path
        self.store = store
        self.api = api
        self.relay = relay

    async def _recipient_subscription(self, recipient_id: str) -> Optional[DeviceSubscription]:
        raw = await self.store.read(child_path(user_path(recipient_id), SUBSCRIPTION_FIELD))
        if not raw:
            return None
        return DeviceSubscription.model_validate(raw)

    async def notify(
        self,
        *,
        sender_id: str,
        sender_name: str,
        recipient_id: str,
        chat_id: str,
        text: str,
    ) -> bool:
        title = f"New message from {sender_name}"
        try:
            if self.path is NotificationPath.RELAY:
                return await self.relay.send(
                    recipient_id, title, text, {"chatId": chat_id, "senderId": sender_id}
                )

            subscription = await self._recipient_subscription(recipient_id)
            if subscription is None:
                return False
            request = PushNotificationRequest(
                subscription=subscription,
                user_id=recipient_id,
                message=text,
                chat_id=chat_id,
                sender_id=sender_id,
                title=title,
            )
            try:
                await self.api.push_notification(request)
            except StaleSubscriptionError:
                logger.info("Recipient subscription is stale, deleting it", recipient_id=recipient_id)
                await self.api.delete_subscription(recipient_id)
                return False
            return True
        except ChatNotifyException as exc:
            logger.error("Error sending push notification", recipient_id=recipient_id, error=exc.message)
            return False


__all__ = ["MessageNotifier"]
