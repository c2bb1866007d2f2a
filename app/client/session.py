"""Explicit per-user session wiring presence and the active notification path."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from loguru import logger

from app.client.api_client import ChatApiClient
from app.client.events import EventChannel, Visibility
from app.client.notifier import MessageNotifier
from app.client.presence import PresenceDirectory, PresenceTracker
from app.client.push_manager import StandardPushManager
from app.client.relay import PollingRelayClient
from app.config import Settings, settings as default_settings
from app.core.platform import DeviceEnvironment, NotificationPath, select_notification_path
from app.db.realtime import RealtimeStore
from app.schemas.relay import PendingNotification


class ChatSession:
    """Owns every timer and listener started for one signed-in user.

    Use as ``async with ChatSession(...) as session:`` so teardown always runs.
    """

    def __init__(
        self,
        user_id: str,
        env: DeviceEnvironment,
        store: RealtimeStore,
        api: ChatApiClient,
        push_manager: StandardPushManager,
        relay: PollingRelayClient,
        visibility: Visibility,
        config: Settings = default_settings,
    ) -> None:
        self.user_id = user_id
        self.env = env
        self.store = store
        self.api = api
        self.push_manager = push_manager
        self.relay = relay
        self.visibility = visibility
        self.config = config
        self.path = select_notification_path(env)
        self.presence = PresenceTracker(store, user_id, visibility, config)
        self.directory = PresenceDirectory(store)
        self.notifier = MessageNotifier(self.path, store, api, relay)
        self.window_messages: EventChannel[Dict[str, Any]] = EventChannel("message")
        self._poll_handle: Optional[asyncio.Task] = None
        self.started = False

    async def start(self) -> None:
        if self.started:
            return
        self.started = True
        try:
            await self.presence.start()
            await self.directory.start()

            if self.path is NotificationPath.RELAY:
                await self.relay.register(self.user_id)
                self._poll_handle = self.relay.start_polling(self.user_id, self._handle_relay_notification)
            elif self.path is NotificationPath.STANDARD:
                await self.push_manager.auto_subscribe(self.user_id)
            else:
                logger.info("Push notifications are not supported on this device", user_id=self.user_id)
        except BaseException:
            # Release whatever was acquired before the failure.
            await self.close()
            raise

    def _handle_relay_notification(self, notification: PendingNotification) -> None:
        logger.info("Received notification from push.foo", notification_id=notification.id)
        chat_id = notification.data.get("chatId")
        if chat_id:
            self.window_messages.emit(
                {
                    "type": "OPEN_CHAT",
                    "chatId": chat_id,
                    "senderId": notification.data.get("senderId"),
                }
            )

    async def message_sent(
        self, *, recipient_id: str, chat_id: str, text: str, sender_name: str
    ) -> bool:
        """Hook for the chat UI after a message write succeeded."""

        return await self.notifier.notify(
            sender_id=self.user_id,
            sender_name=sender_name,
            recipient_id=recipient_id,
            chat_id=chat_id,
            text=text,
        )

    async def attachment_sent(
        self, *, recipient_id: str, chat_id: str, sender_name: str, is_image: bool
    ) -> bool:
        text = "Sent you an image" if is_image else "Sent you a video"
        return await self.message_sent(
            recipient_id=recipient_id, chat_id=chat_id, text=text, sender_name=sender_name
        )

    async def close(self) -> None:
        if not self.started:
            return
        self.started = False
        self.relay.stop_polling(self._poll_handle)
        self._poll_handle = None
        self.directory.stop()
        await self.presence.stop()

    async def __aenter__(self) -> "ChatSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


__all__ = ["ChatSession"]
