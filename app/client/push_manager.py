"""Standard Web Push subscription lifecycle on the device."""
from __future__ import annotations

from typing import Any, Optional, Protocol

from loguru import logger

from app.client.api_client import ChatApiClient
from app.config import Settings, settings as default_settings
from app.core.platform import DeviceEnvironment, NotificationPath, select_notification_path
from app.schemas.push import DeviceSubscription
from app.utils.encoding import url_base64_to_bytes
from app.utils.exceptions import (
    ChatNotifyException,
    FeatureUnavailableError,
    NotConfiguredError,
    PartialFailureError,
    PermissionDeniedError,
    TransientNetworkError,
)

PERMISSION_GRANTED = "granted"
PERMISSION_DENIED = "denied"
PERMISSION_DEFAULT = "default"
PERMISSION_UNSUPPORTED = "unsupported"


class AgentHandle(Protocol):
    """A registered background delivery agent (service worker registration)."""

    scope: str

    async def get_subscription(self) -> Optional[DeviceSubscription]:  # pragma: no cover - interface definition
        ...

    async def subscribe(
        self, *, user_visible_only: bool, application_server_key: bytes
    ) -> DeviceSubscription:  # pragma: no cover - interface definition
        ...

    async def unsubscribe(self) -> bool:  # pragma: no cover - interface definition
        ...

    async def show_notification(self, title: str, options: dict[str, Any]) -> None:  # pragma: no cover - interface definition
        ...


class PushPlatform(Protocol):
    """Browser capabilities the push manager drives."""

    async def register_agent(self, script_url: str, scope: str) -> AgentHandle:  # pragma: no cover - interface definition
        ...

    async def ready_agent(self) -> Optional[AgentHandle]:  # pragma: no cover - interface definition
        ...

    def permission(self) -> str:  # pragma: no cover - interface definition
        ...

    async def request_permission(self) -> str:  # pragma: no cover - interface definition
        ...


class StandardPushManager:
    """Register the delivery agent, subscribe, and keep the server copy in step.

    Only active when the detector selects the standard path; on any other path
    :meth:`register_delivery_agent` returns ``None`` so nothing can subscribe.
    """

    def __init__(
        self,
        env: DeviceEnvironment,
        platform: PushPlatform,
        api: ChatApiClient,
        config: Settings = default_settings,
        script_url: str = "/sw.js",
        scope: str = "/",
    ) -> None:
        self.env = env
        self.platform = platform
        self.api = api
        self.config = config
        self.script_url = script_url
        self.scope = scope
        self._agent: Optional[AgentHandle] = None

    @property
    def active(self) -> bool:
        return select_notification_path(self.env) is NotificationPath.STANDARD

    async def register_delivery_agent(self) -> Optional[AgentHandle]:
        """Install or fetch the agent registration; ``None`` means unavailable."""

        if not self.active:
            return None
        if self._agent is not None:
            return self._agent
        try:
            self._agent = await self.platform.register_agent(self.script_url, self.scope)
        except Exception as exc:
            logger.error("Service worker registration failed", error=str(exc))
            return None
        logger.info("Service worker registered", scope=self._agent.scope)
        return self._agent

    async def subscribe(self, agent: AgentHandle, server_public_key: str) -> DeviceSubscription:
        """Return the agent's existing subscription or create a user-visible one."""

        existing = await agent.get_subscription()
        if existing is not None:
            logger.debug("Already subscribed to push notifications", endpoint=existing.endpoint)
            return existing

        subscription = await agent.subscribe(
            user_visible_only=True,
            application_server_key=url_base64_to_bytes(server_public_key),
        )
        logger.info("Subscribed to push notifications", endpoint=subscription.endpoint)
        return subscription

    async def persist(self, subscription: DeviceSubscription, user_id: str) -> None:
        await self.api.save_subscription(user_id, subscription)

    async def current_subscription(self) -> Optional[DeviceSubscription]:
        agent = self._agent or await self.platform.ready_agent()
        if agent is None:
            return None
        return await agent.get_subscription()

    async def unsubscribe(self) -> bool:
        """Cancel the platform subscription; the server copy is left to the caller."""

        agent = self._agent or await self.platform.ready_agent()
        if agent is None:
            return False
        if await agent.get_subscription() is None:
            return False
        result = await agent.unsubscribe()
        logger.info("Unsubscribed from push notifications", result=result)
        return result

    async def delete(self, user_id: str) -> None:
        await self.api.delete_subscription(user_id)

    def permission(self) -> str:
        if not self.env.notification_api:
            return PERMISSION_UNSUPPORTED
        return self.platform.permission()

    async def request_permission(self) -> str:
        if not self.env.notification_api:
            return PERMISSION_UNSUPPORTED
        return await self.platform.request_permission()

    async def _public_key(self) -> str:
        status = await self.api.push_status()
        if not status.push_notifications_configured:
            raise NotConfiguredError("Push notifications are not configured on the server")
        public_key = await self.api.vapid_public_key()
        if not public_key:
            raise NotConfiguredError("VAPID public key is not available")
        return public_key

    async def enable(self, user_id: str) -> DeviceSubscription:
        """Interactive subscribe: every failure surfaces as a classified error."""

        if not self.active:
            raise FeatureUnavailableError("Push notifications are not supported on this device")

        permission = self.permission()
        if permission != PERMISSION_GRANTED:
            permission = await self.request_permission()
        if permission != PERMISSION_GRANTED:
            raise PermissionDeniedError(
                "Notification permission denied. Please enable notifications in your browser settings.",
                {"permission": permission},
            )

        public_key = await self._public_key()
        agent = await self.register_delivery_agent()
        if agent is None:
            raise FeatureUnavailableError("Failed to register service worker")

        subscription = await self.subscribe(agent, public_key)
        await self.persist(subscription, user_id)
        return subscription

    async def disable(self, user_id: str) -> bool:
        """Unsubscribe, then delete the server copy.

        The two steps are not atomic; when the delete fails the platform side is
        already gone and :class:`PartialFailureError` reports the drift. Both
        steps are safe to repeat.
        """

        unsubscribed = await self.unsubscribe()
        try:
            await self.delete(user_id)
        except TransientNetworkError as exc:
            if unsubscribed:
                raise PartialFailureError(
                    "Unsubscribed on this device but the server copy was not deleted",
                    {"user_id": user_id},
                ) from exc
            raise
        return unsubscribed

    async def auto_subscribe(self, user_id: str) -> Optional[DeviceSubscription]:
        """Background subscribe when permission was already granted earlier."""

        agent = await self.register_delivery_agent()
        if agent is None:
            return None
        if await agent.get_subscription() is not None:
            logger.debug("Push notification subscription already exists", user_id=user_id)
            return None
        if self.permission() != PERMISSION_GRANTED:
            logger.debug("Notification permission not granted yet", user_id=user_id)
            return None
        try:
            public_key = await self._public_key()
            subscription = await self.subscribe(agent, public_key)
            await self.persist(subscription, user_id)
        except ChatNotifyException as exc:
            logger.error("Failed to auto-subscribe to push notifications", user_id=user_id, error=exc.message)
            return None
        logger.info("Auto-subscribed to push notifications", user_id=user_id)
        return subscription

    async def send_test_notification(self) -> None:
        if not self.env.notification_api:
            raise FeatureUnavailableError("Notifications not supported")
        if self.permission() != PERMISSION_GRANTED:
            raise PermissionDeniedError("Notification permission not granted")
        agent = await self.register_delivery_agent()
        if agent is None:
            raise FeatureUnavailableError("Service worker is not available")
        await agent.show_notification(
            "Test Notification",
            {
                "body": "This is a test notification from Chat App",
                "icon": self.config.DEFAULT_ICON,
                "badge": self.config.DEFAULT_ICON,
                "vibrate": [200, 100, 200],
                "tag": "test",
                "renotify": True,
                "actions": [
                    {"action": "view", "title": "View"},
                    {"action": "close", "title": "Close"},
                ],
            },
        )


__all__ = [
    "AgentHandle",
    "PERMISSION_DEFAULT",
    "PERMISSION_DENIED",
    "PERMISSION_GRANTED",
    "PERMISSION_UNSUPPORTED",
    "PushPlatform",
    "StandardPushManager",
]
