"""Polling relay ("push.foo") client for installed iOS web apps."""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

import httpx
from loguru import logger
from pydantic import ValidationError

from app.client.events import Visibility
from app.client.storage import LocalStorage
from app.config import Settings, settings as default_settings
from app.core.platform import (
    DeviceEnvironment,
    NotificationPath,
    is_installed_as_app,
    is_platform_ios,
    notifications_available,
    select_notification_path,
)
from app.schemas.relay import PendingNotification, RelayNotificationContent
from app.utils.exceptions import FeatureUnavailableError, TransientNetworkError

TOKEN_KEY = "pushFooToken"
DEVICE_ID_KEY = "pushFooDeviceId"

NotificationCallback = Callable[[PendingNotification], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class RelayState(str, Enum):
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    POLLING = "polling"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RelayRegistration:
    device_id: str
    relay_token: str
    owner_user_id: str


class NotificationDisplay(Protocol):
    """Local notification API used while the app is in the background."""

    def show(self, title: str, *, body: str, icon: str, data: dict[str, Any]) -> None:  # pragma: no cover - interface definition
        ...


class PollingRelayClient:
    """Register with the relay, poll its queue and acknowledge what was surfaced.

    Delivery is at-least-once: anything fetched but not acknowledged (crash,
    failed acknowledge) comes back on the next tick.
    """

    def __init__(
        self,
        env: DeviceEnvironment,
        storage: LocalStorage,
        display: NotificationDisplay,
        visibility: Visibility,
        client: Optional[httpx.AsyncClient] = None,
        config: Settings = default_settings,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.env = env
        self.storage = storage
        self.display = display
        self.visibility = visibility
        self.config = config
        self.poll_interval = config.RELAY_POLL_INTERVAL_SECONDS
        self._clock = clock
        self._client = client or httpx.AsyncClient(
            base_url=config.RELAY_BASE_URL, timeout=config.HTTP_TIMEOUT_SECONDS
        )
        self._owner: Optional[str] = None
        self.state = RelayState.REGISTERED if storage.get_item(DEVICE_ID_KEY) else RelayState.UNREGISTERED

    @property
    def active(self) -> bool:
        return select_notification_path(self.env) is NotificationPath.RELAY

    @property
    def device_id(self) -> Optional[str]:
        return self.storage.get_item(DEVICE_ID_KEY)

    @property
    def registration(self) -> Optional[RelayRegistration]:
        device_id = self.storage.get_item(DEVICE_ID_KEY)
        token = self.storage.get_item(TOKEN_KEY)
        if not device_id or token is None:
            return None
        owner = self._owner or device_id.rsplit("-", 1)[0]
        return RelayRegistration(device_id=device_id, relay_token=token, owner_user_id=owner)

    async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            response = await self._client.post(path, json=payload)
        except httpx.HTTPError as exc:
            raise TransientNetworkError(f"Relay {path} failed", {"error": str(exc)}) from exc
        if not response.is_success:
            raise TransientNetworkError(
                f"Relay {path} returned {response.status_code}",
                {"status": response.status_code, "body": response.text},
            )
        return response

    async def register(self, user_id: str) -> bool:
        """Register this device; ``False`` means the relay is unavailable right now."""

        if not self.active:
            logger.info("Not iOS or not installed as PWA, skipping push.foo", user_id=user_id)
            return False

        device_id = f"{user_id}-{self._clock()}"
        try:
            response = await self._post("/api/register", {"deviceId": device_id, "userId": user_id})
            token = response.json()["token"]
        except (TransientNetworkError, ValueError, KeyError, TypeError) as exc:
            logger.error("Error initializing push.foo", user_id=user_id, error=str(exc))
            return False

        self.storage.set_item(TOKEN_KEY, str(token))
        self.storage.set_item(DEVICE_ID_KEY, device_id)
        self._owner = user_id
        if self.state is not RelayState.POLLING:
            self.state = RelayState.REGISTERED
        logger.info("Successfully registered with push.foo", user_id=user_id, device_id=device_id)
        return True

    async def enable(self, user_id: str) -> None:
        """Interactive registration from the settings panel; raises classified errors."""

        if not is_platform_ios(self.env):
            raise FeatureUnavailableError("push.foo notifications are only available on iOS devices.")
        if not is_installed_as_app(self.env):
            raise FeatureUnavailableError("Add the app to your home screen to receive notifications.")
        if not await self.register(user_id):
            raise TransientNetworkError("Failed to initialize push.foo. Please try again.")

    async def send(
        self,
        target_user_id: str,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Queue a notification for every poller of ``target_user_id``."""

        content = RelayNotificationContent(title=title, body=body, data=data or {})
        try:
            await self._post(
                "/api/send", {"userId": target_user_id, "notification": content.model_dump()}
            )
        except TransientNetworkError as exc:
            logger.error("Error sending push.foo notification", target_user_id=target_user_id, error=exc.message)
            return False
        return True

    async def fetch(self, user_id: str, device_id: str) -> List[PendingNotification]:
        try:
            response = await self._client.get(
                "/api/notifications", params={"userId": user_id, "deviceId": device_id}
            )
        except httpx.HTTPError as exc:
            raise TransientNetworkError("Relay poll failed", {"error": str(exc)}) from exc
        if not response.is_success:
            raise TransientNetworkError(f"Failed to poll for notifications: {response.status_code}")
        try:
            raw = response.json().get("notifications") or []
            return [PendingNotification.model_validate(item) for item in raw]
        except (ValueError, AttributeError, ValidationError) as exc:
            raise TransientNetworkError("Relay returned an unreadable batch", {"error": str(exc)}) from exc

    async def acknowledge(self, user_id: str, device_id: str, notification_ids: List[str]) -> None:
        await self._post(
            "/api/acknowledge",
            {"userId": user_id, "deviceId": device_id, "notificationIds": notification_ids},
        )

    async def poll_once(
        self, user_id: str, device_id: str, on_notification: NotificationCallback
    ) -> List[PendingNotification]:
        """Fetch one batch, surface it in order, then acknowledge it with one call."""

        notifications = await self.fetch(user_id, device_id)
        if not notifications:
            return []

        for notification in notifications:
            on_notification(notification)
            if not self.visibility.visible and notifications_available(self.env):
                self.display.show(
                    notification.title,
                    body=notification.body,
                    icon=self.config.DEFAULT_ICON,
                    data=notification.data,
                )

        await self.acknowledge(user_id, device_id, [item.id for item in notifications])
        return notifications

    async def _poll_tick(self, user_id: str, on_notification: NotificationCallback) -> None:
        # Re-read every tick so a fresh registration takes over immediately.
        device_id = self.storage.get_item(DEVICE_ID_KEY)
        if not device_id:
            logger.warning("No push.foo device ID found, skipping poll", user_id=user_id)
            return
        await self.poll_once(user_id, device_id, on_notification)

    async def _poll_loop(self, user_id: str, on_notification: NotificationCallback) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self._poll_tick(user_id, on_notification)
            except TransientNetworkError as exc:
                logger.error("Error polling for push.foo notifications", user_id=user_id, error=exc.message)
            except Exception as exc:
                logger.exception("push.foo poll tick failed", user_id=user_id, error=str(exc))

    def start_polling(
        self, user_id: str, on_notification: NotificationCallback
    ) -> Optional[asyncio.Task]:
        """Start the fixed-interval poll loop; ``None`` without a registration."""

        if not self.active:
            return None
        if not self.storage.get_item(DEVICE_ID_KEY):
            logger.error("No push.foo device ID found", user_id=user_id)
            return None

        logger.info("Starting push.foo polling for notifications", user_id=user_id, interval=self.poll_interval)
        self.state = RelayState.POLLING
        return asyncio.create_task(
            self._poll_loop(user_id, on_notification), name=f"relay-poll:{user_id}"
        )

    def stop_polling(self, handle: Optional[asyncio.Task]) -> None:
        if handle is None or handle.done():
            return
        handle.cancel()
        self.state = RelayState.STOPPED

    def reset(self) -> None:
        """Forget the local registration; the next ``register`` issues a new device id."""

        self.storage.remove_item(TOKEN_KEY)
        self.storage.remove_item(DEVICE_ID_KEY)
        self._owner = None
        self.state = RelayState.UNREGISTERED

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = [
    "DEVICE_ID_KEY",
    "NotificationDisplay",
    "PollingRelayClient",
    "RelayRegistration",
    "RelayState",
    "TOKEN_KEY",
]
