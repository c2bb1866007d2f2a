"""Background delivery agent: the service worker's push, click and resubscribe handlers."""
from __future__ import annotations

import json
from typing import Any, List, Optional, Protocol, Union

from loguru import logger

from app.client.api_client import ChatApiClient
from app.config import Settings, settings as default_settings
from app.schemas.push import DeviceSubscription

VIBRATE_PATTERN = [200, 100, 200]
DEFAULT_TITLE = "New Message"
DEFAULT_BODY = "You have a new message"


class WindowClient(Protocol):
    url: str

    async def focus(self) -> "WindowClient":  # pragma: no cover - interface definition
        ...

    def post_message(self, message: dict[str, Any]) -> None:  # pragma: no cover - interface definition
        ...


class AgentScope(Protocol):
    """What the worker global scope offers the handlers."""

    async def show_notification(self, title: str, options: dict[str, Any]) -> None:  # pragma: no cover - interface definition
        ...

    async def match_windows(self) -> List[WindowClient]:  # pragma: no cover - interface definition
        ...

    async def open_window(self, url: str) -> Optional[WindowClient]:  # pragma: no cover - interface definition
        ...

    async def subscribe(
        self, *, user_visible_only: bool, application_server_key: Optional[bytes]
    ) -> DeviceSubscription:  # pragma: no cover - interface definition
        ...


class DeliveryAgent:
    def __init__(
        self,
        scope: AgentScope,
        api: ChatApiClient,
        user_id: Optional[str] = None,
        config: Settings = default_settings,
    ) -> None:
        self.scope = scope
        self.api = api
        self.user_id = user_id
        self.config = config

    def _parse(self, raw: Union[bytes, str, None]) -> dict[str, Any]:
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except (TypeError, ValueError, UnicodeDecodeError) as exc:
            logger.error("Error parsing push data", error=str(exc))
            return {"title": DEFAULT_TITLE, "body": DEFAULT_BODY, "icon": self.config.DEFAULT_ICON}
        return data if isinstance(data, dict) else {}

    async def on_push(self, raw: Union[bytes, str, None]) -> dict[str, Any]:
        """Display the pushed message; returns the options passed to the display call."""

        payload = self._parse(raw)
        # Server payloads nest routing fields under ``data``; older senders put them at the top.
        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        title = payload.get("title") or DEFAULT_TITLE
        options = {
            "body": payload.get("body") or DEFAULT_BODY,
            "icon": payload.get("icon") or self.config.DEFAULT_ICON,
            "badge": self.config.DEFAULT_ICON,
            "data": {
                "url": data.get("url") or payload.get("url") or self.config.APP_BASE_URL,
                "chatId": data.get("chatId", payload.get("chatId")),
                "senderId": data.get("senderId", payload.get("senderId")),
            },
            "vibrate": list(VIBRATE_PATTERN),
            "tag": payload.get("tag") or "message",
            "renotify": True,
        }
        await self.scope.show_notification(title, options)
        return options

    async def on_notification_click(
        self, data: Optional[dict[str, Any]], action: Optional[str] = None
    ) -> Optional[WindowClient]:
        """Focus the app window at the target URL (or open one) and route to the chat."""

        if action == "close":
            return None
        data = data or {}
        url = data.get("url") or self.config.APP_BASE_URL
        chat_id = data.get("chatId")

        for window in await self.scope.match_windows():
            if window.url != url:
                continue
            focused = await window.focus()
            if chat_id:
                focused.post_message(
                    {"type": "OPEN_CHAT", "chatId": chat_id, "senderId": data.get("senderId")}
                )
            return focused
        return await self.scope.open_window(url)

    async def on_subscription_change(self, old_application_server_key: Optional[bytes]) -> DeviceSubscription:
        """Re-subscribe with the previous key and report the replacement."""

        subscription = await self.scope.subscribe(
            user_visible_only=True, application_server_key=old_application_server_key
        )
        if self.user_id:
            await self.api.save_subscription(self.user_id, subscription)
        else:
            logger.warning("Push subscription changed but no user is attached to the agent")
        return subscription


__all__ = ["AgentScope", "DeliveryAgent", "VIBRATE_PATTERN", "WindowClient"]
