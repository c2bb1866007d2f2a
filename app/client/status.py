"""Self-diagnosis report for the notification settings panel."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from loguru import logger

from app.client.push_manager import StandardPushManager
from app.client.relay import PollingRelayClient
from app.core.platform import (
    DeviceEnvironment,
    is_installed_as_app,
    is_platform_ios,
    is_standard_push_supported,
    select_notification_path,
)
from app.utils.exceptions import TransientNetworkError


@dataclass
class NotificationStatus:
    path: str
    ios: bool
    installed: bool
    standard_push_supported: bool
    permission: str
    server_configured: Optional[bool]
    subscribed: bool
    relay_registered: bool
    error: Optional[str] = None

    @property
    def can_send_test(self) -> bool:
        return self.subscribed and self.permission == "granted"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


async def collect_status(
    env: DeviceEnvironment,
    push_manager: StandardPushManager,
    relay: PollingRelayClient,
) -> NotificationStatus:
    """Gather capability, permission, configuration and subscription state."""

    error = None
    server_configured: Optional[bool] = None
    try:
        server_configured = (await push_manager.api.push_status()).push_notifications_configured
    except TransientNetworkError as exc:
        logger.error("Error checking push notification status", error=exc.message)
        error = exc.message

    subscribed = False
    if push_manager.active:
        subscribed = await push_manager.current_subscription() is not None

    return NotificationStatus(
        path=select_notification_path(env).value,
        ios=is_platform_ios(env),
        installed=is_installed_as_app(env),
        standard_push_supported=is_standard_push_supported(env),
        permission=push_manager.permission(),
        server_configured=server_configured,
        subscribed=subscribed,
        relay_registered=relay.registration is not None,
        error=error,
    )


__all__ = ["NotificationStatus", "collect_status"]
