"""Platform capability detection for choosing a notification delivery path."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


IOS_PLATFORMS = frozenset(
    {
        "iPad Simulator",
        "iPhone Simulator",
        "iPod Simulator",
        "iPad",
        "iPhone",
        "iPod",
    }
)


@dataclass(frozen=True)
class DeviceEnvironment:
    """Snapshot of the host facts the detector is allowed to look at."""

    user_agent: str = ""
    platform: str = ""
    display_mode_standalone: bool = False
    navigator_standalone: bool = False
    touch_support: bool = False
    service_worker: bool = False
    push_manager: bool = False
    notification_api: bool = False


class NotificationPath(str, Enum):
    """Mutually exclusive ways a device can receive message alerts."""

    STANDARD = "standard"
    RELAY = "relay"
    UNSUPPORTED = "unsupported"


def is_platform_ios(env: DeviceEnvironment) -> bool:
    """Return True for iOS/iPadOS, including iPadOS reporting a desktop Mac agent."""

    if env.platform in IOS_PLATFORMS:
        return True
    return "Mac" in env.user_agent and env.touch_support


def is_installed_as_app(env: DeviceEnvironment) -> bool:
    return env.display_mode_standalone or env.navigator_standalone


def is_standard_push_supported(env: DeviceEnvironment) -> bool:
    return env.service_worker and env.push_manager


def notifications_available(env: DeviceEnvironment) -> bool:
    return env.notification_api


def select_notification_path(env: DeviceEnvironment) -> NotificationPath:
    """Pick the single delivery path the rest of the coordinator may use.

    Installed iOS web apps do not reliably receive standard Web Push, so the
    polling relay wins there even when the push capabilities are present.
    """

    if is_platform_ios(env) and is_installed_as_app(env):
        return NotificationPath.RELAY
    if is_standard_push_supported(env):
        return NotificationPath.STANDARD
    return NotificationPath.UNSUPPORTED


__all__ = [
    "DeviceEnvironment",
    "IOS_PLATFORMS",
    "NotificationPath",
    "is_installed_as_app",
    "is_platform_ios",
    "is_standard_push_supported",
    "notifications_available",
    "select_notification_path",
]
