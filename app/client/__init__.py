"""Device-side notification and presence coordinator."""

from app.client.api_client import ChatApiClient
from app.client.events import EventChannel, Visibility
from app.client.presence import PresenceDirectory, PresenceTracker
from app.client.push_manager import StandardPushManager
from app.client.relay import PollingRelayClient, RelayState
from app.client.session import ChatSession
from app.client.storage import JsonFileStorage, MemoryStorage

__all__ = [
    "ChatApiClient",
    "ChatSession",
    "EventChannel",
    "JsonFileStorage",
    "MemoryStorage",
    "PollingRelayClient",
    "PresenceDirectory",
    "PresenceTracker",
    "RelayState",
    "StandardPushManager",
    "Visibility",
]
