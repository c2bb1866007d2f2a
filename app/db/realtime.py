"""Realtime backend capability surface shared by the server and the device client."""
from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol

# Resolved to epoch milliseconds by the backend when the value is written.
SERVER_TIMESTAMP: dict[str, str] = {".sv": "timestamp"}

PRESENCE_ROOT = "presence"
USERS_ROOT = "users"
RELAY_INBOX_ROOT = "push_foo_notifications"

ChangeHandler = Callable[[Any], None]
Unsubscribe = Callable[[], None]


def child_path(*segments: Any) -> str:
    """Join path segments the way the backend addresses nodes."""

    return "/".join(str(segment).strip("/") for segment in segments if str(segment).strip("/"))


def user_path(user_id: str) -> str:
    return child_path(USERS_ROOT, user_id)


def presence_path(user_id: str) -> str:
    return child_path(PRESENCE_ROOT, user_id)


def relay_inbox_path(user_id: str, device_id: str, timestamp_ms: int) -> str:
    return child_path(RELAY_INBOX_ROOT, user_id, device_id, timestamp_ms)


def is_server_timestamp(value: Any) -> bool:
    return isinstance(value, Mapping) and dict(value) == SERVER_TIMESTAMP


class RealtimeStore(Protocol):
    """Operations consumed from the realtime database.

    ``write`` is a full overwrite, ``update`` merges the given children and
    deletes children set to ``None``. ``subscribe`` invokes the handler with the
    current value immediately and after every change at or below ``path``.
    ``register_on_disconnect`` asks the backend to write ``value`` at ``path``
    when this connection goes away, gracefully or not.
    ``close`` ends the connection and applies those pending writes.
    """

    async def read(self, path: str) -> Any | None:  # pragma: no cover - interface definition
        ...

    async def write(self, path: str, value: Any) -> None:  # pragma: no cover - interface definition
        ...

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:  # pragma: no cover - interface definition
        ...

    async def remove(self, path: str) -> None:  # pragma: no cover - interface definition
        ...

    async def subscribe(self, path: str, on_change: ChangeHandler) -> Unsubscribe:  # pragma: no cover - interface definition
        ...

    async def register_on_disconnect(self, path: str, value: Any) -> None:  # pragma: no cover - interface definition
        ...

    async def close(self) -> None:  # pragma: no cover - interface definition
        ...


__all__ = [
    "ChangeHandler",
    "PRESENCE_ROOT",
    "RELAY_INBOX_ROOT",
    "RealtimeStore",
    "SERVER_TIMESTAMP",
    "USERS_ROOT",
    "Unsubscribe",
    "child_path",
    "is_server_timestamp",
    "presence_path",
    "relay_inbox_path",
    "user_path",
]
