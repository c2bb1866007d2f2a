"""Server-side inbox for notifications pushed by the relay webhook."""
from __future__ import annotations

import time
from typing import Any, Callable

from loguru import logger

from app.db.realtime import RealtimeStore, relay_inbox_path


def _now_ms() -> int:
    return int(time.time() * 1000)


class RelayInboxService:
    """Queue relay webhook notifications under the target user and device."""

    def __init__(self, store: RealtimeStore, clock: Callable[[], int] = _now_ms) -> None:
        self.store = store
        self._clock = clock

    async def store_notification(self, user_id: str, device_id: str, notification: dict[str, Any]) -> str:
        path = relay_inbox_path(user_id, device_id, self._clock())
        await self.store.write(path, notification)
        logger.info("Relay notification queued", user_id=user_id, device_id=device_id, path=path)
        return path


__all__ = ["RelayInboxService"]
