"""Presence tracking: one online/last-seen record per signed-in user."""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

from loguru import logger
from pydantic import ValidationError

from app.client.events import Visibility
from app.config import Settings, settings as default_settings
from app.db.realtime import PRESENCE_ROOT, SERVER_TIMESTAMP, RealtimeStore, presence_path
from app.schemas.presence import PresenceRecord
from app.utils.exceptions import StoreError


class PresenceState(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"


def presence_value(online: bool) -> dict[str, Any]:
    return {"online": online, "lastSeen": SERVER_TIMESTAMP}


class PresenceTracker:
    """Keep ``presence/{user_id}`` current for the lifetime of a session.

    The offline on-disconnect write is registered before the first online
    write, so a connection lost at any point after ``start`` ends offline.
    """

    def __init__(
        self,
        store: RealtimeStore,
        user_id: str,
        visibility: Visibility,
        config: Settings = default_settings,
    ) -> None:
        self.store = store
        self.user_id = user_id
        self.visibility = visibility
        self.heartbeat_interval = config.PRESENCE_HEARTBEAT_SECONDS
        self.path = presence_path(user_id)
        self.state = PresenceState.INACTIVE
        self._heartbeat: Optional[asyncio.Task] = None
        self._unsubscribe_visibility: Optional[Callable[[], None]] = None
        self._pending: Set[asyncio.Task] = set()

    async def start(self) -> bool:
        if self.state is PresenceState.ACTIVE:
            return True
        try:
            await self.store.register_on_disconnect(self.path, presence_value(False))
            await self.store.write(self.path, presence_value(True))
        except StoreError as exc:
            logger.error("Error setting up presence", user_id=self.user_id, error=exc.message)
            return False

        self.state = PresenceState.ACTIVE
        self._heartbeat = asyncio.create_task(self._heartbeat_loop(), name=f"presence:{self.user_id}")
        self._unsubscribe_visibility = self.visibility.subscribe(self._on_visibility_change)
        logger.info("Online presence setup successfully", user_id=self.user_id)
        return True

    async def mark_online(self) -> None:
        """Refresh the online flag and last-seen timestamp while the tracker is active."""

        if self.state is not PresenceState.ACTIVE:
            return
        try:
            await self.store.write(self.path, presence_value(True))
        except StoreError as exc:
            logger.error("Error updating presence", user_id=self.user_id, error=exc.message)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            await self.mark_online()

    def _on_visibility_change(self, visible: bool) -> None:
        if not visible or self.state is not PresenceState.ACTIVE:
            return
        task = asyncio.get_running_loop().create_task(self.mark_online())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def stop(self) -> None:
        if self.state is not PresenceState.ACTIVE:
            return
        self.state = PresenceState.INACTIVE
        if self._unsubscribe_visibility is not None:
            self._unsubscribe_visibility()
            self._unsubscribe_visibility = None

        # In-flight online refreshes finish or die before the offline write.
        tasks = list(self._pending)
        self._pending = set()
        if self._heartbeat is not None:
            tasks.append(self._heartbeat)
            self._heartbeat = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        try:
            await self.store.write(self.path, presence_value(False))
        except StoreError as exc:
            # The on-disconnect write registered at start covers this.
            logger.debug("Offline presence write failed", user_id=self.user_id, error=exc.message)


class PresenceDirectory:
    """Cached ``user_id -> online`` view fed by a live subscription to ``presence``.

    Derivative state only; the stored records stay authoritative.
    """

    def __init__(self, store: RealtimeStore) -> None:
        self.store = store
        self._records: Dict[str, PresenceRecord] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = await self.store.subscribe(PRESENCE_ROOT, self._apply)

    def _apply(self, snapshot: Any) -> None:
        records: Dict[str, PresenceRecord] = {}
        for user_id, raw in (snapshot or {}).items():
            try:
                records[user_id] = PresenceRecord.model_validate(raw or {})
            except ValidationError:
                logger.warning("Ignoring malformed presence record", user_id=user_id)
        self._records = records

    def is_online(self, user_id: str) -> bool:
        record = self._records.get(user_id)
        return bool(record and record.online)

    def last_seen(self, user_id: str) -> Optional[int]:
        record = self._records.get(user_id)
        return record.last_seen if record else None

    @property
    def online_users(self) -> Dict[str, bool]:
        return {user_id: record.online for user_id, record in self._records.items()}

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


__all__ = ["PresenceDirectory", "PresenceState", "PresenceTracker", "presence_value"]
