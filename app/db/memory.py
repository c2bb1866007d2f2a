"""In-process realtime store used for local development and tests."""
from __future__ import annotations

import copy
import itertools
import time
from typing import Any, Callable, Dict, List, Mapping, Tuple

from loguru import logger

from app.db.realtime import ChangeHandler, Unsubscribe, is_server_timestamp


def _segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def _overlaps(left: List[str], right: List[str]) -> bool:
    shortest = min(len(left), len(right))
    return left[:shortest] == right[:shortest]


def _now_ms() -> int:
    return int(time.time() * 1000)


class InMemoryRealtimeStore:
    """Dictionary-backed tree implementing :class:`app.db.realtime.RealtimeStore`.

    ``disconnect`` simulates the backend noticing that the client connection
    dropped and applies every write registered through ``register_on_disconnect``.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self._clock = clock
        self._root: Dict[str, Any] = {}
        self._last_timestamp = 0
        self._ids = itertools.count(1)
        self._listeners: Dict[int, Tuple[List[str], ChangeHandler]] = {}
        self._on_disconnect: List[Tuple[str, Any]] = []
        self.connected = True

    # -- helpers -----------------------------------------------------------------

    def _timestamp(self) -> int:
        self._last_timestamp = max(self._clock(), self._last_timestamp)
        return self._last_timestamp

    def _resolve(self, value: Any) -> Any:
        if is_server_timestamp(value):
            return self._timestamp()
        if isinstance(value, Mapping):
            resolved = {str(key): self._resolve(item) for key, item in value.items() if item is not None}
            return resolved or None
        if isinstance(value, (list, tuple)):
            return [self._resolve(item) for item in value]
        return value

    def _get(self, segments: List[str]) -> Any | None:
        node: Any = self._root
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def _set(self, segments: List[str], value: Any) -> None:
        if not segments:
            self._root = value if isinstance(value, dict) else {}
            return
        if value is None:
            self._delete(segments)
            return
        node = self._root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value

    def _delete(self, segments: List[str]) -> None:
        trail = [self._root]
        node: Any = self._root
        for segment in segments[:-1]:
            if not isinstance(node, dict) or segment not in node:
                return
            node = node[segment]
            trail.append(node)
        if isinstance(node, dict):
            node.pop(segments[-1], None)
        # prune parents left empty
        for depth in range(len(trail) - 1, 0, -1):
            if trail[depth]:
                break
            trail[depth - 1].pop(segments[depth - 1], None)

    def _notify(self, segments: List[str]) -> None:
        for listener_path, handler in list(self._listeners.values()):
            if not _overlaps(listener_path, segments):
                continue
            try:
                handler(copy.deepcopy(self._get(listener_path)))
            except Exception as exc:
                logger.exception("Realtime listener failed", path="/".join(listener_path), error=str(exc))

    # -- RealtimeStore -------------------------------------------------------------

    async def read(self, path: str) -> Any | None:
        return copy.deepcopy(self._get(_segments(path)))

    async def write(self, path: str, value: Any) -> None:
        segments = _segments(path)
        self._set(segments, self._resolve(value))
        self._notify(segments)

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        base = _segments(path)
        for key, value in fields.items():
            self._set(base + _segments(key), self._resolve(value))
        self._notify(base)

    async def remove(self, path: str) -> None:
        segments = _segments(path)
        self._set(segments, None)
        self._notify(segments)

    async def subscribe(self, path: str, on_change: ChangeHandler) -> Unsubscribe:
        listener_id = next(self._ids)
        segments = _segments(path)
        self._listeners[listener_id] = (segments, on_change)
        on_change(copy.deepcopy(self._get(segments)))

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    async def register_on_disconnect(self, path: str, value: Any) -> None:
        self._on_disconnect.append((path, value))

    # -- connection simulation -----------------------------------------------------

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def disconnect(self) -> None:
        """Apply the writes queued for connection loss, as the server would."""

        pending, self._on_disconnect = self._on_disconnect, []
        self.connected = False
        for path, value in pending:
            await self.write(path, value)

    def reconnect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        if self.connected:
            await self.disconnect()


__all__ = ["InMemoryRealtimeStore"]
