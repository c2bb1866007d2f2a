"""Listener registration returning explicit unsubscribe callables."""
from __future__ import annotations

import itertools
from typing import Callable, Dict, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class EventChannel(Generic[T]):
    """Fan a value out to handlers registered with :meth:`subscribe`."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._ids = itertools.count(1)
        self._handlers: Dict[int, Callable[[T], None]] = {}

    def subscribe(self, handler: Callable[[T], None]) -> Callable[[], None]:
        handler_id = next(self._ids)
        self._handlers[handler_id] = handler

        def unsubscribe() -> None:
            self._handlers.pop(handler_id, None)

        return unsubscribe

    def emit(self, value: T) -> None:
        for handler in list(self._handlers.values()):
            try:
                handler(value)
            except Exception as exc:
                logger.exception("Event handler failed", channel=self.name, error=str(exc))

    def __len__(self) -> int:
        return len(self._handlers)


class Visibility:
    """Foreground state of the app plus a channel of visibility changes."""

    def __init__(self, visible: bool = True) -> None:
        self.visible = visible
        self.changes: EventChannel[bool] = EventChannel("visibilitychange")

    def set_visible(self, visible: bool) -> None:
        if visible == self.visible:
            return
        self.visible = visible
        self.changes.emit(visible)

    def subscribe(self, handler: Callable[[bool], None]) -> Callable[[], None]:
        return self.changes.subscribe(handler)


__all__ = ["EventChannel", "Visibility"]
