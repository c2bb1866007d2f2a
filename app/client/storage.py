"""Device-local key/value storage for the relay registration."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Protocol


class LocalStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]:  # pragma: no cover - interface definition
        ...

    def set_item(self, key: str, value: str) -> None:  # pragma: no cover - interface definition
        ...

    def remove_item(self, key: str) -> None:  # pragma: no cover - interface definition
        ...


class MemoryStorage:
    """Non-persistent storage for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """Storage persisted to a JSON file, surviving process restarts."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        return json.loads(self.path.read_text(encoding="utf-8") or "{}")

    def _dump(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(items, indent=2, sort_keys=True), encoding="utf-8")

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._dump(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._dump(items)


__all__ = ["JsonFileStorage", "LocalStorage", "MemoryStorage"]
