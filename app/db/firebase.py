"""Firebase Realtime Database adapter for the realtime store surface."""
from __future__ import annotations

import asyncio
import json
from typing import Any, List, Mapping, Optional, Tuple

import firebase_admin
from firebase_admin import credentials, db, exceptions as firebase_exceptions
from loguru import logger

from app.config import Settings, settings as default_settings
from app.db.realtime import ChangeHandler, Unsubscribe
from app.utils.exceptions import NotConfiguredError, StoreError

_APP_NAME = "chat-notify"


def initialize_firebase(config: Settings = default_settings) -> firebase_admin.App:
    """Initialize (or return) the Firebase Admin app bound to the realtime database."""

    try:
        return firebase_admin.get_app(_APP_NAME)
    except ValueError:
        pass

    if not config.FIREBASE_DATABASE_URL:
        raise NotConfiguredError("FIREBASE_DATABASE_URL is not set")
    if config.FIREBASE_CREDENTIALS_JSON:
        cred = credentials.Certificate(json.loads(config.FIREBASE_CREDENTIALS_JSON))
    elif config.FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(config.FIREBASE_CREDENTIALS_PATH)
    else:
        raise NotConfiguredError("Firebase credentials not configured")

    app = firebase_admin.initialize_app(
        cred, {"databaseURL": config.FIREBASE_DATABASE_URL}, name=_APP_NAME
    )
    logger.info("Firebase Admin SDK initialized", database=config.FIREBASE_DATABASE_URL)
    return app


class FirebaseRealtimeStore:
    """Realtime store backed by ``firebase_admin.db``.

    The Admin SDK is blocking, so each call runs in a worker thread. Listener
    callbacks arrive on the SDK's streaming thread and are handed back to the
    event loop that created the subscription.

    The Admin SDK has no server-side ``onDisconnect``. Writes registered with
    ``register_on_disconnect`` are applied only when :meth:`close` runs, which
    the application does on shutdown; a process that dies without shutting
    down leaves them unapplied.
    """

    def __init__(self, app: Optional[firebase_admin.App] = None) -> None:
        self._app = app or initialize_firebase()
        self._on_disconnect: List[Tuple[str, Any]] = []

    def _ref(self, path: str) -> db.Reference:
        return db.reference(f"/{path.strip('/')}", app=self._app)

    async def _call(self, action: str, path: str, func, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except (firebase_exceptions.FirebaseError, ValueError) as exc:
            logger.error("Realtime database call failed", action=action, path=path, error=str(exc))
            raise StoreError(f"{action} failed for {path}", {"error": str(exc)}) from exc

    async def read(self, path: str) -> Any | None:
        return await self._call("read", path, self._ref(path).get)

    async def write(self, path: str, value: Any) -> None:
        ref = self._ref(path)
        if value is None:
            await self._call("remove", path, ref.delete)
            return
        await self._call("write", path, ref.set, value)

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        await self._call("update", path, self._ref(path).update, dict(fields))

    async def remove(self, path: str) -> None:
        await self._call("remove", path, self._ref(path).delete)

    async def subscribe(self, path: str, on_change: ChangeHandler) -> Unsubscribe:
        loop = asyncio.get_running_loop()
        ref = self._ref(path)
        snapshot: dict[str, Any] = {}

        def deliver() -> None:
            try:
                on_change(snapshot.get("value"))
            except Exception as exc:
                logger.exception("Realtime listener failed", path=path, error=str(exc))

        def handle_event(event: db.Event) -> None:
            # The stream reports changes relative to ``path``; re-read the whole node.
            if event.path == "/":
                snapshot["value"] = event.data
            else:
                snapshot["value"] = ref.get()
            loop.call_soon_threadsafe(deliver)

        registration = await self._call("subscribe", path, ref.listen, handle_event)
        return registration.close

    async def register_on_disconnect(self, path: str, value: Any) -> None:
        self._on_disconnect.append((path, value))

    async def close(self) -> None:
        pending, self._on_disconnect = self._on_disconnect, []
        for path, value in pending:
            await self.write(path, value)


__all__ = ["FirebaseRealtimeStore", "initialize_firebase"]
