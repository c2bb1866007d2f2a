"""Shared API dependencies."""
from __future__ import annotations

from fastapi import Depends
from loguru import logger

from app.config import settings
from app.db.memory import InMemoryRealtimeStore
from app.db.realtime import RealtimeStore
from app.services.notification_service import NotificationService
from app.services.relay_inbox import RelayInboxService
from app.services.web_push import WebPushService

_store_singleton: RealtimeStore | None = None


def build_store() -> RealtimeStore:
    """Connect to Firebase when configured, otherwise fall back to an in-process tree."""

    if settings.FIREBASE_DATABASE_URL:
        from app.db.firebase import FirebaseRealtimeStore

        return FirebaseRealtimeStore()
    logger.warning("FIREBASE_DATABASE_URL not set, using in-memory realtime store")
    return InMemoryRealtimeStore()


def get_store() -> RealtimeStore:
    """Return the process-wide realtime store."""

    global _store_singleton
    if _store_singleton is None:
        _store_singleton = build_store()
    return _store_singleton


async def close_store() -> None:
    """Close the process-wide store so its pending on-disconnect writes are applied."""

    global _store_singleton
    store, _store_singleton = _store_singleton, None
    if store is not None:
        await store.close()
        logger.info("Realtime store closed")


def get_web_push_service() -> WebPushService:
    return WebPushService(settings)


def get_notification_service(
    store: RealtimeStore = Depends(get_store),
    web_push: WebPushService = Depends(get_web_push_service),
) -> NotificationService:
    """Assemble the notification service with request-scoped dependencies."""

    return NotificationService(store, web_push, config=settings)


def get_relay_inbox(store: RealtimeStore = Depends(get_store)) -> RelayInboxService:
    return RelayInboxService(store)
