"""Pytest fixtures for API and coordinator tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from pywebpush import WebPushException

from app.api import deps
from app.config import Settings
from app.db.memory import InMemoryRealtimeStore
from app.main import create_app
from app.services.web_push import WebPushService
from app.utils.cache import cache_backend
from tests.fakes import TEST_PUBLIC_KEY, TickClock


class StubWebPushSender:
    """Stands in for ``pywebpush.webpush``; optionally fails with a push service status."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_status: int | None = None
        self.raise_error: Exception | None = None

    def __call__(self, **kwargs: Any) -> None:
        self.calls.append(kwargs)
        if self.raise_error is not None:
            raise self.raise_error
        if self.fail_status is not None:
            response = SimpleNamespace(status_code=self.fail_status, text="rejected")
            raise WebPushException("Push failed", response=response)


@pytest.fixture()
def push_settings() -> Settings:
    return Settings(
        VAPID_PUBLIC_KEY=TEST_PUBLIC_KEY,
        VAPID_PRIVATE_KEY="test-private-key",
        VAPID_SUBJECT="mailto:test@example.com",
        RELAY_POLL_INTERVAL_SECONDS=0.01,
        PRESENCE_HEARTBEAT_SECONDS=0.01,
    )


@pytest.fixture()
def store() -> InMemoryRealtimeStore:
    return InMemoryRealtimeStore(clock=TickClock())


@pytest.fixture()
def webpush_sender() -> StubWebPushSender:
    return StubWebPushSender()


@pytest.fixture(autouse=True)
def clear_cache() -> Generator[None, None, None]:
    cache_backend.clear()
    try:
        yield
    finally:
        cache_backend.clear()


def _build_app(store: InMemoryRealtimeStore, web_push: WebPushService):
    app = create_app()
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_web_push_service] = lambda: web_push
    return app


@pytest.fixture()
def client(
    store: InMemoryRealtimeStore, push_settings: Settings, webpush_sender: StubWebPushSender
) -> Generator[TestClient, None, None]:
    app = _build_app(store, WebPushService(push_settings, sender=webpush_sender))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def unconfigured_client(store: InMemoryRealtimeStore) -> Generator[TestClient, None, None]:
    config = Settings(VAPID_PUBLIC_KEY=None, VAPID_PRIVATE_KEY=None)
    app = _build_app(store, WebPushService(config, sender=StubWebPushSender()))
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture()
async def async_client(
    store: InMemoryRealtimeStore, push_settings: Settings, webpush_sender: StubWebPushSender
) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = _build_app(store, WebPushService(push_settings, sender=webpush_sender))
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client
