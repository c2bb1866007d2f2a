"""Tests for the per-user chat session, message notifier and status report."""
from __future__ import annotations

import asyncio

import pytest

from app.client.api_client import ChatApiClient
from app.client.events import Visibility
from app.client.push_manager import StandardPushManager
from app.client.relay import PollingRelayClient
from app.client.session import ChatSession
from app.client.status import collect_status
from app.client.storage import MemoryStorage
from app.core.platform import DeviceEnvironment, NotificationPath
from app.db.memory import InMemoryRealtimeStore
from app.utils.exceptions import StoreError
from tests.fakes import FakeRelay, RecordingApi, StubDisplay, StubPushPlatform, make_subscription

IOS_INSTALLED = DeviceEnvironment(
    platform="iPhone",
    display_mode_standalone=True,
    service_worker=True,
    push_manager=True,
    notification_api=True,
)
DESKTOP = DeviceEnvironment(
    user_agent="Mozilla/5.0 (Macintosh; Intel Mac OS X 14_4) Firefox/125.0",
    platform="MacIntel",
    service_worker=True,
    push_manager=True,
    notification_api=True,
)
LEGACY = DeviceEnvironment(platform="Linux armv7l")


class Harness:
    def __init__(self, env, store, push_settings, relay=None, api=None, platform=None):
        self.relay_server = relay or FakeRelay()
        self.api_server = api or RecordingApi()
        self.platform = platform or StubPushPlatform()
        self.visibility = Visibility()
        self.display = StubDisplay()
        self.api = ChatApiClient(client=self.api_server.client(), config=push_settings)
        self.push_manager = StandardPushManager(env, self.platform, self.api, push_settings)
        self.relay = PollingRelayClient(
            env,
            MemoryStorage(),
            self.display,
            self.visibility,
            client=self.relay_server.client(),
            config=push_settings,
        )
        self.session = ChatSession(
            "alice", env, store, self.api, self.push_manager, self.relay, self.visibility, push_settings
        )

    async def aclose(self):
        await self.api.aclose()
        await self.relay.aclose()


@pytest.mark.asyncio
async def test_relay_session_never_touches_standard_push(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(IOS_INSTALLED, store, push_settings)

    async with harness.session as session:
        assert session.path is NotificationPath.RELAY
        await asyncio.sleep(0.03)

    assert harness.platform.register_calls == 0
    assert harness.platform.agent.subscribe_calls == []
    assert harness.api_server.count("/api/save-subscription") == 0
    assert [reg["userId"] for reg in harness.relay_server.registrations] == ["alice"]
    assert harness.relay_server.polls
    await harness.aclose()


@pytest.mark.asyncio
async def test_relay_notification_with_chat_id_routes_to_chat(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(IOS_INSTALLED, store, push_settings)
    routed = []
    harness.session.window_messages.subscribe(routed.append)
    harness.relay_server.queue("alice", "New message from Bob", "hey", {"chatId": "c9", "senderId": "bob"})
    harness.relay_server.queue("alice", "System", "no chat attached")

    async with harness.session:
        await asyncio.sleep(0.05)

    assert routed == [{"type": "OPEN_CHAT", "chatId": "c9", "senderId": "bob"}]
    assert harness.relay_server.queues["alice"] == []
    await harness.aclose()


@pytest.mark.asyncio
async def test_relay_session_message_goes_through_relay(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(IOS_INSTALLED, store, push_settings)

    async with harness.session as session:
        assert await session.message_sent(recipient_id="bob", chat_id="c1", text="hi", sender_name="Alice")

    queued = harness.relay_server.queues["bob"][0]
    assert queued["title"] == "New message from Alice"
    assert queued["data"] == {"chatId": "c1", "senderId": "alice"}
    assert harness.api_server.count("/api/push-notification") == 0
    await harness.aclose()


@pytest.mark.asyncio
async def test_standard_session_auto_subscribes(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(DESKTOP, store, push_settings)

    async with harness.session as session:
        assert session.path is NotificationPath.STANDARD

    assert len(harness.platform.agent.subscribe_calls) == 1
    assert harness.api_server.count("/api/save-subscription") == 1
    assert harness.relay_server.registrations == []
    await harness.aclose()


@pytest.mark.asyncio
async def test_expired_recipient_subscription_is_deleted_once(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(DESKTOP, store, push_settings, api=RecordingApi(push_status_code=410))
    await store.update("users/bob", {"pushSubscription": make_subscription().to_json()})

    async with harness.session as session:
        delivered = await session.message_sent(
            recipient_id="bob", chat_id="c1", text="hi", sender_name="Alice"
        )

    assert delivered is False
    assert harness.api_server.count("/api/push-notification") == 1
    assert harness.api_server.count("/api/delete-subscription") == 1
    deleted = [body for path, body in harness.api_server.calls if path == "/api/delete-subscription"]
    assert deleted == [{"userId": "bob"}]
    await harness.aclose()


@pytest.mark.asyncio
async def test_push_failure_does_not_delete_subscription(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(DESKTOP, store, push_settings, api=RecordingApi(push_status_code=500))
    await store.update("users/bob", {"pushSubscription": make_subscription().to_json()})

    async with harness.session as session:
        assert await session.attachment_sent(
            recipient_id="bob", chat_id="c1", sender_name="Alice", is_image=True
        ) is False

    sent = [body for path, body in harness.api_server.calls if path == "/api/push-notification"]
    assert sent[0]["message"] == "Sent you an image"
    assert sent[0]["userId"] == "bob"
    assert harness.api_server.count("/api/delete-subscription") == 0
    await harness.aclose()


@pytest.mark.asyncio
async def test_recipient_without_subscription_is_skipped(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(DESKTOP, store, push_settings)

    async with harness.session as session:
        assert await session.message_sent(recipient_id="carol", chat_id="c2", text="hi", sender_name="Alice") is False

    assert harness.api_server.count("/api/push-notification") == 0
    await harness.aclose()


@pytest.mark.asyncio
async def test_close_releases_every_timer_and_listener(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(IOS_INSTALLED, store, push_settings)
    session = harness.session

    await session.start()
    poll_handle = session._poll_handle
    heartbeat = session.presence._heartbeat
    assert store.listener_count == 1
    assert (await store.read("presence/alice"))["online"] is True

    await session.close()
    await asyncio.sleep(0)

    assert poll_handle.done()
    assert heartbeat.cancelled()
    assert store.listener_count == 0
    assert len(harness.visibility.changes) == 0
    assert (await store.read("presence/alice"))["online"] is False

    polls = len(harness.relay_server.polls)
    await asyncio.sleep(0.03)
    assert len(harness.relay_server.polls) == polls
    await session.close()
    await harness.aclose()


@pytest.mark.asyncio
async def test_unsupported_device_only_tracks_presence(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(LEGACY, store, push_settings)

    async with harness.session as session:
        assert session.path is NotificationPath.UNSUPPORTED
        assert session.directory.is_online("alice") is True

    assert harness.platform.register_calls == 0
    assert harness.relay_server.registrations == []
    await harness.aclose()


@pytest.mark.asyncio
async def test_collect_status_reports_subscription(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(DESKTOP, store, push_settings)
    await harness.push_manager.enable("alice")

    status = await collect_status(DESKTOP, harness.push_manager, harness.relay)

    assert status.path == "standard"
    assert status.ios is False
    assert status.server_configured is True
    assert status.subscribed is True
    assert status.relay_registered is False
    assert status.can_send_test is True
    assert status.as_dict()["permission"] == "granted"
    await harness.aclose()


@pytest.mark.asyncio
async def test_collect_status_on_relay_device(store: InMemoryRealtimeStore, push_settings):
    harness = Harness(IOS_INSTALLED, store, push_settings, api=RecordingApi(configured=False))
    await harness.relay.register("alice")

    status = await collect_status(IOS_INSTALLED, harness.push_manager, harness.relay)

    assert status.path == "relay"
    assert status.ios is True
    assert status.installed is True
    assert status.server_configured is False
    assert status.subscribed is False
    assert status.relay_registered is True
    assert status.can_send_test is False
    await harness.aclose()


class FailingSubscribeStore(InMemoryRealtimeStore):
    async def subscribe(self, path, on_change):
        raise StoreError("Realtime store listen failed", {"path": path})


@pytest.mark.asyncio
async def test_failed_start_releases_presence(push_settings):
    store = FailingSubscribeStore()
    harness = Harness(IOS_INSTALLED, store, push_settings)

    with pytest.raises(StoreError):
        async with harness.session:
            pass

    await asyncio.sleep(0.03)
    assert harness.session.started is False
    assert harness.session.presence._heartbeat is None
    assert (await store.read("presence/alice"))["online"] is False
    assert len(harness.visibility.changes) == 0
    assert harness.relay_server.polls == []
    await harness.aclose()
