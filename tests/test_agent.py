"""Tests for the background delivery agent handlers."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest

from app.client.agent import VIBRATE_PATTERN, DeliveryAgent
from app.client.api_client import ChatApiClient
from tests.fakes import RecordingApi, make_subscription


class StubWindow:
    def __init__(self, url: str) -> None:
        self.url = url
        self.focused = False
        self.messages: List[Dict[str, Any]] = []

    async def focus(self) -> "StubWindow":
        self.focused = True
        return self

    def post_message(self, message: Dict[str, Any]) -> None:
        self.messages.append(message)


class StubScope:
    def __init__(self, windows: Optional[List[StubWindow]] = None) -> None:
        self.windows = windows or []
        self.shown: List[tuple] = []
        self.opened: List[str] = []
        self.subscribe_keys: List[Optional[bytes]] = []

    async def show_notification(self, title: str, options: Dict[str, Any]) -> None:
        self.shown.append((title, options))

    async def match_windows(self) -> List[StubWindow]:
        return self.windows

    async def open_window(self, url: str) -> StubWindow:
        self.opened.append(url)
        return StubWindow(url)

    async def subscribe(self, *, user_visible_only: bool, application_server_key: Optional[bytes]):
        self.subscribe_keys.append(application_server_key)
        return make_subscription("https://push.example.com/send/renewed")


def build_agent(push_settings, scope: StubScope, api: Optional[RecordingApi] = None, user_id="alice"):
    api = api or RecordingApi()
    client = ChatApiClient(client=api.client(), config=push_settings)
    return DeliveryAgent(scope, client, user_id=user_id, config=push_settings), api


@pytest.mark.asyncio
async def test_on_push_shows_server_payload(push_settings):
    scope = StubScope()
    agent, _ = build_agent(push_settings, scope)
    payload = {
        "title": "New message from Bob",
        "body": "hey",
        "icon": "/bob.png",
        "tag": "message",
        "data": {"url": "/chat", "chatId": "c1", "senderId": "bob"},
    }

    options = await agent.on_push(json.dumps(payload).encode())

    title, shown = scope.shown[0]
    assert title == "New message from Bob"
    assert shown is options
    assert shown["icon"] == "/bob.png"
    assert shown["data"] == {"url": "/chat", "chatId": "c1", "senderId": "bob"}
    assert shown["vibrate"] == VIBRATE_PATTERN
    assert shown["renotify"] is True


@pytest.mark.asyncio
async def test_on_push_falls_back_for_missing_or_broken_payload(push_settings):
    scope = StubScope()
    agent, _ = build_agent(push_settings, scope)

    await agent.on_push(None)
    await agent.on_push(b"not json")

    for title, options in scope.shown:
        assert title == "New Message"
        assert options["body"] == "You have a new message"
        assert options["icon"] == push_settings.DEFAULT_ICON
        assert options["tag"] == "message"


@pytest.mark.asyncio
async def test_on_push_accepts_top_level_routing_fields(push_settings):
    scope = StubScope()
    agent, _ = build_agent(push_settings, scope)

    options = await agent.on_push(json.dumps({"title": "Hi", "chatId": "c2", "senderId": "bob"}))

    assert options["data"]["chatId"] == "c2"
    assert options["data"]["senderId"] == "bob"
    assert options["data"]["url"] == push_settings.APP_BASE_URL


@pytest.mark.asyncio
async def test_click_focuses_matching_window_and_routes_to_chat(push_settings):
    other = StubWindow("/settings")
    chat = StubWindow("/chat")
    scope = StubScope([other, chat])
    agent, _ = build_agent(push_settings, scope)

    window = await agent.on_notification_click({"url": "/chat", "chatId": "c1", "senderId": "bob"})

    assert window is chat
    assert chat.focused and not other.focused
    assert chat.messages == [{"type": "OPEN_CHAT", "chatId": "c1", "senderId": "bob"}]
    assert scope.opened == []


@pytest.mark.asyncio
async def test_click_opens_window_when_none_matches(push_settings):
    scope = StubScope([StubWindow("/settings")])
    agent, _ = build_agent(push_settings, scope)

    await agent.on_notification_click({"url": "/chat", "chatId": "c1"})

    assert scope.opened == ["/chat"]


@pytest.mark.asyncio
async def test_close_action_does_nothing(push_settings):
    scope = StubScope([StubWindow("/chat")])
    agent, _ = build_agent(push_settings, scope)

    assert await agent.on_notification_click({"url": "/chat"}, action="close") is None
    assert scope.opened == []
    assert not scope.windows[0].focused


@pytest.mark.asyncio
async def test_subscription_change_resubscribes_and_reports(push_settings):
    scope = StubScope()
    agent, api = build_agent(push_settings, scope)

    subscription = await agent.on_subscription_change(b"\x04old-key")

    assert scope.subscribe_keys == [b"\x04old-key"]
    saved = [body for path, body in api.calls if path == "/api/save-subscription"]
    assert saved == [{"userId": "alice", "subscription": subscription.to_json()}]


@pytest.mark.asyncio
async def test_subscription_change_without_user_is_not_reported(push_settings):
    scope = StubScope()
    agent, api = build_agent(push_settings, scope, user_id=None)

    await agent.on_subscription_change(None)

    assert api.count("/api/save-subscription") == 0
