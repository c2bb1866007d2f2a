"""Tests for the in-process realtime store."""
from __future__ import annotations

import pytest

from app.db.memory import InMemoryRealtimeStore
from app.db.realtime import SERVER_TIMESTAMP


@pytest.mark.asyncio
async def test_write_update_and_remove(store: InMemoryRealtimeStore):
    await store.write("users/u1", {"username": "ana", "photoURL": "/a.png"})
    await store.update("users/u1", {"pushSubscription": {"endpoint": "e"}})

    assert await store.read("users/u1/username") == "ana"
    assert await store.read("users/u1/pushSubscription") == {"endpoint": "e"}

    await store.update("users/u1", {"pushSubscription": None})
    assert await store.read("users/u1/pushSubscription") is None
    assert await store.read("users/u1/username") == "ana"

    await store.remove("users/u1")
    assert await store.read("users/u1") is None
    assert await store.read("users") is None


@pytest.mark.asyncio
async def test_server_timestamp_never_moves_backwards():
    readings = iter([5_000, 4_000, 6_000])
    store = InMemoryRealtimeStore(clock=lambda: next(readings))

    stamps = []
    for _ in range(3):
        await store.write("presence/u1", {"online": True, "lastSeen": SERVER_TIMESTAMP})
        stamps.append((await store.read("presence/u1"))["lastSeen"])

    assert stamps == [5_000, 5_000, 6_000]


@pytest.mark.asyncio
async def test_subscribe_receives_current_value_and_changes(store: InMemoryRealtimeStore):
    await store.write("presence/u1", {"online": True})
    seen = []

    unsubscribe = await store.subscribe("presence", seen.append)
    await store.write("presence/u2", {"online": False})
    await store.write("users/u3", {"username": "x"})
    unsubscribe()
    await store.write("presence/u1", {"online": False})

    assert seen == [
        {"u1": {"online": True}},
        {"u1": {"online": True}, "u2": {"online": False}},
    ]
    assert store.listener_count == 0


@pytest.mark.asyncio
async def test_disconnect_applies_registered_writes(store: InMemoryRealtimeStore):
    await store.register_on_disconnect("presence/u1", {"online": False})
    await store.write("presence/u1", {"online": True})

    await store.disconnect()

    assert await store.read("presence/u1") == {"online": False}
    assert store.connected is False

    store.reconnect()
    await store.write("presence/u1", {"online": True})
    await store.disconnect()

    assert await store.read("presence/u1") == {"online": True}


@pytest.mark.asyncio
async def test_close_applies_disconnect_writes_once(store: InMemoryRealtimeStore):
    await store.register_on_disconnect("presence/u1", {"online": False})
    await store.write("presence/u1", {"online": True})

    await store.close()
    await store.write("presence/u1", {"online": True})
    await store.close()

    assert store.connected is False
    assert await store.read("presence/u1") == {"online": True}
