"""
Unit tests for the event-stream response body (routers.events.event_stream).
Drives the async generator directly instead of going through HTTP.
"""
import asyncio

import pytest
from app.api.v1.routers.events import event_stream
from app.core.sse import ConnectionRegistry, DeliveryResult, decode_event


pytestmark = pytest.mark.asyncio


async def test_first_frame_is_connected_and_registers():
    registry = ConnectionRegistry()
    stream = event_stream(registry, "u1", group_id="partner-9", ping_interval=5)

    first = await stream.__anext__()

    assert decode_event(first) == ("connected", {"connected": True})
    assert registry.is_connected("u1")
    assert registry.get("u1").group_id == "partner-9"
    await stream.aclose()


async def test_pushed_frames_are_relayed():
    registry = ConnectionRegistry()
    stream = event_stream(registry, "u1", ping_interval=5)
    await stream.__anext__()

    assert await registry.send_to("u1", "new-message", {"id": "m1"}) is DeliveryResult.DELIVERED
    frame = await asyncio.wait_for(stream.__anext__(), timeout=1)

    assert decode_event(frame) == ("new-message", {"id": "m1"})
    await stream.aclose()


async def test_ping_after_silence():
    registry = ConnectionRegistry()
    stream = event_stream(registry, "u1", ping_interval=0.01)
    await stream.__anext__()

    frame = await asyncio.wait_for(stream.__anext__(), timeout=1)

    assert frame == b"event: ping\ndata: {}\n\n"
    await stream.aclose()


async def test_closing_stream_unregisters():
    registry = ConnectionRegistry()
    stream = event_stream(registry, "u1", ping_interval=5)
    await stream.__anext__()
    assert registry.count() == 1

    await stream.aclose()

    assert not registry.is_connected("u1")
    assert await registry.send_to("u1", "new-message", {}) is DeliveryResult.NOT_CONNECTED


async def test_second_stream_replaces_and_ends_the_first():
    registry = ConnectionRegistry()
    first = event_stream(registry, "u1", ping_interval=5)
    await first.__anext__()
    old_sink = registry.get("u1").sink

    second = event_stream(registry, "u1", ping_interval=5)
    await second.__anext__()
    new_sink = registry.get("u1").sink

    assert new_sink is not old_sink
    assert old_sink.closed is True

    # The first stream finishes without removing the second registration
    with pytest.raises(StopAsyncIteration):
        await asyncio.wait_for(first.__anext__(), timeout=1)
    assert registry.get("u1").sink is new_sink

    await registry.send_to("u1", "new-message", {"id": "m2"})
    frame = await asyncio.wait_for(second.__anext__(), timeout=1)
    assert decode_event(frame)[1] == {"id": "m2"}
    await second.aclose()
