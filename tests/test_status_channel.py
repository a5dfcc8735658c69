import asyncio
import gc

import pytest

from services.status_channel import StatusChannel


@pytest.mark.asyncio
async def test_each_subscriber_gets_every_value():
    channel = StatusChannel()
    first = channel.subscribe()
    second = channel.subscribe()

    channel.publish("syncing")
    channel.publish("completed")
    channel.close()

    assert [v async for v in channel.stream(first)] == ["syncing", "completed"]
    assert [v async for v in channel.stream(second)] == ["syncing", "completed"]


@pytest.mark.asyncio
async def test_late_subscribers_do_not_see_earlier_values():
    channel = StatusChannel()
    channel.publish("syncing")
    late = channel.subscribe()
    channel.publish("idle")
    channel.close()

    assert [v async for v in channel.stream(late)] == ["idle"]


@pytest.mark.asyncio
async def test_stream_waits_for_values():
    channel = StatusChannel()
    queue = channel.subscribe()

    async def consume():
        return [v async for v in channel.stream(queue)]

    consumer = asyncio.ensure_future(consume())
    await asyncio.sleep(0)
    channel.publish(1)
    await asyncio.sleep(0)
    channel.publish(2)
    channel.close()

    assert await asyncio.wait_for(consumer, timeout=1) == [1, 2]
    assert channel.subscriber_count == 0


def test_listeners_are_called_and_can_be_cancelled():
    channel = StatusChannel()
    seen = []
    cancel = channel.listen(seen.append)

    channel.publish("a")
    cancel()
    channel.publish("b")

    assert seen == ["a"]


def test_crashing_listener_does_not_stop_others():
    channel = StatusChannel()
    seen = []

    def broken(_):
        raise RuntimeError("observer bug")

    channel.listen(broken)
    channel.listen(seen.append)
    channel.publish("x")

    assert seen == ["x"]


@pytest.mark.asyncio
async def test_publish_after_close_is_ignored():
    channel = StatusChannel()
    channel.close()
    channel.publish("ignored")

    assert channel.closed
    assert [v async for v in channel.stream()] == []


@pytest.mark.asyncio
async def test_streams_that_are_never_iterated_do_not_stay_subscribed():
    channel = StatusChannel()
    kept = channel.stream(channel.subscribe())
    for _ in range(100):
        channel.stream(channel.subscribe())
    gc.collect()

    assert channel.subscriber_count == 1

    channel.publish("syncing")
    channel.close()
    assert [v async for v in kept] == ["syncing"]
    assert channel.subscriber_count == 0
