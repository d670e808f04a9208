"""Tests for fire-and-forget notification delivery."""

import asyncio
import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from fleetbuild.domain.build_tree import StatusChangeEvent
from fleetbuild.domain.completion import COMPLETED, PENDING
from fleetbuild.domain.notifications import NotificationPolicy
from fleetbuild.services.event_bus import FLEET_CHANNEL, EventType
from fleetbuild.services.notification_dispatcher import NotificationDispatcher, build_envelopes

pytestmark = pytest.mark.unit


def _event(previous=20.0, overall=30.0, serial="S1"):
    return StatusChangeEvent(
        drone_serial=serial,
        model="G1-M",
        item_id="item-1",
        item_name="Busbar",
        system_name="Power",
        assembly_name="Power Distribution",
        old_status=PENDING,
        new_status=COMPLETED,
        overall_completion=overall,
        previous_completion=previous,
        system_completion=100.0,
        timestamp=datetime(2025, 3, 1, tzinfo=UTC),
    )


async def _collect(pubsub, limit=20):
    received = []
    while len(received) < limit:
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=0.2)
        if message is None:
            break
        received.append(json.loads(message["data"]))
    return received


def test_envelopes_in_publish_order():
    envelopes = build_envelopes(_event(), NotificationPolicy(item_completions=True, system_completions=True))

    assert [e["type"] for e in envelopes] == [
        EventType.ITEM_STATUS_CHANGED,
        EventType.DRONE_PROGRESS_UPDATE,
        EventType.ITEM_COMPLETED,
        EventType.SYSTEM_COMPLETED,
        EventType.MILESTONE_REACHED,
    ]
    assert envelopes[0]["old_status"] == PENDING
    assert envelopes[1]["overall_completion"] == 30.0


async def test_drain_publishes_to_fleet_channel(redis, dispatcher):
    pubsub = redis.pubsub()
    await pubsub.subscribe(FLEET_CHANNEL)
    await pubsub.get_message(timeout=1.0)

    assert dispatcher.publish(_event()) is True
    assert await dispatcher.drain() == 1

    types = [e["type"] for e in await _collect(pubsub)]
    assert types == [
        EventType.ITEM_STATUS_CHANGED,
        EventType.DRONE_PROGRESS_UPDATE,
        EventType.ITEM_COMPLETED,
        EventType.SYSTEM_COMPLETED,
        EventType.MILESTONE_REACHED,
    ]
    await pubsub.aclose()


async def test_full_queue_drops_without_raising(redis):
    dispatcher = NotificationDispatcher(redis_client=redis, policy=NotificationPolicy(), queue_size=1)

    assert dispatcher.publish(_event()) is True
    assert dispatcher.publish(_event()) is False
    assert dispatcher.queue.qsize() == 1


async def test_delivery_failure_is_swallowed():
    client = AsyncMock()
    client.publish.side_effect = RedisConnectionError("down")
    dispatcher = NotificationDispatcher(
        redis_client=client, policy=NotificationPolicy(), max_attempts=2, retry_wait=0
    )

    delivered = await dispatcher.deliver(_event())

    assert delivered == 0
    # item_status_changed, drone_progress_update, milestone_reached; two attempts each
    assert client.publish.await_count == 6


async def test_consumer_task_delivers(redis, dispatcher):
    pubsub = redis.pubsub()
    await pubsub.subscribe("drone:S7:events")
    await pubsub.get_message(timeout=1.0)

    dispatcher.start()
    dispatcher.publish(_event(serial="S7"))
    await asyncio.wait_for(dispatcher.queue.join(), timeout=2.0)
    await dispatcher.stop()

    received = await _collect(pubsub)
    assert received[0]["type"] == EventType.ITEM_STATUS_CHANGED
    assert all(e["drone_serial"] == "S7" for e in received)
    await pubsub.aclose()


async def test_stop_flushes_pending(redis, dispatcher):
    dispatcher.start()
    await dispatcher.stop()

    dispatcher.publish(_event())
    dispatcher.start()
    await dispatcher.stop()

    assert dispatcher.queue.empty()


async def test_stop_waits_for_in_flight_delivery(redis, dispatcher, monkeypatch):
    delivered = []

    async def slow_deliver(event):
        await asyncio.sleep(0.05)
        delivered.append(event.drone_serial)
        return 1

    monkeypatch.setattr(dispatcher, "deliver", slow_deliver)
    dispatcher.start()
    dispatcher.publish(_event(serial="S1"))
    dispatcher.publish(_event(serial="S2"))
    await asyncio.sleep(0.01)  # consumer has dequeued S1 and is mid-delivery

    await dispatcher.stop()

    assert delivered == ["S1", "S2"]
    assert dispatcher.queue.empty()


async def test_stop_timeout_drains_inline(redis, dispatcher, monkeypatch):
    delivered = []

    async def stuck_deliver(event):
        if not delivered:
            delivered.append("stuck")
            await asyncio.sleep(10)
        delivered.append(event.drone_serial)
        return 1

    monkeypatch.setattr(dispatcher, "deliver", stuck_deliver)
    dispatcher.start()
    dispatcher.publish(_event(serial="S1"))
    dispatcher.publish(_event(serial="S2"))
    await asyncio.sleep(0.01)

    await dispatcher.stop(timeout=0.05)

    # S1 was cancelled mid-delivery; S2 was still queued and is flushed inline
    assert delivered == ["stuck", "S2"]
    assert dispatcher.queue.empty()
