"""Real-time event routes: SSE streams over Redis Pub/Sub and alert acknowledgement."""

import json
import time
from collections.abc import AsyncIterator
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from fleetbuild.core.config import get_settings
from fleetbuild.db.redis import get_redis
from fleetbuild.services.event_bus import FLEET_CHANNEL, EventPublisher, EventType, drone_channel

router = APIRouter()

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def event_stream(
    request: Request,
    redis,
    channel: str,
    heartbeat_interval: float,
    poll_timeout: float = 1.0,
) -> AsyncIterator[str]:
    """Relay a Pub/Sub channel as SSE frames until the client disconnects.

    Emits a connected frame once subscribed and a heartbeat frame whenever
    the channel has been quiet for heartbeat_interval seconds.
    """
    pubsub = redis.pubsub()
    await pubsub.subscribe(channel)
    last_heartbeat = time.monotonic()

    try:
        yield f"event: connected\ndata: {json.dumps({'channel': channel})}\n\n"

        while True:
            if await request.is_disconnected():
                return

            now = time.monotonic()
            if now - last_heartbeat >= heartbeat_interval:
                yield f"event: heartbeat\ndata: {json.dumps({'timestamp': datetime.now(UTC).isoformat()})}\n\n"
                last_heartbeat = now

            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=poll_timeout)
            if message and message["type"] == "message":
                yield f"data: {message['data']}\n\n"
                last_heartbeat = time.monotonic()  # Reset heartbeat on data
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()


@router.get("/events/stream")
async def stream_fleet_events(request: Request, redis=Depends(get_redis)):
    """Stream every fleet event (transitions, notifications, simulated telemetry) via SSE."""
    return StreamingResponse(
        event_stream(request, redis, FLEET_CHANNEL, get_settings().events_heartbeat_interval),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


@router.get("/drones/{serial}/events/stream")
async def stream_drone_events(serial: str, request: Request, redis=Depends(get_redis)):
    """Stream events for one drone via SSE."""
    return StreamingResponse(
        event_stream(request, redis, drone_channel(serial), get_settings().events_heartbeat_interval),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


@router.post("/alerts/{alert_id}/acknowledge", status_code=202)
async def acknowledge_alert(alert_id: str, redis=Depends(get_redis)):
    """Broadcast that an alert was acknowledged so every client can clear it."""
    event = {
        "type": EventType.ALERT_ACKNOWLEDGED,
        "alert_id": alert_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    await EventPublisher(redis).publish(event)
    return event
