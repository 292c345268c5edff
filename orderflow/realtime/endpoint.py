"""
Live Channel Endpoint

``WS /ws`` - one connection per client tab / process. The client identifies
itself right after connecting; until then it only receives events that go to
everyone (deletions, menu changes).

Client frames handled here:
    identify           join rooms, answered with ``identified``
    ping               answered with ``pong`` (same seq / sentAt)
    connectionQuality  answered with uptime / idle / rooms of this connection

Anything else is ignored. A connection that sends nothing for
``ws_idle_timeout_seconds`` is closed.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from orderflow.realtime.events import (
    ConnectionQualityReport,
    ConnectionQualityRequest,
    EventDecodeError,
    Identified,
    Identify,
    Ping,
    Pong,
    decode_event,
)
from orderflow.realtime.hub import ConnectedClient, RealtimeHub

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def live_channel(websocket: WebSocket):
    hub: RealtimeHub = websocket.app.state.hub
    idle_timeout = websocket.app.state.settings.ws_idle_timeout_seconds

    client = await hub.connect(websocket)
    try:
        while True:
            try:
                message = await asyncio.wait_for(websocket.receive(), timeout=idle_timeout)
            except asyncio.TimeoutError:
                logger.info(f"⏱️ Closing idle client {client.id} after {idle_timeout:.0f}s")
                await websocket.close(code=status.WS_1000_NORMAL_CLOSURE, reason="idle timeout")
                break

            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))

            client.touch()
            raw = message.get("text")
            if raw is None:
                logger.debug(f"Ignoring binary frame from {client.id}")
                continue
            await handle_frame(hub, client, raw)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"Live channel error for client {client.id}: {e}")
    finally:
        hub.disconnect(client)


async def handle_frame(hub: RealtimeHub, client: ConnectedClient, raw: str) -> None:
    try:
        event = decode_event(raw)
    except EventDecodeError as e:
        logger.debug(f"Ignoring frame from {client.id}: {e}")
        return

    if isinstance(event, Identify):
        hub.identify(client, event.role, event.user_id)
        await hub.send(client, Identified(success=True, role=event.role))

    elif isinstance(event, Ping):
        await hub.send(client, Pong(seq=event.seq, sent_at=event.sent_at))

    elif isinstance(event, ConnectionQualityRequest):
        await hub.send(client, ConnectionQualityReport(
            connection_id=client.id,
            uptime_seconds=round(client.uptime_seconds, 3),
            idle_seconds=round(client.idle_seconds, 3),
            role=client.role.value if client.role else None,
            rooms=tuple(sorted(client.rooms)),
        ))
