"""
Real-time layer: event contract, connection hub, broadcaster and the
``/ws`` live channel endpoint.
"""

from orderflow.realtime.broadcaster import EventBroadcaster, rooms_for
from orderflow.realtime.events import EventDecodeError, EventName, decode_event, encode_event
from orderflow.realtime.hub import ADMINS_ROOM, USERS_ROOM, RealtimeHub, user_room

__all__ = [
    "EventBroadcaster",
    "rooms_for",
    "EventDecodeError",
    "EventName",
    "decode_event",
    "encode_event",
    "RealtimeHub",
    "ADMINS_ROOM",
    "USERS_ROOM",
    "user_room",
]
