"""
Connection Hub

Registry of live WebSocket connections and the rooms they belong to:

    admins      every connection identified as an admin
    users       every connection identified as a customer
    user:<id>   every connection of one customer (several tabs / devices)

A connection joins rooms by identifying itself. Emissions go to the union of
the target rooms, so a connection sitting in two target rooms receives one
copy. Sockets that fail on send are dropped from the registry.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional

from starlette.websockets import WebSocket

from orderflow.realtime.events import Event, encode_event
from orderflow.status import Role

logger = logging.getLogger(__name__)

ADMINS_ROOM = "admins"
USERS_ROOM = "users"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


@dataclass
class ConnectedClient:
    """One live connection and what the hub knows about it."""
    websocket: WebSocket
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    connected_at: float = field(default_factory=time.monotonic)
    last_activity: float = field(default_factory=time.monotonic)
    role: Optional[Role] = None
    user_id: Optional[str] = None
    rooms: set[str] = field(default_factory=set)
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self.connected_at

    @property
    def idle_seconds(self) -> float:
        return time.monotonic() - self.last_activity

    async def send_text(self, text: str) -> None:
        # Starlette websockets are not safe for concurrent sends
        async with self.send_lock:
            await self.websocket.send_text(text)


class RealtimeHub:
    """In-process registry of connected clients, grouped into rooms."""

    def __init__(self):
        self._clients: dict[str, ConnectedClient] = {}
        self._rooms: dict[str, set[str]] = {}

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    async def connect(self, websocket: WebSocket) -> ConnectedClient:
        """Accept the socket and register it (no rooms until it identifies)."""
        await websocket.accept()
        client = ConnectedClient(websocket=websocket)
        self._clients[client.id] = client
        logger.info(f"🔌 Client connected: {client.id} ({len(self._clients)} live)")
        return client

    def disconnect(self, client: ConnectedClient) -> None:
        """Forget a client. Safe to call more than once."""
        if self._clients.pop(client.id, None) is None:
            return
        self._leave_all(client)
        logger.info(f"🔌 Client disconnected: {client.id} ({len(self._clients)} live)")

    def identify(self, client: ConnectedClient, role: Role, user_id: Optional[str] = None) -> set[str]:
        """
        Place a client in the rooms for its role.

        Re-identifying replaces the previous room membership, so a client
        that reconnects as a different user stops receiving the old user's
        events.

        Returns:
            The rooms the client now belongs to
        """
        self._leave_all(client)

        client.role = role
        client.user_id = user_id or None

        if role is Role.ADMIN:
            rooms = {ADMINS_ROOM}
        else:
            rooms = {USERS_ROOM}
            if client.user_id:
                rooms.add(user_room(client.user_id))

        for room in rooms:
            self._rooms.setdefault(room, set()).add(client.id)
        client.rooms = rooms
        client.touch()

        logger.info(f"🪪 Client {client.id} identified as {role.value} → {sorted(rooms)}")
        return rooms

    def _leave_all(self, client: ConnectedClient) -> None:
        for room in client.rooms:
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(client.id)
            if not members:
                del self._rooms[room]
        client.rooms = set()

    # =========================================================================
    # EMISSION
    # =========================================================================

    def members(self, rooms: Optional[Iterable[str]] = None) -> list[ConnectedClient]:
        """Clients in the union of ``rooms``; every client when ``rooms`` is None."""
        if rooms is None:
            return list(self._clients.values())
        ids: set[str] = set()
        for room in rooms:
            ids |= self._rooms.get(room, set())
        return [self._clients[cid] for cid in ids if cid in self._clients]

    async def emit(self, event: Event, rooms: Optional[Iterable[str]] = None) -> int:
        """
        Send one event to the target rooms (or to everyone).

        Returns:
            Number of clients the event was delivered to
        """
        targets = self.members(rooms)
        if not targets:
            return 0

        text = encode_event(event)
        results = await asyncio.gather(
            *(client.send_text(text) for client in targets),
            return_exceptions=True,
        )

        delivered = 0
        for client, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(f"Dropping client {client.id} after failed send: {result}")
                self.disconnect(client)
            else:
                delivered += 1
        return delivered

    async def send(self, client: ConnectedClient, event: Event) -> None:
        """Reply to a single client."""
        await client.send_text(encode_event(event))

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def __len__(self) -> int:
        return len(self._clients)

    def stats(self) -> dict[str, object]:
        return {
            "connections": len(self._clients),
            "admins": len(self._rooms.get(ADMINS_ROOM, ())),
            "users": len(self._rooms.get(USERS_ROOM, ())),
            "rooms": {room: len(members) for room, members in self._rooms.items()},
        }
