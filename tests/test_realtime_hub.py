import json
import logging

from orderflow.realtime.broadcaster import EventBroadcaster, rooms_for
from orderflow.realtime.events import (
    FoodDeleted,
    NewOrderPlaced,
    OrderDeleted,
    OrderStatusChanged,
    PaymentSuccess,
)
from orderflow.realtime.hub import ADMINS_ROOM, USERS_ROOM, RealtimeHub, user_room
from orderflow.status import Role


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.accepted = False
        self.sent: list[dict] = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, text: str):
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(json.loads(text))


class RecordingNotifier:
    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    async def order_created(self, order):
        self.calls.append(("created", order["id"]))

    async def order_status_changed(self, order):
        self.calls.append(("status", order["id"]))

    async def payment_succeeded(self, order):
        self.calls.append(("payment", order["id"]))


async def connect(hub: RealtimeHub, role=None, user_id=None, fail=False):
    websocket = FakeWebSocket(fail=fail)
    client = await hub.connect(websocket)
    if role is not None:
        hub.identify(client, role, user_id)
    return client, websocket


# =============================================================================
# ROUTING
# =============================================================================

def test_rooms_for_order_events():
    order = {"id": "o1", "userId": "u1"}
    assert rooms_for(NewOrderPlaced(order=order)) == [ADMINS_ROOM, "user:u1"]
    assert rooms_for(OrderStatusChanged(order=order)) == [ADMINS_ROOM, "user:u1", USERS_ROOM]
    assert rooms_for(PaymentSuccess(order=order)) == [ADMINS_ROOM, "user:u1", USERS_ROOM]
    assert rooms_for(OrderDeleted(order_id="o1")) is None
    assert rooms_for(FoodDeleted(food_id="f1")) is None


def test_rooms_for_anonymous_order():
    assert rooms_for(NewOrderPlaced(order={"id": "o1", "userId": ""})) == [ADMINS_ROOM]


# =============================================================================
# HUB
# =============================================================================

async def test_identify_places_client_in_rooms():
    hub = RealtimeHub()
    admin, _ = await connect(hub, Role.ADMIN)
    customer, _ = await connect(hub, Role.USER, "u1")
    anonymous, _ = await connect(hub, Role.USER)

    assert admin.rooms == {ADMINS_ROOM}
    assert customer.rooms == {USERS_ROOM, user_room("u1")}
    assert anonymous.rooms == {USERS_ROOM}
    assert hub.stats()["admins"] == 1
    assert hub.stats()["users"] == 2


async def test_reidentify_replaces_rooms():
    hub = RealtimeHub()
    client, _ = await connect(hub, Role.USER, "u1")

    hub.identify(client, Role.USER, "u2")

    assert client.rooms == {USERS_ROOM, "user:u2"}
    assert hub.members(["user:u1"]) == []


async def test_emit_delivers_one_copy_per_connection():
    hub = RealtimeHub()
    _, admin_ws = await connect(hub, Role.ADMIN)
    _, customer_ws = await connect(hub, Role.USER, "u1")
    _, other_ws = await connect(hub, Role.USER, "u2")
    _, unidentified_ws = await connect(hub)

    event = OrderStatusChanged(order={"id": "o1", "userId": "u1"})
    delivered = await hub.emit(event, rooms_for(event))

    assert delivered == 3
    assert len(admin_ws.sent) == 1
    assert len(customer_ws.sent) == 1
    assert len(other_ws.sent) == 1
    assert unidentified_ws.sent == []


async def test_emit_to_everyone():
    hub = RealtimeHub()
    _, a = await connect(hub, Role.ADMIN)
    _, b = await connect(hub)

    assert await hub.emit(OrderDeleted(order_id="o1")) == 2
    assert a.sent == b.sent == [{"event": "orderDeleted", "data": "o1"}]


async def test_failed_socket_is_dropped():
    hub = RealtimeHub()
    await connect(hub, Role.ADMIN)
    broken, _ = await connect(hub, Role.ADMIN, fail=True)

    delivered = await hub.emit(NewOrderPlaced(order={"id": "o1"}), [ADMINS_ROOM])

    assert delivered == 1
    assert len(hub) == 1
    assert hub.members([ADMINS_ROOM])[0].id != broken.id


async def test_disconnect_is_idempotent():
    hub = RealtimeHub()
    client, _ = await connect(hub, Role.USER, "u1")

    hub.disconnect(client)
    hub.disconnect(client)

    assert len(hub) == 0
    assert hub.stats()["rooms"] == {}


# =============================================================================
# BROADCASTER
# =============================================================================

async def test_broadcaster_emits_in_background_and_notifies():
    hub = RealtimeHub()
    _, admin_ws = await connect(hub, Role.ADMIN)
    notifier = RecordingNotifier()
    broadcaster = EventBroadcaster(hub, notifier)
    order = {"id": "o1", "userId": "u1"}

    broadcaster.order_created(order)
    broadcaster.order_status_changed(order)
    broadcaster.payment_succeeded(order)
    broadcaster.order_deleted("o1")
    assert broadcaster.pending > 0

    await broadcaster.drain()

    assert broadcaster.pending == 0
    assert [m["event"] for m in admin_ws.sent] == [
        "newOrderPlaced", "orderStatusChanged", "paymentSuccess", "orderDeleted",
    ]
    assert notifier.calls == [("created", "o1"), ("status", "o1"), ("payment", "o1")]


async def test_broadcaster_swallows_listener_failures(caplog):
    class ExplodingHub(RealtimeHub):
        async def emit(self, event, rooms=None):
            raise RuntimeError("boom")

    broadcaster = EventBroadcaster(ExplodingHub())

    with caplog.at_level(logging.WARNING):
        broadcaster.food_added({"id": "f1"})
        await broadcaster.drain()

    assert "Broadcast failed" in caplog.text


async def test_broadcaster_without_hub_drops_events():
    broadcaster = EventBroadcaster(None)
    broadcaster.order_created({"id": "o1"})
    assert broadcaster.pending == 0


def test_broadcaster_without_event_loop_does_not_raise(caplog):
    broadcaster = EventBroadcaster(RealtimeHub())

    with caplog.at_level(logging.WARNING):
        broadcaster.order_deleted("o1")

    assert broadcaster.pending == 0
    assert "No running event loop" in caplog.text
