"""End-to-end checks of /ws routing through the HTTP mutation API."""

import pytest
from fastapi.testclient import TestClient

from orderflow.core.config import Settings
from orderflow.main import create_app


def identify(ws, role, user_id=None) -> dict:
    ws.send_json({"event": "identify", "data": {"type": role, "userId": user_id}})
    return ws.receive_json()


def test_identify_is_acknowledged(client):
    with client.websocket_connect("/ws") as ws:
        assert identify(ws, "admin") == {
            "event": "identified",
            "data": {"success": True, "role": "admin"},
        }


def test_ping_is_answered_with_same_probe(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "ping", "data": {"seq": 7, "sentAt": 1700000000.5}})
        assert ws.receive_json() == {
            "event": "pong",
            "data": {"seq": 7, "sentAt": 1700000000.5},
        }


def test_connection_quality_report(client):
    with client.websocket_connect("/ws") as ws:
        identify(ws, "user", "u1")
        ws.send_json({"event": "connectionQuality", "data": {}})
        report = ws.receive_json()

    assert report["event"] == "connectionQuality"
    assert report["data"]["role"] == "user"
    assert report["data"]["rooms"] == ["user:u1", "users"]
    assert report["data"]["uptimeSeconds"] >= 0
    assert len(report["data"]["connectionId"]) == 12


def test_garbage_frames_are_ignored(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        ws.send_json({"event": "teleport", "data": {}})
        assert identify(ws, "admin")["event"] == "identified"


def test_binary_frames_are_ignored(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_bytes(b"\x00\x01")
        ws.send_bytes(b'{"event": "ping", "data": {"seq": 1}}')
        ws.send_json({"event": "ping", "data": {"seq": 2, "sentAt": 10}})
        assert ws.receive_json() == {"event": "pong", "data": {"seq": 2, "sentAt": 10}}


def test_admin_sees_every_order_event(client, dine_in_order):
    with client.websocket_connect("/ws") as ws:
        identify(ws, "admin")

        order = client.post("/api/orders/create", json=dine_in_order).json()["order"]
        placed = ws.receive_json()
        assert placed["event"] == "newOrderPlaced"
        assert placed["data"]["id"] == order["id"]

        client.put(f"/api/orders/{order['id']}", json={"status": "Ready"})
        changed = ws.receive_json()
        assert changed["event"] == "orderStatusChanged"
        assert changed["data"]["status"] == "Ready"

        client.put(f"/api/orders/{order['id']}", json={"paymentStatus": "Paid", "paymentMethod": "UPI"})
        paid = ws.receive_json()
        assert paid["event"] == "paymentSuccess"
        assert paid["data"]["paymentMethod"] == "UPI"

        client.delete(f"/api/orders/{order['id']}", headers={"X-Admin-Request": "true"})
        assert ws.receive_json() == {"event": "orderDeleted", "data": order["id"]}


def test_customer_gets_own_new_orders_once(client, dine_in_order, parcel_order):
    with client.websocket_connect("/ws") as ws:
        identify(ws, "user", "u1")

        # u2's order is not announced to u1
        other = client.post("/api/orders/create", json=parcel_order).json()["order"]
        mine = client.post("/api/orders/create", json=dine_in_order).json()["order"]

        placed = ws.receive_json()
        assert placed["event"] == "newOrderPlaced"
        assert placed["data"]["id"] == mine["id"]

        # status changes also reach the users room, but only one copy arrives
        client.put(f"/api/orders/{mine['id']}", json={"status": "Cooking"})
        changed = ws.receive_json()
        assert changed["event"] == "orderStatusChanged"
        assert changed["data"]["id"] == mine["id"]

        client.put(f"/api/orders/{other['id']}", json={"status": "Cooking"})
        broadcast = ws.receive_json()
        assert broadcast["event"] == "orderStatusChanged"
        assert broadcast["data"]["id"] == other["id"]


def test_unidentified_connection_only_gets_broadcasts(client, dine_in_order):
    with client.websocket_connect("/ws") as ws:
        order = client.post("/api/orders/create", json=dine_in_order).json()["order"]
        client.put(f"/api/orders/{order['id']}", json={"status": "Cooking"})
        client.post("/api/foods", json={"name": "Masala Dosa", "price": 150})

        added = ws.receive_json()
        assert added["event"] == "newFoodAdded"
        assert added["data"]["name"] == "Masala Dosa"


def test_menu_events(client):
    with client.websocket_connect("/ws") as ws:
        identify(ws, "user", "u1")

        food = client.post("/api/foods", json={"name": "Gulab Jamun", "price": 90}).json()
        assert ws.receive_json()["event"] == "newFoodAdded"

        client.put(f"/api/foods/{food['id']}", json={"price": 95})
        updated = ws.receive_json()
        assert updated["event"] == "foodUpdated"
        assert updated["data"]["price"] == 95

        client.delete(f"/api/foods/{food['id']}")
        assert ws.receive_json() == {"event": "foodDeleted", "data": food["id"]}


def test_failed_mutation_emits_nothing(client, dine_in_order):
    with client.websocket_connect("/ws") as ws:
        identify(ws, "admin")

        client.post("/api/orders/create", json=dict(dine_in_order, tableNumber=99))
        client.put("/api/orders/missing", json={"status": "Ready"})
        client.post("/api/foods", json={"name": "Cold Coffee", "price": 120})

        assert ws.receive_json()["event"] == "newFoodAdded"


def test_idle_connections_are_closed(tmp_path):
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path}/idle.db",
        notifications_enabled=False,
        ws_idle_timeout_seconds=0.2,
    )
    with TestClient(create_app(settings)) as client:
        with client.websocket_connect("/ws") as ws:
            message = ws.receive()
    assert message["type"] == "websocket.close"
    assert message["code"] == 1000


def test_serverless_app_has_no_live_channel(tmp_path):
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path}/serverless.db",
        notifications_enabled=False,
        serverless_mode=True,
    )
    app = create_app(settings)
    assert app.state.hub is None

    with TestClient(app) as client:
        assert client.get("/").json()["liveChannel"] is None
        with pytest.raises(Exception):
            with client.websocket_connect("/ws"):
                pass
