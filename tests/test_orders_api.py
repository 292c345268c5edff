def create(client, payload) -> dict:
    response = client.post("/api/orders/create", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["order"]


# =============================================================================
# CREATE
# =============================================================================

def test_create_dine_in_order(client, dine_in_order):
    response = client.post("/api/orders/create", json=dine_in_order)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Order created successfully"

    order = body["order"]
    assert order["id"]
    assert order["status"] == "Pending"
    assert order["paymentStatus"] == "Unpaid"
    assert order["paymentMethod"] is None
    assert order["tableNumber"] == 5
    assert order["chairIndices"] == [0, 2]
    assert order["chairsBooked"] == 2
    assert order["chairLetters"] == "a c"
    assert order["isInRestaurant"] is True
    assert order["type"] == "Veg"


def test_create_parcel_order(client, parcel_order):
    order = create(client, parcel_order)

    assert order["tableNumber"] == 0
    assert order["isInRestaurant"] is False
    assert order["contactNumber"] == "9876543210"
    assert order["deliveryLocation"]["address"] == "12 MG Road"


def test_create_order_validation_errors(client, dine_in_order):
    dine_in_order.pop("quantity")
    response = client.post("/api/orders/create", json=dine_in_order)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert any(e["field"] == "quantity" for e in body["errors"])


def test_table_and_chair_bounds_come_from_settings(client, dine_in_order):
    dine_in_order["tableNumber"] = 11
    response = client.post("/api/orders/create", json=dine_in_order)
    assert response.status_code == 400
    assert "between 1 and 10" in response.json()["message"]

    dine_in_order["tableNumber"] = 3
    dine_in_order["chairIndices"] = [4]
    response = client.post("/api/orders/create", json=dine_in_order)
    assert response.status_code == 400
    assert "between 0 and 3" in response.json()["message"]


def test_create_multiple_orders(client, dine_in_order, parcel_order):
    response = client.post("/api/orders/create-multiple", json=[dine_in_order, parcel_order])

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Multiple orders created successfully"
    assert {o["foodName"] for o in body["orders"]} == {"Paneer Tikka", "Chicken Biryani"}


def test_create_multiple_rejects_empty_list(client):
    response = client.post("/api/orders/create-multiple", json=[])

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid order data"}


def test_create_multiple_is_all_or_nothing(client, dine_in_order, parcel_order):
    bad = dict(dine_in_order, tableNumber=99)
    response = client.post("/api/orders/create-multiple", json=[parcel_order, bad])

    assert response.status_code == 400
    assert client.get("/api/orders").json() == []


# =============================================================================
# READ
# =============================================================================

def test_list_orders_filters(client, dine_in_order, parcel_order):
    first = create(client, dine_in_order)
    second = create(client, parcel_order)
    client.put(f"/api/orders/{second['id']}", json={"status": "Completed"})

    everything = client.get("/api/orders").json()
    assert [o["id"] for o in everything] == [second["id"], first["id"]]

    mine = client.get("/api/orders", params={"userId": "u1"}).json()
    assert [o["id"] for o in mine] == [first["id"]]

    by_email = client.get("/api/orders", params={"userEmail": "u2@example.com"}).json()
    assert [o["id"] for o in by_email] == [second["id"]]

    active = client.get("/api/orders", params={"active": "true"}).json()
    assert [o["id"] for o in active] == [first["id"]]

    completed = client.get("/api/orders", params={"status": "Completed"}).json()
    assert [o["id"] for o in completed] == [second["id"]]


def test_list_orders_matches_either_identifier(client, dine_in_order):
    order = create(client, dine_in_order)

    found = client.get(
        "/api/orders", params={"userId": "someone-else", "userEmail": "u1@example.com"}
    ).json()
    assert [o["id"] for o in found] == [order["id"]]


def test_list_orders_matches_email_in_any_case(client, dine_in_order):
    order = create(client, dict(dine_in_order, userId="", userEmail="Asha@Example.com"))

    found = client.get("/api/orders", params={"userEmail": "asha@example.com"}).json()
    assert [o["id"] for o in found] == [order["id"]]
    assert found[0]["userEmail"] == "Asha@Example.com"


def test_list_orders_rejects_unknown_status(client):
    response = client.get("/api/orders", params={"status": "Flying"})
    assert response.status_code == 400


def test_get_order_and_not_found(client, dine_in_order):
    order = create(client, dine_in_order)

    assert client.get(f"/api/orders/{order['id']}").json()["id"] == order["id"]

    response = client.get("/api/orders/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Order not found"}


def test_occupied_tables(client, dine_in_order, parcel_order):
    create(client, dine_in_order)
    create(client, dict(dine_in_order, chairIndices=[1]))
    done = create(client, dict(dine_in_order, tableNumber=7, chairIndices=[3]))
    create(client, parcel_order)
    client.put(f"/api/orders/{done['id']}", json={"status": "Completed"})

    assert client.get("/api/orders/occupied-tables").json() == {"5": [0, 1, 2]}


# =============================================================================
# UPDATE
# =============================================================================

def test_update_status_and_payment(client, dine_in_order):
    order = create(client, dine_in_order)

    response = client.put(f"/api/orders/{order['id']}", json={"status": "Preparing"})
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Order updated successfully"
    assert body["order"]["status"] == "Cooking"

    response = client.put(
        f"/api/orders/{order['id']}",
        json={"paymentStatus": "Paid", "paymentMethod": "Cash"},
    )
    updated = response.json()["order"]
    assert updated["paymentStatus"] == "Paid"
    assert updated["paymentMethod"] == "Cash"
    assert updated["status"] == "Cooking"


def test_update_allows_backward_moves(client, dine_in_order):
    order = create(client, dine_in_order)
    client.put(f"/api/orders/{order['id']}", json={"status": "Served"})

    response = client.put(f"/api/orders/{order['id']}", json={"status": "Cooking"})
    assert response.status_code == 200
    assert response.json()["order"]["status"] == "Cooking"


def test_update_rejects_invalid_input(client, dine_in_order):
    order = create(client, dine_in_order)

    assert client.put(f"/api/orders/{order['id']}", json={}).status_code == 400
    assert client.put(f"/api/orders/{order['id']}", json={"status": "Flying"}).status_code == 400
    assert client.put("/api/orders/missing", json={"status": "Ready"}).status_code == 404


# =============================================================================
# DELETE
# =============================================================================

def test_customer_can_only_delete_completed_orders(client, dine_in_order):
    order = create(client, dine_in_order)

    response = client.delete(f"/api/orders/{order['id']}")
    assert response.status_code == 403
    assert response.json()["message"] == "You can only delete completed orders"

    client.put(f"/api/orders/{order['id']}", json={"status": "Completed"})
    response = client.delete(f"/api/orders/{order['id']}")
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Order deleted successfully",
        "deletedOrderId": order["id"],
    }
    assert client.get(f"/api/orders/{order['id']}").status_code == 404


def test_admin_can_delete_any_order(client, dine_in_order):
    first = create(client, dine_in_order)
    second = create(client, dine_in_order)

    assert client.delete(f"/api/orders/{first['id']}", headers={"X-Admin-Request": "true"}).status_code == 200
    assert client.delete(f"/api/orders/{second['id']}", params={"admin": "true"}).status_code == 200
    assert client.delete(f"/api/orders/{second['id']}", params={"admin": "true"}).status_code == 404


# =============================================================================
# SYSTEM
# =============================================================================

def test_root_banner(client):
    body = client.get("/").json()
    assert body["liveChannel"] == "/ws"
    assert body["health"] == "/health"


def test_health_reports_components(client, monkeypatch):
    monkeypatch.setattr("orderflow.main._check_redis", lambda url: "healthy")

    body = client.get("/health").json()
    assert body["status"] == "operational"
    assert body["database"] == "healthy"
    assert body["notificationService"] == "disabled"
    assert body["liveConnections"] == 0
