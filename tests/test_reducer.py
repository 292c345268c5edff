import pytest

from orderflow.client.reducer import ActiveOrders, NoticeKind, Viewer
from orderflow.status import Role


def order(oid, status="Pending", user_id="u1", **fields):
    return {
        "id": oid,
        "userId": user_id,
        "userEmail": f"{user_id}@example.com",
        "foodName": f"food-{oid}",
        "status": status,
        "paymentStatus": "Unpaid",
        "paymentMethod": None,
        **fields,
    }


@pytest.fixture
def notices():
    return []


@pytest.fixture
def customer(notices):
    return ActiveOrders(Viewer(Role.USER, user_id="u1"), notices.append)


@pytest.fixture
def admin(notices):
    return ActiveOrders(Viewer("admin"), notices.append)


# =============================================================================
# VIEWER
# =============================================================================

def test_viewer_ownership_prefers_user_id():
    viewer = Viewer(Role.USER, user_id="u1", email="shared@example.com")
    assert viewer.owns(order("a"))
    assert not viewer.owns(order("b", user_id="u2", userEmail="shared@example.com"))


def test_viewer_ownership_falls_back_to_email():
    viewer = Viewer(Role.USER, email="U1@Example.com")
    assert viewer.owns(order("a"))
    assert not Viewer(Role.USER).owns(order("a"))


def test_admin_sees_everything():
    viewer = Viewer("admin")
    assert viewer.is_admin
    assert viewer.can_see(order("a", user_id="anyone"))


# =============================================================================
# TRANSITIONS
# =============================================================================

def test_load_keeps_visible_active_orders(customer):
    customer.load([
        order("a"),
        order("b", "Completed"),
        order("c", user_id="u2"),
        {"status": "Pending"},
    ])
    assert customer.ids() == ["a"]


def test_new_order_goes_to_front_with_notice(customer, notices):
    customer.load([order("a")])

    assert customer.on_new_order(order("b"))
    assert customer.ids() == ["b", "a"]
    assert notices[-1].kind is NoticeKind.ORDER_PLACED
    assert notices[-1].order_id == "b"


def test_new_order_is_idempotent(customer, notices):
    assert customer.on_new_order(order("a"))
    assert not customer.on_new_order(order("a"))
    assert len(customer) == 1
    assert len(notices) == 1


def test_new_order_for_someone_else_is_ignored(customer, notices):
    assert not customer.on_new_order(order("a", user_id="u2"))
    assert len(customer) == 0
    assert notices == []


def test_admin_gets_new_order_alert(admin, notices):
    admin.on_new_order(order("a", user_id="u7"))
    assert notices[0].message.startswith("📢 New order")


def test_status_change_updates_in_place(customer, notices):
    customer.load([order("a"), order("b")])

    assert customer.on_status_change(order("b", "Cooking"))

    assert customer.ids() == ["a", "b"]
    assert customer.get("b")["status"] == "Cooking"
    assert notices[-1].kind is NoticeKind.STATUS_CHANGED
    assert "being cooked" in notices[-1].message


def test_repeated_status_change_is_a_no_op(customer, notices):
    customer.load([order("a")])
    customer.on_status_change(order("a", "Ready"))

    assert not customer.on_status_change(order("a", "Ready"))
    assert len(notices) == 1


def test_status_change_for_unknown_order_inserts_it(customer):
    assert customer.on_status_change(order("z", "Served"))
    assert customer.ids() == ["z"]


def test_completion_removes_order(customer, notices):
    customer.load([order("a", "Served")])

    assert customer.on_status_change(order("a", "Completed"))

    assert len(customer) == 0
    assert notices[-1].kind is NoticeKind.ORDER_COMPLETED
    assert "Order History" in notices[-1].message
    assert not customer.on_status_change(order("a", "Completed"))


def test_admin_completion_has_no_customer_notice(admin, notices):
    admin.load([order("a", "Served")])
    admin.on_status_change(order("a", "Completed"))
    assert len(admin) == 0
    assert notices == []


def test_payment_success_patches_payment_fields_only(customer, notices):
    customer.load([order("a", "Served", quantity=2)])

    changed = customer.on_payment_success(
        order("a", "Cooking", quantity=9, paymentStatus="Paid", paymentMethod="UPI")
    )

    assert changed
    current = customer.get("a")
    assert current["paymentStatus"] == "Paid"
    assert current["paymentMethod"] == "UPI"
    assert current["status"] == "Served"
    assert current["quantity"] == 2
    assert notices[-1].kind is NoticeKind.PAYMENT_CONFIRMED
    assert not customer.on_payment_success(order("a", paymentStatus="Paid", paymentMethod="UPI"))


def test_payment_for_untracked_order_is_ignored(customer):
    assert not customer.on_payment_success(order("a", paymentStatus="Paid"))


def test_deletion(customer, notices):
    customer.load([order("a"), order("b")])

    assert customer.on_order_deleted("a")
    assert not customer.on_order_deleted("a")
    assert customer.ids() == ["b"]
    assert notices[-1].kind is NoticeKind.ORDER_DELETED


def test_apply_routes_events(admin):
    admin.apply("newOrderPlaced", order("a"))
    admin.apply("orderStatusChanged", order("a", "Ready"))
    admin.apply("paymentSuccess", order("a", paymentStatus="Paid"))
    assert admin.get("a")["paymentStatus"] == "Paid"

    admin.apply("orderDeleted", "a")
    assert "a" not in admin
    assert not admin.apply("foodDeleted", "f1")


def test_event_and_poll_for_same_change_converge(customer, notices):
    customer.load([order("a")])

    customer.apply("orderStatusChanged", order("a", "Cooking"))
    customer.on_status_change(order("a", "Cooking"), previous=order("a"))

    assert customer.orders == [order("a", "Cooking")]
    assert len(notices) == 1


def test_broken_notice_sink_does_not_break_updates():
    def sink(notice):
        raise RuntimeError("ui gone")

    orders = ActiveOrders(Viewer(Role.USER, user_id="u1"), sink)
    assert orders.on_new_order(order("a"))
    assert "a" in orders
