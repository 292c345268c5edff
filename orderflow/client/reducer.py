"""
Active Orders Reducer

Client-side list of the orders a viewer is currently tracking, fed by live
events and polling alike. Every change is keyed by order id, so the same
change arriving twice (live channel plus polling tick) leaves the list in
the same state. Duplicate notices are possible and harmless.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from orderflow.client.polling import Order, order_id
from orderflow.realtime.events import EventName
from orderflow.status import OrderStatus, PaymentStatus, Role, is_terminal

logger = logging.getLogger(__name__)

STATUS_NOTICES = {
    OrderStatus.PENDING.value: "⏳ Order Pending",
    OrderStatus.COOKING.value: "👨‍🍳 Order is being cooked",
    OrderStatus.READY.value: "✅ Order is ready for pickup",
    OrderStatus.SERVED.value: "🍽️ Order has been served",
}


@dataclass(frozen=True)
class Viewer:
    """Who is looking at the list: an admin sees everything, a customer their own orders."""
    role: Role = Role.USER
    user_id: Optional[str] = None
    email: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "role", Role(self.role))

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def owns(self, order: Order) -> bool:
        """Ownership by user id when both sides have one, else by email."""
        if self.user_id and order.get("userId"):
            return order["userId"] == self.user_id
        if self.email and order.get("userEmail"):
            return order["userEmail"].lower() == self.email.lower()
        return False

    def can_see(self, order: Order) -> bool:
        return self.is_admin or self.owns(order)


class NoticeKind(str, enum.Enum):
    ORDER_PLACED = "order_placed"
    STATUS_CHANGED = "status_changed"
    ORDER_COMPLETED = "order_completed"
    PAYMENT_CONFIRMED = "payment_confirmed"
    ORDER_DELETED = "order_deleted"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    order_id: str
    message: str


NoticeSink = Callable[[Notice], Any]


class ActiveOrders:
    """Ordered list of active (non-completed) orders, newest first."""

    def __init__(self, viewer: Viewer, notify: Optional[NoticeSink] = None):
        self.viewer = viewer
        self.notify = notify
        self._orders: list[Order] = []

    # =========================================================================
    # READ
    # =========================================================================

    @property
    def orders(self) -> list[Order]:
        return list(self._orders)

    def ids(self) -> list[str]:
        return [order_id(o) for o in self._orders]

    def get(self, oid: str) -> Optional[Order]:
        index = self._index(oid)
        return self._orders[index] if index is not None else None

    def __len__(self) -> int:
        return len(self._orders)

    def __iter__(self) -> Iterator[Order]:
        return iter(list(self._orders))

    def __contains__(self, oid: object) -> bool:
        return isinstance(oid, str) and self._index(oid) is not None

    def _index(self, oid: Optional[str]) -> Optional[int]:
        for i, order in enumerate(self._orders):
            if order_id(order) == oid:
                return i
        return None

    def _emit(self, kind: NoticeKind, order: Order, message: str) -> None:
        if self.notify is None:
            return
        try:
            self.notify(Notice(kind=kind, order_id=order_id(order), message=message))
        except Exception as e:
            logger.error(f"Notice sink failed: {e}")

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def load(self, orders: list[Order]) -> None:
        """Replace the list with the viewer's active orders from a full fetch."""
        self._orders = [
            dict(o) for o in orders
            if order_id(o) and self.viewer.can_see(o) and not is_terminal(o.get("status"))
        ]

    def on_new_order(self, order: Order) -> bool:
        """
        Insert at the front, or merge into the existing entry.

        Returns:
            True when the list changed
        """
        oid = order_id(order)
        if not oid or not self.viewer.can_see(order) or is_terminal(order.get("status")):
            return False

        index = self._index(oid)
        if index is not None:
            merged = {**self._orders[index], **order}
            if merged == self._orders[index]:
                return False
            self._orders[index] = merged
            return True

        self._orders.insert(0, dict(order))
        if self.viewer.is_admin and not self.viewer.owns(order):
            self._emit(NoticeKind.ORDER_PLACED, order, f"📢 New order: {order.get('foodName')}")
        else:
            self._emit(NoticeKind.ORDER_PLACED, order, f"📦 Order Placed: {order.get('foodName')}")
        return True

    def on_status_change(self, order: Order, previous: Optional[Order] = None) -> bool:
        """
        Apply a status change.

        A terminal status removes the order (the owner is pointed to the
        history view); any other status upserts it in place.
        """
        oid = order_id(order)
        if not oid or not self.viewer.can_see(order):
            return False

        index = self._index(oid)

        if is_terminal(order.get("status")):
            if index is None:
                return False
            del self._orders[index]
            if self.viewer.owns(order):
                self._emit(
                    NoticeKind.ORDER_COMPLETED,
                    order,
                    f"🎉 Order Completed: {order.get('foodName')}. View it in Order History!",
                )
            return True

        if index is None:
            self._orders.insert(0, dict(order))
            known_status = previous.get("status") if previous else None
        else:
            known_status = self._orders[index].get("status")
            merged = {**self._orders[index], **order}
            if merged == self._orders[index]:
                return False
            self._orders[index] = merged

        if order.get("status") != known_status:
            label = STATUS_NOTICES.get(order.get("status"), "Order status updated")
            self._emit(NoticeKind.STATUS_CHANGED, order, f"{label}: {order.get('foodName')}")
        return True

    def on_payment_success(self, order: Order) -> bool:
        """Patch only the payment fields of a tracked order."""
        index = self._index(order_id(order))
        if index is None or not self.viewer.can_see(order):
            return False

        current = self._orders[index]
        patch = {
            "paymentStatus": order.get("paymentStatus", PaymentStatus.PAID.value),
            "paymentMethod": order.get("paymentMethod", current.get("paymentMethod")),
        }
        if all(current.get(k) == v for k, v in patch.items()):
            return False

        self._orders[index] = {**current, **patch}
        if patch["paymentStatus"] == PaymentStatus.PAID.value:
            self._emit(
                NoticeKind.PAYMENT_CONFIRMED,
                current,
                "💰 Payment Confirmed: Your payment has been confirmed by admin.",
            )
        return True

    def on_order_deleted(self, oid: str) -> bool:
        index = self._index(oid)
        if index is None:
            return False

        order = self._orders.pop(index)
        if self.viewer.owns(order):
            self._emit(NoticeKind.ORDER_DELETED, order, f"🗑️ Order removed: {order.get('foodName')}")
        return True

    def apply(self, name: EventName, payload: Any) -> bool:
        """Route one server event payload to its transition."""
        name = EventName(name)
        if name is EventName.NEW_ORDER_PLACED:
            return self.on_new_order(payload)
        if name is EventName.ORDER_STATUS_CHANGED:
            return self.on_status_change(payload)
        if name is EventName.PAYMENT_SUCCESS:
            return self.on_payment_success(payload)
        if name is EventName.ORDER_DELETED:
            return self.on_order_deleted(payload)
        return False
