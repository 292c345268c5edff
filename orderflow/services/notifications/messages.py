"""
Order Notification Texts

Turns an order (wire shape) into the title / body pair sent to the customer
or to the kitchen. Status texts follow the customer-facing progression.
"""

import html
from dataclasses import dataclass
from typing import Any

from orderflow.status import CustomerStatus, customer_status

ORDER_PLACED = "order_placed"
ADMIN_NEW_ORDER = "admin_new_order"
STATUS_CHANGED = "status_changed"
PAYMENT_CONFIRMED = "payment_confirmed"

MESSAGE_KINDS = (ORDER_PLACED, ADMIN_NEW_ORDER, STATUS_CHANGED, PAYMENT_CONFIRMED)

STATUS_TITLES = {
    CustomerStatus.ORDER: "📦 Your order has been placed",
    CustomerStatus.PREPARING: "👨‍🍳 Your order is being prepared",
    CustomerStatus.SERVED: "🍽️ Your order has been served",
    CustomerStatus.COMPLETED: "🎉 Your order is complete!",
}


@dataclass(frozen=True)
class OrderMessage:
    kind: str
    title: str
    body: str

    @property
    def sms_text(self) -> str:
        return f"{self.title}\n{self.body}"

    @property
    def html(self) -> str:
        return (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
            f'<h1 style="color: #ff4757;">{html.escape(self.title)}</h1>'
            f"<p>{html.escape(self.body)}</p>"
            "</div>"
        )


def build_order_message(kind: str, order: dict[str, Any], restaurant_name: str = "") -> OrderMessage:
    """
    Build the notification for one order event.

    Args:
        kind: One of ``MESSAGE_KINDS``
        order: Order in wire shape (camelCase keys)
        restaurant_name: Appended as a signature when given

    Raises:
        ValueError: Unknown kind
    """
    food = order.get("foodName", "your food")
    signature = f" - {restaurant_name}" if restaurant_name else ""

    if kind == ORDER_PLACED:
        title = "📦 Order Placed!"
        body = f"Your order for {food} has been placed successfully!{signature}"
    elif kind == ADMIN_NEW_ORDER:
        who = order.get("userEmail") or order.get("userName") or "Guest"
        where = (
            f"table {order['tableNumber']}" if order.get("tableNumber")
            else f"parcel, {order.get('contactNumber', '')}"
        )
        title = "📢 New Order Placed!"
        body = f"New order from {who} for {food} x{order.get('quantity', 1)} ({where})"
    elif kind == STATUS_CHANGED:
        label = customer_status(order["status"])
        title = STATUS_TITLES[label]
        body = f"{food} - Status: {label.value}{signature}"
    elif kind == PAYMENT_CONFIRMED:
        method = order.get("paymentMethod")
        title = "✅ Payment received"
        body = (
            f"Payment for {food} has been confirmed"
            f"{f' via {method}' if method else ''}. Thank you!{signature}"
        )
    else:
        raise ValueError(f"Unknown notification kind: {kind!r}")

    return OrderMessage(kind=kind, title=title, body=body)
