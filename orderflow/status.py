"""
Order Status Vocabulary

Shared by the server (validation, storage) and the client library
(reducers, polling). Kept free of SQLAlchemy and FastAPI imports.

Status workflow (forward only in normal flow):
    Pending → Cooking → Ready → Served → Completed

Customers see a simplified view:
    Order → Preparing → Served → Completed
"""

import enum
from typing import Optional, Union


class OrderStatus(str, enum.Enum):
    """Stored order lifecycle."""
    PENDING = "Pending"
    COOKING = "Cooking"
    READY = "Ready"
    SERVED = "Served"
    COMPLETED = "Completed"


class CustomerStatus(str, enum.Enum):
    """Customer-facing status labels."""
    ORDER = "Order"
    PREPARING = "Preparing"
    SERVED = "Served"
    COMPLETED = "Completed"


class PaymentStatus(str, enum.Enum):
    UNPAID = "Unpaid"
    PAID = "Paid"


class PaymentMethod(str, enum.Enum):
    UPI = "UPI"
    CASH = "Cash"
    OTHER = "Other"


class FoodType(str, enum.Enum):
    VEG = "Veg"
    NON_VEG = "Non-Veg"
    OTHER = "Other"


class FoodSize(str, enum.Enum):
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"
    HALF = "Half"
    FULL = "Full"


class Role(str, enum.Enum):
    """Who is on the other end of a live connection."""
    ADMIN = "admin"
    USER = "user"


TERMINAL_STATUS = OrderStatus.COMPLETED

_PROGRESSION = [
    OrderStatus.PENDING,
    OrderStatus.COOKING,
    OrderStatus.READY,
    OrderStatus.SERVED,
    OrderStatus.COMPLETED,
]

# Customer-facing labels accepted at the mutation boundary
_ALIASES = {
    CustomerStatus.ORDER.value: OrderStatus.PENDING,
    CustomerStatus.PREPARING.value: OrderStatus.COOKING,
}

_CUSTOMER_VIEW = {
    OrderStatus.PENDING: CustomerStatus.ORDER,
    OrderStatus.COOKING: CustomerStatus.PREPARING,
    OrderStatus.READY: CustomerStatus.PREPARING,
    OrderStatus.SERVED: CustomerStatus.SERVED,
    OrderStatus.COMPLETED: CustomerStatus.COMPLETED,
}


def valid_status_values() -> list[str]:
    """Every label ``parse_status`` accepts, canonical first."""
    return [s.value for s in OrderStatus] + list(_ALIASES)


def parse_status(value: Union[str, OrderStatus]) -> OrderStatus:
    """
    Resolve a status label to its stored value.

    Accepts canonical values and the customer-facing aliases.

    Raises:
        ValueError: If the label belongs to neither vocabulary
    """
    if isinstance(value, OrderStatus):
        return value
    if value in _ALIASES:
        return _ALIASES[value]
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValueError(
            f"Status must be one of: {', '.join(valid_status_values())}"
        )


def customer_status(value: Union[str, OrderStatus]) -> CustomerStatus:
    """Collapse a stored status into the customer-facing progression."""
    return _CUSTOMER_VIEW[parse_status(value)]


def rank(value: Union[str, OrderStatus]) -> int:
    """Position of a status in the forward progression."""
    return _PROGRESSION.index(parse_status(value))


def is_terminal(value: Optional[Union[str, OrderStatus]]) -> bool:
    """True once an order has left the active views."""
    if value is None:
        return False
    try:
        return parse_status(value) is TERMINAL_STATUS
    except ValueError:
        return False


def is_backward(current: Union[str, OrderStatus], new: Union[str, OrderStatus]) -> bool:
    return rank(new) < rank(current)
