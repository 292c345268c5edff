"""
Real-time Event Contract

Every frame on the live channel is a JSON envelope::

    {"event": "<name>", "data": <payload>}

Server → client events carry the full order (or menu item) in wire shape,
except deletions which carry only the identifier. The same envelope is used
for the few client → server control frames (identify, ping, connectionQuality).
"""

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from orderflow.status import Role


class EventDecodeError(ValueError):
    """A frame could not be turned into a known event."""


class EventName(str, enum.Enum):
    # Order lifecycle
    NEW_ORDER_PLACED = "newOrderPlaced"
    ORDER_STATUS_CHANGED = "orderStatusChanged"
    PAYMENT_SUCCESS = "paymentSuccess"
    ORDER_DELETED = "orderDeleted"

    # Menu
    NEW_FOOD_ADDED = "newFoodAdded"
    FOOD_UPDATED = "foodUpdated"
    FOOD_DELETED = "foodDeleted"

    # Connection control
    IDENTIFY = "identify"
    IDENTIFIED = "identified"
    PING = "ping"
    PONG = "pong"
    CONNECTION_QUALITY = "connectionQuality"


# =============================================================================
# ORDER EVENTS
# =============================================================================

@dataclass(frozen=True)
class NewOrderPlaced:
    order: dict[str, Any]
    name = EventName.NEW_ORDER_PLACED

    def payload(self) -> Any:
        return self.order


@dataclass(frozen=True)
class OrderStatusChanged:
    order: dict[str, Any]
    name = EventName.ORDER_STATUS_CHANGED

    def payload(self) -> Any:
        return self.order


@dataclass(frozen=True)
class PaymentSuccess:
    order: dict[str, Any]
    name = EventName.PAYMENT_SUCCESS

    def payload(self) -> Any:
        return self.order


@dataclass(frozen=True)
class OrderDeleted:
    order_id: str
    name = EventName.ORDER_DELETED

    def payload(self) -> Any:
        return self.order_id


# =============================================================================
# MENU EVENTS
# =============================================================================

@dataclass(frozen=True)
class NewFoodAdded:
    food: dict[str, Any]
    name = EventName.NEW_FOOD_ADDED

    def payload(self) -> Any:
        return self.food


@dataclass(frozen=True)
class FoodUpdated:
    food: dict[str, Any]
    name = EventName.FOOD_UPDATED

    def payload(self) -> Any:
        return self.food


@dataclass(frozen=True)
class FoodDeleted:
    food_id: str
    name = EventName.FOOD_DELETED

    def payload(self) -> Any:
        return self.food_id


# =============================================================================
# CONNECTION CONTROL
# =============================================================================

@dataclass(frozen=True)
class Identify:
    """Sent by a client right after connecting, and again after every reconnect."""
    role: Role
    user_id: Optional[str] = None
    name = EventName.IDENTIFY

    def payload(self) -> Any:
        return {"type": self.role.value, "userId": self.user_id}


@dataclass(frozen=True)
class Identified:
    success: bool
    role: Optional[Role] = None
    name = EventName.IDENTIFIED

    def payload(self) -> Any:
        return {"success": self.success, "role": self.role.value if self.role else None}


@dataclass(frozen=True)
class Ping:
    seq: int
    sent_at: float
    name = EventName.PING

    def payload(self) -> Any:
        return {"seq": self.seq, "sentAt": self.sent_at}


@dataclass(frozen=True)
class Pong:
    seq: int
    sent_at: float
    name = EventName.PONG

    def payload(self) -> Any:
        return {"seq": self.seq, "sentAt": self.sent_at}


@dataclass(frozen=True)
class ConnectionQualityRequest:
    name = EventName.CONNECTION_QUALITY

    def payload(self) -> Any:
        return {}


@dataclass(frozen=True)
class ConnectionQualityReport:
    connection_id: str
    uptime_seconds: float
    idle_seconds: float
    role: Optional[str] = None
    rooms: tuple[str, ...] = field(default_factory=tuple)
    name = EventName.CONNECTION_QUALITY

    def payload(self) -> Any:
        return {
            "connectionId": self.connection_id,
            "uptimeSeconds": self.uptime_seconds,
            "idleSeconds": self.idle_seconds,
            "role": self.role,
            "rooms": list(self.rooms),
        }


Event = Union[
    NewOrderPlaced,
    OrderStatusChanged,
    PaymentSuccess,
    OrderDeleted,
    NewFoodAdded,
    FoodUpdated,
    FoodDeleted,
    Identify,
    Identified,
    Ping,
    Pong,
    ConnectionQualityRequest,
    ConnectionQualityReport,
]

ORDER_EVENTS = frozenset({
    EventName.NEW_ORDER_PLACED,
    EventName.ORDER_STATUS_CHANGED,
    EventName.PAYMENT_SUCCESS,
    EventName.ORDER_DELETED,
})

MENU_EVENTS = frozenset({
    EventName.NEW_FOOD_ADDED,
    EventName.FOOD_UPDATED,
    EventName.FOOD_DELETED,
})


# =============================================================================
# ENCODING
# =============================================================================

def encode_event(event: Event) -> str:
    """Serialize an event into its JSON envelope."""
    return json.dumps({"event": event.name.value, "data": event.payload()})


def _require_dict(name: EventName, data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise EventDecodeError(f"{name.value} payload must be an object")
    return data


def _require_id(name: EventName, data: Any) -> str:
    if isinstance(data, dict):
        data = data.get("id") or data.get("_id")
    if not isinstance(data, str) or not data:
        raise EventDecodeError(f"{name.value} payload must be an identifier")
    return data


def _decode_identify(data: Any) -> Identify:
    data = _require_dict(EventName.IDENTIFY, data)
    try:
        role = Role(data.get("type"))
    except ValueError:
        raise EventDecodeError(f"Unknown role: {data.get('type')!r}")
    user_id = data.get("userId")
    if user_id is not None and not isinstance(user_id, str):
        raise EventDecodeError("userId must be a string")
    return Identify(role=role, user_id=user_id or None)


def _decode_identified(data: Any) -> Identified:
    data = _require_dict(EventName.IDENTIFIED, data)
    role = data.get("role")
    return Identified(success=bool(data.get("success")), role=Role(role) if role else None)


def _decode_probe(cls, name: EventName, data: Any):
    data = _require_dict(name, data)
    try:
        return cls(seq=int(data["seq"]), sent_at=float(data["sentAt"]))
    except (KeyError, TypeError, ValueError):
        raise EventDecodeError(f"{name.value} payload needs seq and sentAt")


def _decode_quality(data: Any) -> Union[ConnectionQualityRequest, ConnectionQualityReport]:
    if not data:
        return ConnectionQualityRequest()
    data = _require_dict(EventName.CONNECTION_QUALITY, data)
    return ConnectionQualityReport(
        connection_id=str(data.get("connectionId", "")),
        uptime_seconds=float(data.get("uptimeSeconds", 0.0)),
        idle_seconds=float(data.get("idleSeconds", 0.0)),
        role=data.get("role"),
        rooms=tuple(data.get("rooms") or ()),
    )


def decode_event(raw: Union[str, bytes]) -> Event:
    """
    Parse a JSON envelope back into an event.

    Raises:
        EventDecodeError: Malformed JSON, unknown event name, or a payload
            that does not fit the event
    """
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise EventDecodeError(f"Invalid JSON frame: {e}")

    if not isinstance(message, dict) or "event" not in message:
        raise EventDecodeError("Frame is not an event envelope")

    try:
        name = EventName(message["event"])
    except ValueError:
        raise EventDecodeError(f"Unknown event: {message['event']!r}")

    data = message.get("data")

    if name is EventName.NEW_ORDER_PLACED:
        return NewOrderPlaced(order=_require_dict(name, data))
    if name is EventName.ORDER_STATUS_CHANGED:
        return OrderStatusChanged(order=_require_dict(name, data))
    if name is EventName.PAYMENT_SUCCESS:
        return PaymentSuccess(order=_require_dict(name, data))
    if name is EventName.ORDER_DELETED:
        return OrderDeleted(order_id=_require_id(name, data))
    if name is EventName.NEW_FOOD_ADDED:
        return NewFoodAdded(food=_require_dict(name, data))
    if name is EventName.FOOD_UPDATED:
        return FoodUpdated(food=_require_dict(name, data))
    if name is EventName.FOOD_DELETED:
        return FoodDeleted(food_id=_require_id(name, data))
    if name is EventName.IDENTIFY:
        return _decode_identify(data)
    if name is EventName.IDENTIFIED:
        return _decode_identified(data)
    if name is EventName.PING:
        return _decode_probe(Ping, name, data)
    if name is EventName.PONG:
        return _decode_probe(Pong, name, data)
    return _decode_quality(data)
