"""
Pydantic Schemas for Request/Response Validation

Wire format is camelCase (``userId``, ``foodName``, ``tableNumber`` ...) so
browser clients and the real-time events share one order shape. Python
callers may use either spelling on input.
"""

import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from orderflow.status import (
    FoodSize,
    FoodType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    parse_status,
)

EMAIL_PATTERN = re.compile(r'^[\w\.+-]+@[\w\.-]+\.\w+$')


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class DeliveryLocation(CamelModel):
    """Where a parcel order goes."""
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    address: str = Field(default="", max_length=500)


class OrderCreate(CamelModel):
    """
    Request schema for creating an order.

    An order is either dine-in (``tableNumber`` >= 1, no contact number)
    or parcel (``tableNumber`` 0 with a ``contactNumber``), never both
    and never neither.
    """

    # Requester
    user_id: str = Field(default="", max_length=128, examples=["firebase-uid-123"])
    user_email: Optional[str] = Field(None, examples=["john@example.com"])
    user_name: str = Field(default="Guest User", max_length=100)

    # Food line item
    food_name: str = Field(..., min_length=1, max_length=150, examples=["Pizza"])
    category: str = Field(default="Uncategorized", max_length=100)
    food_type: FoodType = Field(default=FoodType.VEG, alias="type")
    selected_size: Optional[FoodSize] = None
    image: str = Field(default="", max_length=500)
    quantity: int = Field(..., ge=1, le=99, examples=[1])
    price: float = Field(..., gt=0, examples=[300])

    # Dine-in
    table_number: int = Field(default=0, ge=0, examples=[5])
    chair_indices: List[int] = Field(default_factory=list, examples=[[0, 1]])

    # Parcel
    contact_number: str = Field(default="", max_length=20)
    delivery_location: Optional[DeliveryLocation] = None

    @field_validator("food_name")
    @classmethod
    def validate_food_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Food name is required")
        return v

    @field_validator("user_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v.strip() == "":
            return None
        v = v.strip()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format")
        return v

    @field_validator("contact_number")
    @classmethod
    def validate_contact_number(cls, v: str) -> str:
        v = v.strip()
        if v and len(re.sub(r"[^\d]", "", v)) < 10:
            raise ValueError("Contact number must have at least 10 digits")
        return v

    @field_validator("chair_indices")
    @classmethod
    def validate_chair_indices(cls, v: List[int]) -> List[int]:
        if any(idx < 0 for idx in v):
            raise ValueError("Chair indices cannot be negative")
        if len(set(v)) != len(v):
            raise ValueError("Chair indices must be unique")
        return sorted(v)

    @model_validator(mode="after")
    def validate_service_mode(self) -> "OrderCreate":
        dine_in = self.table_number > 0
        has_contact = bool(self.contact_number)

        if dine_in and has_contact:
            raise ValueError(
                "An order is either dine-in (tableNumber) or parcel (contactNumber), not both"
            )
        if not dine_in and not has_contact:
            raise ValueError(
                "Provide a tableNumber for dine-in orders or a contactNumber for parcel orders"
            )
        if not dine_in and self.chair_indices:
            raise ValueError("chairIndices only apply to dine-in orders")
        return self

    @property
    def is_dine_in(self) -> bool:
        return self.table_number > 0


class OrderStatusUpdate(CamelModel):
    """Admin update: at least one field required."""
    status: Optional[OrderStatus] = Field(None, examples=["Cooking"])
    payment_status: Optional[PaymentStatus] = Field(None, examples=["Paid"])
    payment_method: Optional[PaymentMethod] = Field(None, examples=["UPI"])

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Optional[OrderStatus]:
        if v is None or v == "":
            return None
        if not isinstance(v, (str, OrderStatus)):
            raise ValueError("Status must be a string")
        return parse_status(v)

    @model_validator(mode="after")
    def validate_not_empty(self) -> "OrderStatusUpdate":
        if self.status is None and self.payment_status is None and self.payment_method is None:
            raise ValueError(
                "Please provide status, paymentStatus, or paymentMethod to update"
            )
        return self


class FoodCreate(CamelModel):
    """Menu item creation."""
    name: str = Field(..., min_length=1, max_length=150)
    price: float = Field(..., gt=0)
    category: str = Field(default="Uncategorized", max_length=100)
    food_type: FoodType = Field(default=FoodType.VEG, alias="type")
    image: str = Field(default="", max_length=500)
    description: str = Field(default="", max_length=2000)
    is_available: bool = True


class FoodUpdate(CamelModel):
    """Partial menu item update."""
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    price: Optional[float] = Field(None, gt=0)
    category: Optional[str] = Field(None, max_length=100)
    food_type: Optional[FoodType] = Field(None, alias="type")
    image: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=2000)
    is_available: Optional[bool] = None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderResponse(CamelModel):
    """One order as stored, in wire shape."""
    id: str
    user_id: str
    user_email: Optional[str]
    user_name: str
    food_name: str
    category: str
    food_type: FoodType = Field(alias="type")
    selected_size: Optional[FoodSize]
    image: str
    quantity: int
    price: float
    table_number: int
    chair_indices: List[int]
    chairs_booked: int
    chair_letters: str
    is_in_restaurant: bool
    contact_number: str
    delivery_location: DeliveryLocation
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod]
    created_at: datetime
    updated_at: Optional[datetime]


class OrderCreateResponse(CamelModel):
    """Response after creating one order."""
    success: bool = True
    message: str
    order: OrderResponse


class OrdersCreateResponse(CamelModel):
    """Response after a bulk checkout."""
    success: bool = True
    message: str
    orders: List[OrderResponse]


class OrderUpdateResponse(CamelModel):
    success: bool = True
    message: str
    order: OrderResponse


class OrderDeleteResponse(CamelModel):
    success: bool = True
    message: str
    deleted_order_id: str


class FoodResponse(CamelModel):
    id: str
    name: str
    price: float
    category: str
    food_type: FoodType = Field(alias="type")
    image: str
    description: str
    is_available: bool
    created_at: datetime
    updated_at: Optional[datetime]


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    message: str
    errors: Optional[List[dict[str, str]]] = None


class HealthResponse(CamelModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    notification_service: str
    live_connections: int
    timestamp: datetime


def order_payload(order: Any) -> dict[str, Any]:
    """JSON-ready wire shape of an order (used for broadcasts)."""
    return OrderResponse.model_validate(order).model_dump(mode="json", by_alias=True)


def food_payload(food: Any) -> dict[str, Any]:
    return FoodResponse.model_validate(food).model_dump(mode="json", by_alias=True)
