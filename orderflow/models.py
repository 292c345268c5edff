"""
SQLAlchemy Database Models

Order lifecycle storage for the restaurant:
- Dine-in orders (table + chairs) and parcel orders (contact number)
- Status workflow and orthogonal payment sub-state
- Menu items, whose changes are pushed to every live client
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, Enum, Boolean, JSON

from orderflow.database import Base
from orderflow.status import (
    FoodSize,
    FoodType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    """
    One ordered food line for one customer.

    Tracks the lifecycle from checkout to completion. Completed orders
    stay in the table for history views.
    """
    __tablename__ = "orders"

    # Opaque identifier, assigned on creation
    id = Column(String(32), primary_key=True, default=_new_id)

    # =========================================================================
    # REQUESTER (either field may be the correlation key)
    # =========================================================================
    user_id = Column(String(128), nullable=False, default="", index=True)
    user_email = Column(String(255), nullable=True, index=True)
    user_name = Column(String(100), nullable=False, default="Guest User")

    # =========================================================================
    # FOOD LINE ITEM
    # =========================================================================
    food_name = Column(String(150), nullable=False)
    category = Column(String(100), nullable=False, default="Uncategorized")
    food_type = Column(Enum(FoodType), nullable=False, default=FoodType.VEG)
    selected_size = Column(Enum(FoodSize), nullable=True)
    image = Column(String(500), nullable=False, default="")
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)

    # =========================================================================
    # DINE-IN (table_number >= 1) or PARCEL (table_number == 0)
    # =========================================================================
    table_number = Column(Integer, nullable=False, default=0)
    chair_indices = Column(JSON, nullable=False, default=list)
    chairs_booked = Column(Integer, nullable=False, default=0)
    chair_letters = Column(String(20), nullable=False, default="")
    is_in_restaurant = Column(Boolean, nullable=False, default=True)
    contact_number = Column(String(20), nullable=False, default="")
    delivery_address = Column(Text, nullable=False, default="")
    delivery_latitude = Column(Float, nullable=True)
    delivery_longitude = Column(Float, nullable=True)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    payment_status = Column(
        Enum(PaymentStatus),
        default=PaymentStatus.UNPAID,
        nullable=False,
    )
    payment_method = Column(Enum(PaymentMethod), nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    @property
    def is_dine_in(self) -> bool:
        return self.table_number > 0

    @property
    def delivery_location(self) -> dict:
        return {
            "latitude": self.delivery_latitude,
            "longitude": self.delivery_longitude,
            "address": self.delivery_address,
        }

    def __repr__(self):
        return f"<Order #{self.id} - {self.food_name} x{self.quantity} - {self.status.value}>"


class Food(Base):
    """Menu item. Changes are broadcast to all connected clients."""
    __tablename__ = "foods"

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String(150), nullable=False)
    price = Column(Float, nullable=False)
    category = Column(String(100), nullable=False, default="Uncategorized")
    food_type = Column(Enum(FoodType), nullable=False, default=FoodType.VEG)
    image = Column(String(500), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    is_available = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Food #{self.id} - {self.name}>"
