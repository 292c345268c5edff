"""
Order Mutation Service

Validates, persists and announces order changes. Every mutation commits
first and only then hands the stored order to the broadcaster, so a failed
request never produces an event.
"""

import logging
from collections import defaultdict
from typing import Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.config import Settings
from orderflow.core.exceptions import NotFoundError, OrderValidationError, PermissionDeniedError
from orderflow.models import Order
from orderflow.realtime.broadcaster import EventBroadcaster
from orderflow.schemas import OrderCreate, OrderStatusUpdate, order_payload
from orderflow.status import OrderStatus, PaymentStatus, is_backward, parse_status

logger = logging.getLogger(__name__)


def chair_letters(indices: Sequence[int]) -> str:
    """Chair indices as seat letters: ``[0, 2]`` → ``"a c"``."""
    return " ".join(chr(ord("a") + i) for i in sorted(indices))


class OrderService:
    """Order CRUD bound to one database session."""

    def __init__(self, db: AsyncSession, broadcaster: EventBroadcaster, settings: Settings):
        self.db = db
        self.broadcaster = broadcaster
        self.settings = settings

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list_orders(
        self,
        user_id: Optional[str] = None,
        user_email: Optional[str] = None,
        status: Optional[str] = None,
        active: bool = False,
    ) -> list[Order]:
        """
        Orders, newest first.

        ``user_id`` and ``user_email`` scope to one customer; an order
        matches when either identifier matches. Emails compare case-insensitively.
        """
        query = select(Order).order_by(Order.created_at.desc())

        owner_filters = []
        if user_id:
            owner_filters.append(Order.user_id == user_id)
        if user_email:
            owner_filters.append(func.lower(Order.user_email) == user_email.lower())
        if owner_filters:
            query = query.where(or_(*owner_filters))

        if status:
            try:
                query = query.where(Order.status == parse_status(status))
            except ValueError as e:
                raise OrderValidationError(str(e))

        if active:
            query = query.where(Order.status != OrderStatus.COMPLETED)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_order(self, order_id: str) -> Order:
        order = await self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    async def occupied_tables(self) -> dict[int, list[int]]:
        """Chairs held by dine-in orders that are not completed, per table."""
        result = await self.db.execute(
            select(Order.table_number, Order.chair_indices).where(
                Order.status != OrderStatus.COMPLETED,
                Order.is_in_restaurant.is_(True),
                Order.table_number > 0,
            )
        )

        occupied: dict[int, set[int]] = defaultdict(set)
        for table_number, chairs in result.all():
            occupied[table_number].update(c for c in (chairs or []) if c is not None)
        return {table: sorted(chairs) for table, chairs in sorted(occupied.items())}

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def _build_order(self, data: OrderCreate) -> Order:
        if data.table_number > self.settings.total_tables:
            raise OrderValidationError(
                f"Table number must be between 1 and {self.settings.total_tables}"
            )
        if any(idx >= self.settings.chairs_per_table for idx in data.chair_indices):
            raise OrderValidationError(
                f"Chair indices must be between 0 and {self.settings.chairs_per_table - 1}"
            )

        location = data.delivery_location
        return Order(
            user_id=data.user_id,
            user_email=data.user_email,
            user_name=data.user_name,
            food_name=data.food_name,
            category=data.category,
            food_type=data.food_type,
            selected_size=data.selected_size,
            image=data.image,
            quantity=data.quantity,
            price=data.price,
            table_number=data.table_number,
            chair_indices=list(data.chair_indices),
            chairs_booked=len(data.chair_indices),
            chair_letters=chair_letters(data.chair_indices),
            is_in_restaurant=data.is_dine_in,
            contact_number=data.contact_number,
            delivery_address=location.address if location else "",
            delivery_latitude=location.latitude if location else None,
            delivery_longitude=location.longitude if location else None,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.UNPAID,
        )

    async def create_order(self, data: OrderCreate) -> Order:
        order = self._build_order(data)
        self.db.add(order)
        await self.db.commit()
        await self.db.refresh(order)

        logger.info(f"📦 Order #{order.id} created: {order.food_name} x{order.quantity}")
        self.broadcaster.order_created(order_payload(order))
        return order

    async def create_orders(self, items: Sequence[OrderCreate]) -> list[Order]:
        """Bulk checkout. Either every order is stored or none is."""
        if not items:
            raise OrderValidationError("Invalid order data")

        orders = [self._build_order(item) for item in items]
        self.db.add_all(orders)
        await self.db.commit()
        for order in orders:
            await self.db.refresh(order)

        logger.info(f"📦 {len(orders)} orders created")
        for order in orders:
            self.broadcaster.order_created(order_payload(order))
        return orders

    async def update_order_status(self, order_id: str, update: OrderStatusUpdate) -> Order:
        order = await self.get_order(order_id)

        if update.status is not None:
            if is_backward(order.status, update.status):
                logger.warning(
                    f"Order #{order.id} moved backwards: {order.status.value} → {update.status.value}"
                )
            order.status = update.status

        if update.payment_status is not None:
            if order.payment_status is PaymentStatus.PAID and update.payment_status is PaymentStatus.UNPAID:
                logger.warning(f"Order #{order.id} payment reverted to Unpaid")
            order.payment_status = update.payment_status

        if update.payment_method is not None:
            order.payment_method = update.payment_method

        await self.db.commit()
        await self.db.refresh(order)

        logger.info(
            f"🔄 Order #{order.id} updated: status={order.status.value}, "
            f"payment={order.payment_status.value}"
        )

        payload = order_payload(order)
        if update.status is not None:
            self.broadcaster.order_status_changed(payload)
        if update.payment_status is PaymentStatus.PAID:
            self.broadcaster.payment_succeeded(payload)
        return order

    async def delete_order(self, order_id: str, is_admin: bool = False) -> str:
        """
        Remove an order.

        Customers may only delete completed orders; admins may delete any.
        """
        order = await self.get_order(order_id)

        if not is_admin and order.status is not OrderStatus.COMPLETED:
            raise PermissionDeniedError("You can only delete completed orders")

        await self.db.delete(order)
        await self.db.commit()

        logger.info(f"🗑️ Order #{order_id} deleted ({'admin' if is_admin else 'user'})")
        self.broadcaster.order_deleted(order_id)
        return order_id
