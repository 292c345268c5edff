"""
Event Broadcaster

Called by the mutation services after a successful commit. Each call
schedules the emission as a background task and returns immediately, so
the HTTP response never waits on (or fails because of) live listeners.

Routing:
    newOrderPlaced      admins + user:<userId>
    orderStatusChanged  admins + user:<userId> + users
    paymentSuccess      admins + user:<userId> + users
    orderDeleted        everyone
    menu events         everyone

The ``users`` catch-all reaches customers that never joined their own
room; they filter by comparing the order's owner with their identity.
"""

import asyncio
import logging
from typing import Any, Optional

from orderflow.realtime.events import (
    Event,
    FoodDeleted,
    FoodUpdated,
    NewFoodAdded,
    NewOrderPlaced,
    OrderDeleted,
    OrderStatusChanged,
    PaymentSuccess,
)
from orderflow.realtime.hub import ADMINS_ROOM, USERS_ROOM, RealtimeHub, user_room
from orderflow.services.notifications.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


def rooms_for(event: Event) -> Optional[list[str]]:
    """
    Target rooms of a server event.

    Returns:
        Room names, or None when the event goes to every connection
    """
    if isinstance(event, NewOrderPlaced):
        rooms = [ADMINS_ROOM]
        if event.order.get("userId"):
            rooms.append(user_room(event.order["userId"]))
        return rooms

    if isinstance(event, (OrderStatusChanged, PaymentSuccess)):
        rooms = [ADMINS_ROOM]
        if event.order.get("userId"):
            rooms.append(user_room(event.order["userId"]))
        rooms.append(USERS_ROOM)
        return rooms

    return None


class EventBroadcaster:
    """
    Fire-and-forget publisher for order and menu events.

    Works without a hub (serverless deployments): events are then dropped
    and clients reconcile through polling.
    """

    def __init__(
        self,
        hub: Optional[RealtimeHub] = None,
        notifier: Optional[NotificationDispatcher] = None,
    ):
        self.hub = hub
        self.notifier = notifier
        self._tasks: set[asyncio.Task] = set()

    # =========================================================================
    # ORDER EVENTS
    # =========================================================================

    def order_created(self, order: dict[str, Any]) -> None:
        self.publish(NewOrderPlaced(order=order))
        if self.notifier:
            self._schedule(self.notifier.order_created(order), "notify newOrderPlaced")

    def order_status_changed(self, order: dict[str, Any]) -> None:
        self.publish(OrderStatusChanged(order=order))
        if self.notifier:
            self._schedule(self.notifier.order_status_changed(order), "notify orderStatusChanged")

    def payment_succeeded(self, order: dict[str, Any]) -> None:
        self.publish(PaymentSuccess(order=order))
        if self.notifier:
            self._schedule(self.notifier.payment_succeeded(order), "notify paymentSuccess")

    def order_deleted(self, order_id: str) -> None:
        self.publish(OrderDeleted(order_id=order_id))

    # =========================================================================
    # MENU EVENTS
    # =========================================================================

    def food_added(self, food: dict[str, Any]) -> None:
        self.publish(NewFoodAdded(food=food))

    def food_updated(self, food: dict[str, Any]) -> None:
        self.publish(FoodUpdated(food=food))

    def food_deleted(self, food_id: str) -> None:
        self.publish(FoodDeleted(food_id=food_id))

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    def publish(self, event: Event) -> None:
        """Schedule one emission; never raises."""
        if self.hub is None:
            logger.debug(f"No live hub, {event.name.value} not pushed")
            return
        self._schedule(self._emit(event), event.name.value)

    async def _emit(self, event: Event) -> None:
        delivered = await self.hub.emit(event, rooms_for(event))
        logger.debug(f"📣 {event.name.value} delivered to {delivered} client(s)")

    def _schedule(self, coro, label: str) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning(f"No running event loop, {label} dropped")
            return
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Broadcast failed: {exc!r}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled emission to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
