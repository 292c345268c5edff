"""
Notification Dispatcher

Bridges broadcaster events to the Celery notification task. Enqueueing
talks to the broker, so it runs in a worker thread to keep the event loop
free; failures are logged and never reach the caller.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from orderflow.services.notifications.messages import (
    ADMIN_NEW_ORDER,
    ORDER_PLACED,
    PAYMENT_CONFIRMED,
    STATUS_CHANGED,
)

logger = logging.getLogger(__name__)

Enqueue = Callable[[str, dict[str, Any]], Any]


def _celery_enqueue(kind: str, order: dict[str, Any]) -> Any:
    from orderflow.tasks import deliver_order_notification

    return deliver_order_notification.delay(kind, order)


class NotificationDispatcher:
    """Maps order events onto notification kinds and enqueues them."""

    def __init__(self, enqueue: Optional[Enqueue] = None):
        self._enqueue = enqueue or _celery_enqueue

    async def dispatch(self, kind: str, order: dict[str, Any]) -> bool:
        try:
            await asyncio.to_thread(self._enqueue, kind, order)
            return True
        except Exception as e:
            logger.warning(f"Could not enqueue {kind} notification for order {order.get('id')}: {e}")
            return False

    async def order_created(self, order: dict[str, Any]) -> None:
        await self.dispatch(ORDER_PLACED, order)
        await self.dispatch(ADMIN_NEW_ORDER, order)

    async def order_status_changed(self, order: dict[str, Any]) -> None:
        await self.dispatch(STATUS_CHANGED, order)

    async def payment_succeeded(self, order: dict[str, Any]) -> None:
        await self.dispatch(PAYMENT_CONFIRMED, order)
