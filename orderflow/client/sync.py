"""
Order Sync

Wires one view together: the API client seeds the list, a live channel (or
an inert one on serverless hosting) delivers events, and a poller keeps
reconciling in the background. Both sources feed the same reducer.

Usage:
    pool = ChannelPool.from_settings(settings)
    async with OrdersApiClient("http://localhost:8000") as api:
        sync = OrderSync(api, Viewer(Role.USER, user_id="u1"), "http://localhost:8000", pool=pool)
        await sync.start()
        ...
        await sync.stop()
"""

import logging
from typing import Any, Callable, Optional, Union

from orderflow.client.api import OrdersApiClient
from orderflow.client.connection import (
    ChannelPool,
    NullChannel,
    RealtimeChannel,
    is_serverless_platform,
    live_channel_url,
)
from orderflow.client.polling import Order, OrderPoller, order_id
from orderflow.client.reducer import ActiveOrders, NoticeSink, Viewer
from orderflow.core.config import Settings, get_settings
from orderflow.realtime.events import ORDER_EVENTS, EventName

logger = logging.getLogger(__name__)


class OrderSync:
    """
    Keeps an ``ActiveOrders`` list in step with the server.

    The customer fetch is not limited to active orders: completed orders
    stay in the poller's snapshot, so a completion is seen as a status
    change and an order that vanishes was really deleted.
    """

    def __init__(
        self,
        api: OrdersApiClient,
        viewer: Viewer,
        base_url: str,
        pool: Optional[ChannelPool] = None,
        serverless: Optional[bool] = None,
        notify: Optional[NoticeSink] = None,
        settings: Optional[Settings] = None,
        poll_interval: Optional[float] = None,
    ):
        settings = settings or get_settings()

        self.api = api
        self.viewer = viewer
        self.base_url = base_url
        self.pool = pool
        if serverless is None:
            serverless = settings.serverless_mode or is_serverless_platform(
                base_url, settings.serverless_host_markers_list
            )
        self.serverless = serverless

        if poll_interval is None:
            poll_interval = (
                settings.poll_interval_seconds if serverless
                else settings.backup_poll_interval_seconds
            )
        self.poll_interval = poll_interval

        self.orders = ActiveOrders(viewer, notify)
        self.channel: Union[RealtimeChannel, NullChannel] = NullChannel()
        self.poller: Optional[OrderPoller] = None
        self._handlers: dict[EventName, Callable[[Any], Any]] = {}
        self._stop_polling: Optional[Callable[[], None]] = None

    async def fetch(self) -> list[Order]:
        """Orders in the viewer's scope, completed ones included."""
        if self.viewer.is_admin:
            return await self.api.list_orders()
        if not self.viewer.user_id and not self.viewer.email:
            return []
        return await self.api.list_orders(user_id=self.viewer.user_id, user_email=self.viewer.email)

    async def start(self) -> None:
        initial = await self.fetch()
        self.orders.load(initial)
        logger.info(f"Tracking {len(self.orders)} active order(s) for {self.viewer.role.value}")

        if not self.serverless and self.pool is not None:
            self.channel = await self.pool.acquire(
                live_channel_url(self.base_url),
                self.viewer.role,
                self.viewer.user_id,
            )
        for name in ORDER_EVENTS:
            handler = self._handler_for(name)
            self._handlers[name] = handler
            self.channel.on(name, handler)

        self.poller = OrderPoller(
            self.fetch,
            on_new_order=self.orders.on_new_order,
            on_status_change=self.orders.on_status_change,
            on_removed=self._on_removed,
            interval=self.poll_interval,
            initial_snapshot=initial,
        )
        self._stop_polling = self.poller.start()

    def _handler_for(self, name: EventName) -> Callable[[Any], Any]:
        def handle(payload: Any) -> None:
            self.orders.apply(name, payload)
        return handle

    def _on_removed(self, previous: Order) -> None:
        self.orders.on_order_deleted(order_id(previous))

    async def refresh(self) -> None:
        """Reconcile now instead of waiting for the next tick."""
        if self.poller is not None:
            await self.poller.poll_once()

    async def stop(self) -> None:
        """Stop polling and unsubscribe. A pooled channel stays open for other views."""
        if self._stop_polling is not None:
            self._stop_polling()
            self._stop_polling = None
        for name, handler in self._handlers.items():
            self.channel.off(name, handler)
        self._handlers.clear()
