"""
Async client library for staying in sync with the order service.

    api         HTTP order API client
    connection  live channel with reconnect / heartbeat, channel pool
    polling     fetch-and-diff fallback
    reducer     per-view active order list
    sync        composition of the above for one view
"""

from orderflow.client.api import ApiError, OrdersApiClient
from orderflow.client.connection import (
    ChannelOptions,
    ChannelPool,
    ChannelState,
    NullChannel,
    RealtimeChannel,
    is_serverless_platform,
)
from orderflow.client.polling import OrderDiff, OrderPoller, diff_orders
from orderflow.client.reducer import ActiveOrders, Notice, NoticeKind, Viewer
from orderflow.client.sync import OrderSync

__all__ = [
    "ApiError",
    "OrdersApiClient",
    "ChannelOptions",
    "ChannelPool",
    "ChannelState",
    "NullChannel",
    "RealtimeChannel",
    "is_serverless_platform",
    "OrderDiff",
    "OrderPoller",
    "diff_orders",
    "ActiveOrders",
    "Notice",
    "NoticeKind",
    "Viewer",
    "OrderSync",
]
