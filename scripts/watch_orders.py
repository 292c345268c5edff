"""
Live Order Watcher

Follows the active orders of an admin or a customer from the terminal,
using the same live channel + polling combination as the web views.
Run from project root:

    python scripts/watch_orders.py --admin
    python scripts/watch_orders.py --user-id sim-john-123
"""

import argparse
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from orderflow.client import ChannelPool, OrdersApiClient, OrderSync, Viewer  # noqa: E402
from orderflow.client.reducer import Notice  # noqa: E402
from orderflow.core.config import get_settings, setup_logging  # noqa: E402
from orderflow.status import Role  # noqa: E402

logger = logging.getLogger("orderflow.watch")


def print_notice(notice: Notice) -> None:
    print(f"🔔 [{notice.kind.value}] {notice.message}")


async def watch(base_url: str, viewer: Viewer, report_every: float) -> None:
    settings = get_settings()
    pool = ChannelPool.from_settings(settings)

    async with OrdersApiClient(base_url) as api:
        sync = OrderSync(api, viewer, base_url, pool=pool, notify=print_notice, settings=settings)
        await sync.start()
        print(f"👀 Watching {len(sync.orders)} active order(s) "
              f"({'polling only' if sync.serverless else 'live + polling'})")
        try:
            while True:
                await asyncio.sleep(report_every)
                print(f"📋 {len(sync.orders)} active | channel: {sync.channel.state.value} "
                      f"| quality: {sync.channel.quality}")
        finally:
            await sync.stop()
            await pool.close_all()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Watch active orders")
    parser.add_argument("--url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--admin", action="store_true", help="Watch every order")
    parser.add_argument("--user-id", help="Customer user id")
    parser.add_argument("--email", help="Customer email")
    parser.add_argument("--report-every", type=float, default=30.0, help="Seconds between summaries")
    args = parser.parse_args()

    setup_logging()
    viewer = Viewer(
        role=Role.ADMIN if args.admin else Role.USER,
        user_id=args.user_id,
        email=args.email,
    )
    try:
        asyncio.run(watch(args.url, viewer, args.report_every))
    except KeyboardInterrupt:
        print("\n👋 Stopped")
