"""
Chaos Simulation Script

Fires concurrent orders at the API and walks them through the kitchen
workflow, so live dashboards (or scripts/watch_orders.py) have something to
show.
Run from project root: python scripts/simulate.py
"""

import argparse
import asyncio
import os
import random
import sys
import time
from datetime import datetime
from typing import Any

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from orderflow.client.api import OrdersApiClient  # noqa: E402
from orderflow.status import OrderStatus  # noqa: E402

# Configuration
API_BASE_URL = "http://localhost:8000"
TOTAL_ORDERS = 50

# Sample data for random orders
FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
MENU_ITEMS = [
    {"foodName": "Paneer Tikka", "price": 240, "category": "Starters", "type": "Veg"},
    {"foodName": "Chicken Biryani", "price": 320, "category": "Main Course", "type": "Non-Veg"},
    {"foodName": "Masala Dosa", "price": 150, "category": "South Indian", "type": "Veg"},
    {"foodName": "Butter Naan", "price": 60, "category": "Breads", "type": "Veg"},
    {"foodName": "Fish Curry", "price": 350, "category": "Main Course", "type": "Non-Veg"},
    {"foodName": "Gulab Jamun", "price": 90, "category": "Desserts", "type": "Veg"},
    {"foodName": "Cold Coffee", "price": 120, "category": "Beverages", "type": "Other"},
]

WORKFLOW = [OrderStatus.COOKING, OrderStatus.READY, OrderStatus.SERVED, OrderStatus.COMPLETED]


def generate_random_customer() -> dict[str, str]:
    """Generate random customer info."""
    first = random.choice(FIRST_NAMES)
    uid = f"sim-{first.lower()}-{random.randint(100, 999)}"
    return {
        "userId": uid,
        "userEmail": f"{uid}@example.com",
        "userName": first,
    }


def generate_order_payload(total_tables: int = 40) -> dict[str, Any]:
    """Random dine-in or parcel order."""
    payload = {
        **generate_random_customer(),
        **random.choice(MENU_ITEMS),
        "quantity": random.randint(1, 3),
    }
    if random.random() < 0.7:
        payload["tableNumber"] = random.randint(1, total_tables)
        payload["chairIndices"] = sorted(random.sample(range(4), random.randint(1, 4)))
    else:
        payload["contactNumber"] = f"98{random.randint(10000000, 99999999)}"
        payload["deliveryLocation"] = {"address": f"{random.randint(1, 200)} MG Road"}
    return payload


async def place_order(api: OrdersApiClient, order_num: int) -> dict[str, Any]:
    start_time = time.time()
    try:
        order = await api.create_order(generate_order_payload())
        return {
            "order_num": order_num,
            "success": True,
            "order_id": order["id"],
            "total": order["price"] * order["quantity"],
            "time": round(time.time() - start_time, 3),
        }
    except Exception as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def walk_order(api: OrdersApiClient, order_id: str, step_delay: float) -> int:
    """Advance one order through the workflow, paying along the way."""
    steps = 0
    for status in WORKFLOW:
        await asyncio.sleep(random.uniform(0, step_delay))
        await api.update_order_status(order_id, status=status.value)
        steps += 1
        if status is OrderStatus.SERVED:
            await api.update_order_status(
                order_id,
                payment_status="Paid",
                payment_method=random.choice(["UPI", "Cash"]),
            )
    return steps


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(
    num_orders: int = TOTAL_ORDERS,
    walk: bool = True,
    step_delay: float = 1.0,
    base_url: str = API_BASE_URL,
) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 CHAOS SIMULATION - HIGH CONCURRENCY TEST")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {base_url}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with OrdersApiClient(base_url, timeout=30.0) as api:
        print("\n🚀 Placing orders...\n")
        results = await asyncio.gather(*(place_order(api, i + 1) for i in range(num_orders)))

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        walked = 0
        if walk and successful:
            print("\n👨‍🍳 Walking orders through the kitchen...\n")
            outcomes = await asyncio.gather(
                *(walk_order(api, r["order_id"], step_delay) for r in successful),
                return_exceptions=True,
            )
            walked = sum(1 for o in outcomes if not isinstance(o, Exception))

    total_time = round(time.time() - start_time, 2)

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    if walk:
        print(f"🍽️  Completed Workflows: {walked}/{len(successful)}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total Revenue: ₹{sum(r['total'] for r in successful):.2f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "walked": walked,
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Chaos Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--no-walk", action="store_true", help="Only place orders")
    parser.add_argument("--step-delay", type=float, default=1.0, help="Max seconds between status steps")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    asyncio.run(run_simulation(
        num_orders=args.orders,
        walk=not args.no_walk,
        step_delay=args.step_delay,
        base_url=args.url,
    ))
