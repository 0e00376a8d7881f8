"""
Lifecycle Simulation Script

Fires a burst of diner orders at the order store, then plays the kitchen:
polls live orders, starts preparing, sends take-outs out with a driver
and completes everything, cancelling a few along the way.

Run from project root: python scripts/simulate.py [--orders 20] [--base-url URL --token TOKEN]

Author: Khalil_Bannouri
Version: 1.0.0
"""

import argparse
import asyncio
import random
import time
from datetime import datetime
from decimal import Decimal
from typing import Any

from orderdesk.core.config import ClientContext, get_settings, setup_logging
from orderdesk.core.exceptions import OrderDeskError
from orderdesk.reconciler import OrderReconciler
from orderdesk.schemas import Driver, OrderStatus, OrderType, validate_submission
from orderdesk.services.notifications import MockNotificationService
from orderdesk.services.orders import BaseOrderApi, HttpOrderApi, get_order_api

TOTAL_ORDERS = 20

STREETS = ["Rue de Rivoli", "Avenue Foch", "Boulevard Voltaire", "Rue Oberkampf", "Quai de Valmy"]
DRIVERS = [Driver(name="Sam", phone="0600000001"), Driver(name="Lina"), Driver(name="Yanis")]
MENU_ITEMS = [
    {"name": "Margherita", "size": "medium", "price": "11.50"},
    {"name": "Regina", "size": "large", "price": "14.90"},
    {"name": "Burrata Salad", "price": "9.00"},
    {"name": "Tiramisu", "price": "6.50"},
    {"name": "Lemonade", "price": "3.20"},
]


def generate_submission_payload(restaurant_name: str) -> dict[str, Any]:
    """Generate a random diner submission."""
    items = []
    for _ in range(random.randint(1, 4)):
        item = random.choice(MENU_ITEMS).copy()
        item["quantity"] = random.randint(1, 2)
        items.append(item)
    total = sum(Decimal(i["price"]) * i["quantity"] for i in items)

    payload: dict[str, Any] = {
        "restaurantName": restaurant_name,
        "orderType": random.choice([t.value for t in OrderType]),
        "paymentMethod": random.choice(["credit_card", "cash"]),
        "items": items,
        "totalPrice": str(total),
    }
    if payload["orderType"] == OrderType.DINE_IN.value:
        payload["tableNumber"] = str(random.randint(1, 30))
    else:
        payload["deliveryAddress"] = f"{random.randint(1, 200)} {random.choice(STREETS)}"
    return payload


async def submit_one(api: BaseOrderApi, restaurant_name: str, n: int) -> dict[str, Any]:
    start_time = time.time()
    try:
        order = await api.submit_order(validate_submission(generate_submission_payload(restaurant_name)))
        return {"n": n, "success": True, "order_id": order.id, "time": round(time.time() - start_time, 3)}
    except OrderDeskError as e:
        return {"n": n, "success": False, "error": str(e)[:100], "time": round(time.time() - start_time, 3)}


async def play_kitchen(reconciler: OrderReconciler, cancel_rate: float) -> dict[str, int]:
    """Walk every open order to a terminal status, leaving aside orders whose transition failed."""
    outcome = {"completed": 0, "cancelled": 0, "errors": 0}
    skipped: set[str] = set()

    await reconciler.refresh()
    while True:
        open_orders = [
            o for o in reconciler.orders
            if o.status not in (OrderStatus.COMPLETED, OrderStatus.CANCELLED) and o.id not in skipped
        ]
        if not open_orders:
            return outcome

        order = open_orders[0]
        try:
            if random.random() < cancel_rate:
                result = await reconciler.transition(order.id, OrderStatus.CANCELLED, confirmed=True)
                outcome["cancelled"] += 1
                print(f"   ✖ #{order.order_number} cancelled: {result.message}")
            elif order.status == OrderStatus.PENDING:
                await reconciler.transition(order.id, OrderStatus.PREPARING)
            elif order.status == OrderStatus.PREPARING and order.order_type == OrderType.TAKE_OUT:
                await reconciler.transition(order.id, OrderStatus.OUT_FOR_DELIVERY, driver=random.choice(DRIVERS))
            else:
                await reconciler.transition(order.id, OrderStatus.COMPLETED)
                outcome["completed"] += 1
        except OrderDeskError as e:
            outcome["errors"] += 1
            skipped.add(order.id)
            print(f"   ⚠️ #{order.order_number}: {e}")
            await reconciler.refresh()


async def run_simulation(api: BaseOrderApi, num_orders: int, cancel_rate: float) -> None:
    settings = get_settings()
    print("=" * 70)
    print("🍕 ORDER LIFECYCLE SIMULATION")
    print("=" * 70)
    print(f"📋 Orders: {num_orders}")
    print(f"🎯 Store: {api.provider_name}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    alerts = MockNotificationService()
    reconciler = OrderReconciler(api, alerts, interval=settings.staff_poll_interval_seconds)
    await reconciler.refresh()

    start_time = time.time()
    results = await asyncio.gather(*[
        submit_one(api, settings.restaurant_name, i + 1) for i in range(num_orders)
    ])
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    await reconciler.refresh()
    print(f"\n✅ Submitted: {len(successful)}/{num_orders}  ❌ Failed: {len(failed)}")
    print(f"🔔 New order alerts: {len(alerts.of_kind('new_order'))} (pending now: {reconciler.pending_count})")
    for f in failed[:5]:
        print(f"   Order {f['n']}: {f['error']}")

    print("\n👨‍🍳 Working through the queue...")
    outcome = await play_kitchen(reconciler, cancel_rate)

    print("\n" + "=" * 70)
    print("📊 RESULTS")
    print("=" * 70)
    print(f"   Completed: {outcome['completed']}")
    print(f"   Cancelled: {outcome['cancelled']}")
    print(f"   Refused transitions: {outcome['errors']}")
    print(f"   Final status counts: {reconciler.stats()}")
    print(f"⏱️  Total Time: {round(time.time() - start_time, 2)}s")
    print("=" * 70)


async def main(args: argparse.Namespace) -> None:
    if args.base_url:
        settings = get_settings()
        api = HttpOrderApi(ClientContext(
            base_url=args.base_url,
            auth_token=args.token or settings.order_api_token,
            timeout_seconds=settings.request_timeout_seconds,
        ))
    else:
        api = get_order_api()

    try:
        await run_simulation(api, args.orders, args.cancel_rate)
    finally:
        await api.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order lifecycle simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--cancel-rate", type=float, default=0.1, help="Share of orders to cancel")
    parser.add_argument("--base-url", help="Order store base URL (default: in-process simulation)")
    parser.add_argument("--token", help="Staff bearer token")
    setup_logging()
    asyncio.run(main(parser.parse_args()))
