"""
Order Desk command line

    orderdesk serve                 run the simulation order store
    orderdesk watch                 live orders with new-order alerts
    orderdesk track ORDER_ID        follow one order until it is done

``--base-url``/``--token`` point watch and track at any order store;
without them the ENV_MODE factory decides.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import uvicorn

from orderdesk.core.config import ClientContext, get_settings, setup_logging
from orderdesk.filters import ALL, OrderFilter
from orderdesk.reconciler import OrderReconciler
from orderdesk.schemas import OrderStatus, OrderType
from orderdesk.services.notifications import get_notification_service
from orderdesk.services.orders import BaseOrderApi, HttpOrderApi, get_order_api
from orderdesk.services.scheduler import PollingTask
from orderdesk.simulation import create_app
from orderdesk.tracker import PROGRESS_STEPS, OrderTracker, TrackerView

logger = logging.getLogger("orderdesk.cli")


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="orderdesk", description="Restaurant order lifecycle tools")
    parser.add_argument("--base-url", help="Order store base URL (overrides ENV_MODE)")
    parser.add_argument("--token", help="Staff bearer token")

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the simulation order store")
    serve.add_argument("--host", default=settings.simulation_host)
    serve.add_argument("--port", type=int, default=settings.simulation_port)

    watch = sub.add_parser("watch", help="Poll live orders and ring on new ones")
    watch.add_argument("--interval", type=float, default=settings.staff_poll_interval_seconds)
    watch.add_argument("--status", default=ALL, choices=[ALL] + [s.value for s in OrderStatus])
    watch.add_argument("--type", dest="order_type", default=ALL, choices=[ALL] + [t.value for t in OrderType])
    watch.add_argument("--search", default="")

    track = sub.add_parser("track", help="Follow a single order")
    track.add_argument("order_id")
    track.add_argument("--interval", type=float, default=settings.tracker_poll_interval_seconds)

    return parser


def _build_api(args: argparse.Namespace) -> BaseOrderApi:
    if args.base_url:
        settings = get_settings()
        return HttpOrderApi(ClientContext(
            base_url=args.base_url,
            auth_token=args.token or settings.order_api_token,
            timeout_seconds=settings.request_timeout_seconds,
        ))
    return get_order_api()


async def _watch(args: argparse.Namespace) -> int:
    api = _build_api(args)
    reconciler = OrderReconciler(api, get_notification_service(), interval=args.interval)
    criteria = OrderFilter(args.status, args.order_type, args.search)

    async def tick() -> None:
        if not await reconciler.poll():
            return
        visible = reconciler.visible_orders(criteria)
        counts = " ".join(f"{k}={v}" for k, v in reconciler.stats().items() if v)
        print(f"\n📋 {len(visible)} order(s) shown │ {counts or 'no orders'}")
        for order in visible:
            where = f"table {order.table_number}" if order.table_number else (order.delivery_address or "")
            print(f"   #{order.order_number or order.id:<6} {order.status.value:<17} {order.order_type.value:<9} {order.total_price:>8} {where}")

    task = PollingTask("watch", tick, args.interval)
    task.start()
    try:
        await task.join()
    finally:
        await api.aclose()
    return 0


async def _track(args: argparse.Namespace) -> int:
    api = _build_api(args)
    tracker = OrderTracker(api, args.order_id, get_notification_service(), interval=args.interval)
    last: Optional[tuple] = None

    async def tick() -> None:
        nonlocal last
        view = await tracker.poll()
        state = (view, tracker.order.status if tracker.order else None)
        if state != last:
            last = state
            if view == TrackerView.TRACKING:
                print(f"⏳ {PROGRESS_STEPS[tracker.step]} ({tracker.progress}%)")
            else:
                print(f"• {view.value}")
        if tracker.finished or view == TrackerView.NOT_FOUND:
            task.cancel(view.value)

    task = PollingTask(f"track-{args.order_id}", tick, args.interval)
    task.start()
    try:
        await task.join()
    finally:
        await api.aclose()
    return 0 if tracker.view != TrackerView.NOT_FOUND else 1


def _serve(args: argparse.Namespace) -> int:
    uvicorn.run(create_app(get_settings()), host=args.host, port=args.port)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if settings.use_real_services and not args.base_url:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    if args.command == "serve":
        return _serve(args)

    runner = _watch if args.command == "watch" else _track
    try:
        return asyncio.run(runner(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
