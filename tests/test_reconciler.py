"""
Tests for the staff live orders reconciler
"""
import asyncio
import unittest

from orderdesk.core.exceptions import (
    NetworkError,
    NotFoundError,
    ServerRejectionError,
    ValidationError,
)
from orderdesk.filters import OrderFilter
from orderdesk.reconciler import OrderReconciler
from orderdesk.schemas import Driver, OrderStatus
from orderdesk.services.notifications.mock import MockNotificationService

from tests.helpers import FakeOrderApi, make_order


class ControlledListApi(FakeOrderApi):
    """list_orders answers only when its event is set, in issue order."""

    def __init__(self):
        super().__init__()
        self.responses: list[tuple[asyncio.Event, list]] = []

    async def list_orders(self):
        self.calls.append(("list_orders",))
        event, orders = self.responses.pop(0)
        await event.wait()
        return orders


class TestEdgeDetection(unittest.IsolatedAsyncioTestCase):
    """New pending order alert"""

    async def asyncSetUp(self):
        self.api = FakeOrderApi()
        self.notifications = MockNotificationService()
        self.reconciler = OrderReconciler(self.api, self.notifications, interval=30)

    def alerts(self):
        return self.notifications.of_kind("new_order")

    async def test_first_poll_is_baseline(self):
        self.api.orders = [make_order(1), make_order(2)]
        self.assertTrue(await self.reconciler.poll())

        self.assertTrue(self.reconciler.loaded)
        self.assertEqual(self.reconciler.pending_count, 2)
        self.assertEqual(self.alerts(), [])

    async def test_new_pending_order_fires_exactly_once(self):
        self.api.orders = [make_order(1)]
        await self.reconciler.poll()

        self.api.orders = [make_order(1), make_order(2)]
        await self.reconciler.poll()
        await self.reconciler.poll()

        self.assertEqual(len(self.alerts()), 1)
        self.assertEqual(self.reconciler.alerts_fired, 1)
        self.assertEqual(self.alerts()[0].order_ids, ["1", "2"])
        self.assertIn("1 new order", self.alerts()[0].message)

    async def test_external_transition_does_not_fire(self):
        self.api.orders = [make_order(1)]
        await self.reconciler.poll()

        self.api.orders = [make_order(1, "preparing")]
        await self.reconciler.poll()

        self.assertEqual(self.alerts(), [])
        self.assertEqual(self.reconciler.get("1").status, OrderStatus.PREPARING)

    async def test_total_growth_without_pending_growth_does_not_fire(self):
        self.api.orders = [make_order(1)]
        await self.reconciler.poll()

        self.api.orders = [make_order(1), make_order(2, "completed"), make_order(3, "preparing")]
        await self.reconciler.poll()

        self.assertEqual(self.alerts(), [])
        self.assertEqual(len(self.reconciler.orders), 3)

    async def test_fires_again_after_a_dip(self):
        self.api.orders = [make_order(1), make_order(2)]
        await self.reconciler.poll()

        self.api.orders = [make_order(1, "preparing"), make_order(2)]
        await self.reconciler.poll()
        self.assertEqual(self.alerts(), [])

        self.api.orders = [make_order(1, "preparing"), make_order(2), make_order(3), make_order(4)]
        await self.reconciler.poll()
        self.assertEqual(len(self.alerts()), 1)
        self.assertIn("2 new orders", self.alerts()[0].message)

    async def test_empty_baseline_then_first_order_fires(self):
        await self.reconciler.poll()
        self.api.orders = [make_order(1)]
        await self.reconciler.poll()
        self.assertEqual(len(self.alerts()), 1)

    async def test_undelivered_alert_still_counted(self):
        notifications = MockNotificationService(failure_rate=1.0)
        reconciler = OrderReconciler(self.api, notifications)
        await reconciler.poll()
        self.api.orders = [make_order(1)]
        await reconciler.poll()

        self.assertEqual(reconciler.alerts_fired, 1)
        self.assertEqual(notifications.sent, [])


class TestFailures(unittest.IsolatedAsyncioTestCase):
    """Polling failures keep the previous snapshot"""

    async def asyncSetUp(self):
        self.api = FakeOrderApi([make_order(1), make_order(2, "preparing")])
        self.notifications = MockNotificationService()
        self.reconciler = OrderReconciler(self.api, self.notifications)
        await self.reconciler.poll()

    async def test_network_error_keeps_snapshot(self):
        before = self.reconciler.orders
        self.api.list_error = NetworkError("connection refused")

        with self.assertLogs("orderdesk.reconciler", level="WARNING"):
            applied = await self.reconciler.poll()

        self.assertFalse(applied)
        self.assertEqual(self.reconciler.orders, before)
        self.assertIsInstance(self.reconciler.last_error, NetworkError)

    async def test_server_rejection_keeps_snapshot_then_recovers(self):
        self.api.list_error = ServerRejectionError(500, "boom")
        self.assertFalse(await self.reconciler.poll())
        self.assertEqual(len(self.reconciler.orders), 2)

        self.api.list_error = None
        self.api.orders = self.api.orders + [make_order(3)]
        self.assertTrue(await self.reconciler.poll())

        self.assertIsNone(self.reconciler.last_error)
        self.assertEqual(len(self.notifications.of_kind("new_order")), 1)

    async def test_failed_first_poll_has_no_baseline(self):
        api = FakeOrderApi([make_order(1)])
        api.list_error = NetworkError("down")
        reconciler = OrderReconciler(api, self.notifications)

        self.assertFalse(await reconciler.poll())
        self.assertFalse(reconciler.loaded)

        api.list_error = None
        self.assertTrue(await reconciler.poll())
        self.assertEqual(self.notifications.of_kind("new_order"), [])


class TestStaleResponses(unittest.IsolatedAsyncioTestCase):

    async def test_older_response_is_discarded(self):
        api = ControlledListApi()
        notifications = MockNotificationService()
        reconciler = OrderReconciler(api, notifications)

        older, newer = asyncio.Event(), asyncio.Event()
        api.responses = [
            (older, [make_order(1)]),
            (newer, [make_order(1, "preparing"), make_order(2)]),
        ]

        first = asyncio.create_task(reconciler.poll())
        await asyncio.sleep(0)
        second = asyncio.create_task(reconciler.poll())
        await asyncio.sleep(0)

        newer.set()
        self.assertTrue(await second)
        older.set()
        self.assertFalse(await first)

        self.assertEqual([o.status for o in reconciler.orders], [OrderStatus.PREPARING, OrderStatus.PENDING])

    async def test_poll_started_before_transition_is_discarded(self):
        api = ControlledListApi()
        reconciler = OrderReconciler(api, MockNotificationService())

        ready = asyncio.Event()
        ready.set()
        api.responses = [(ready, [make_order(1)])]
        await reconciler.poll()

        in_flight = asyncio.Event()
        api.responses = [
            (in_flight, [make_order(1)]),
            (ready, [make_order(1, "preparing")]),
        ]
        api.orders = [make_order(1)]
        stale_poll = asyncio.create_task(reconciler.poll())
        await asyncio.sleep(0)

        await reconciler.transition("1", OrderStatus.PREPARING)
        in_flight.set()
        self.assertFalse(await stale_poll)
        self.assertEqual(reconciler.get("1").status, OrderStatus.PREPARING)


class TestTransitions(unittest.IsolatedAsyncioTestCase):
    """Acknowledged transitions through the reconciler"""

    async def asyncSetUp(self):
        self.api = FakeOrderApi([
            make_order(1, "pending", "dine_in"),
            make_order(2, "preparing", "take_out"),
        ])
        self.notifications = MockNotificationService()
        self.reconciler = OrderReconciler(self.api, self.notifications)
        await self.reconciler.poll()
        self.api.calls.clear()

    async def test_transition_applies_then_repolls(self):
        result = await self.reconciler.transition("1", OrderStatus.PREPARING)

        self.assertEqual(result.order.status, OrderStatus.PREPARING)
        self.assertEqual(self.api.call_names(), ["update_status", "list_orders"])
        self.assertEqual(self.reconciler.get("1").status, OrderStatus.PREPARING)
        self.assertEqual(self.notifications.of_kind("new_order"), [])

    async def test_delivery_with_driver(self):
        await self.reconciler.transition("2", OrderStatus.OUT_FOR_DELIVERY, driver=Driver(name="X"))
        self.assertEqual(self.reconciler.get("2").status, OrderStatus.OUT_FOR_DELIVERY)
        self.assertEqual(self.reconciler.visible_orders(OrderFilter(status="preparing"))[0].id, "2")

    async def test_validation_failure_leaves_list_untouched(self):
        before = self.reconciler.orders
        with self.assertRaises(ValidationError):
            await self.reconciler.transition("2", OrderStatus.OUT_FOR_DELIVERY)

        self.assertEqual(self.api.calls, [])
        self.assertEqual(self.reconciler.orders, before)

    async def test_store_failure_leaves_list_untouched(self):
        before = self.reconciler.orders
        self.api.update_error = ServerRejectionError(500, "Failed to update order")

        with self.assertRaises(ServerRejectionError):
            await self.reconciler.transition("1", OrderStatus.PREPARING)
        self.assertEqual(self.reconciler.orders, before)

    async def test_cancellation_message_is_surfaced(self):
        self.api.update_message = "Order cancelled. Commission was refunded (Daily free limit)."
        result = await self.reconciler.transition("1", OrderStatus.CANCELLED, confirmed=True)

        self.assertEqual(result.message, self.api.update_message)
        self.assertEqual(len(self.notifications.of_kind("message")), 1)
        self.assertEqual(self.reconciler.get("1").status, OrderStatus.CANCELLED)

    async def test_message_shown_before_list_changes(self):
        seen = []
        reconciler = None

        class StatusAtMessage(MockNotificationService):
            async def show_message(self, message, order=None):
                seen.append(reconciler.get(order.id).status)
                return await super().show_message(message, order)

        notifications = StatusAtMessage()
        reconciler = OrderReconciler(self.api, notifications)
        await reconciler.poll()
        self.api.update_message = "Order cancelled. Commission was refunded (Daily free limit)."

        await reconciler.transition("1", OrderStatus.CANCELLED, confirmed=True)

        self.assertEqual(seen, [OrderStatus.PENDING])
        self.assertEqual(reconciler.get("1").status, OrderStatus.CANCELLED)

    async def test_unknown_order(self):
        with self.assertRaises(NotFoundError):
            await self.reconciler.transition("99", OrderStatus.PREPARING)
        self.assertEqual(self.api.calls, [])

    async def test_stats_and_visible_orders(self):
        stats = self.reconciler.stats()
        self.assertEqual(stats["pending"], 1)
        self.assertEqual(stats["preparing"], 1)
        self.assertEqual(len(self.reconciler.visible_orders()), 2)


class TestBackgroundPolling(unittest.IsolatedAsyncioTestCase):

    async def test_start_and_stop(self):
        api = FakeOrderApi([make_order(1)])
        reconciler = OrderReconciler(api, MockNotificationService(), interval=0.01)

        reconciler.start()
        for _ in range(100):
            if api.call_names().count("list_orders") >= 2:
                break
            await asyncio.sleep(0.01)
        await reconciler.stop()

        self.assertGreaterEqual(api.call_names().count("list_orders"), 2)
        self.assertTrue(reconciler.loaded)


if __name__ == "__main__":
    unittest.main()
