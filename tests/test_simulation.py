"""
End-to-end tests against the simulation order store (httpx.ASGITransport)
"""
import unittest
from decimal import Decimal

import httpx

from orderdesk.core.config import ClientContext
from orderdesk.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ServerRejectionError,
    ValidationError,
)
from orderdesk.reconciler import OrderReconciler
from orderdesk.schemas import Driver, OrderStatus, PaymentStatus, validate_submission
from orderdesk.services.notifications.mock import MockNotificationService
from orderdesk.services.orders.http import HttpOrderApi
from orderdesk.simulation import InMemoryOrderStore, create_app
from orderdesk.tracker import OrderTracker, TrackerView

from tests.helpers import STAFF_TOKEN, make_settings, make_submission_payload

BASE_URL = "http://simulation.test"


class TestInMemoryStore(unittest.TestCase):
    """Store rules without HTTP"""

    def setUp(self):
        self.store = InMemoryOrderStore(commission_rate=0.02, free_cancellations_per_day=2)

    def create(self, **overrides):
        return self.store.create(validate_submission(make_submission_payload(**overrides)))

    def test_sequential_numbers_and_commission(self):
        first = self.create()
        second = self.create(paymentMethod="cash")

        self.assertEqual((first.id, first.order_number), ("1", 1))
        self.assertEqual((second.id, second.order_number), ("2", 2))
        self.assertEqual(first.commission_amount, Decimal("0.50"))
        self.assertEqual(first.payment_status, PaymentStatus.UNPAID)
        self.assertEqual(second.payment_status, PaymentStatus.PENDING_CASH)
        self.assertEqual([o.id for o in self.store.list()], ["2", "1"])

    def test_commission_recorded_once_on_accept(self):
        order = self.create()
        self.store.update_status(order.id, OrderStatus.PREPARING)
        self.store.update_status(order.id, OrderStatus.READY)
        self.assertEqual(self.store.owed_commission, Decimal("0.50"))

    def test_store_enforces_table(self):
        order = self.create()
        with self.assertRaises(InvalidTransitionError):
            self.store.update_status(order.id, OrderStatus.COMPLETED)
        with self.assertRaises(NotFoundError):
            self.store.update_status("999", OrderStatus.PREPARING)

    def test_driver_stored_on_delivery(self):
        order = self.create(orderType="take_out", tableNumber=None, deliveryAddress="3 Quai de Valmy")
        self.store.update_status(order.id, OrderStatus.PREPARING)
        updated, _ = self.store.update_status(order.id, OrderStatus.OUT_FOR_DELIVERY, driver=Driver(name="Lina"))
        self.assertEqual(updated.driver.name, "Lina")

        with self.assertRaises(ValidationError):
            other = self.create(orderType="take_out", tableNumber=None, deliveryAddress="3 Quai de Valmy")
            self.store.update_status(other.id, OrderStatus.PREPARING)
            self.store.update_status(other.id, OrderStatus.OUT_FOR_DELIVERY)

    def test_cancellation_policy_messages(self):
        orders = [self.create() for _ in range(3)]
        for order in orders:
            self.store.update_status(order.id, OrderStatus.PREPARING)
        self.assertEqual(self.store.owed_commission, Decimal("1.50"))

        _, first = self.store.update_status(orders[0].id, OrderStatus.CANCELLED)
        _, second = self.store.update_status(orders[1].id, OrderStatus.CANCELLED)
        _, third = self.store.update_status(orders[2].id, OrderStatus.CANCELLED)

        self.assertEqual(first, "Order cancelled. Commission was refunded (Daily free limit).")
        self.assertEqual(second, first)
        self.assertTrue(third.startswith("Order cancelled. We will still collect our 2% commission"))
        self.assertIn("'2 Free Cancellations'", third)
        self.assertEqual(self.store.owed_commission, Decimal("0.50"))

    def test_cancel_before_accept_has_nothing_to_refund(self):
        order = self.create()
        _, message = self.store.update_status(order.id, OrderStatus.CANCELLED)
        self.assertEqual(message, "Order cancelled.")


class SimulationTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.settings = make_settings()
        self.app = create_app(self.settings)
        self.staff = self.make_api(STAFF_TOKEN)
        self.diner = self.make_api(None)

    async def asyncTearDown(self):
        await self.staff.aclose()
        await self.diner.aclose()

    def make_api(self, token):
        return HttpOrderApi(
            ClientContext(base_url=BASE_URL, auth_token=token, timeout_seconds=5),
            transport=httpx.ASGITransport(app=self.app),
        )

    async def submit(self, **overrides):
        return await self.diner.submit_order(validate_submission(make_submission_payload(**overrides)))


class TestSimulationApi(SimulationTestCase):

    async def test_submit_and_list(self):
        order = await self.submit()

        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.order_number, 1)
        self.assertEqual(order.commission_amount, Decimal("0.50"))

        orders = await self.staff.list_orders()
        self.assertEqual([o.id for o in orders], [order.id])

    async def test_staff_routes_need_token(self):
        with self.assertRaises(ServerRejectionError) as ctx:
            await self.diner.list_orders()
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.message, "Unauthorized: Missing token")

        wrong = self.make_api("nope")
        with self.assertRaises(ServerRejectionError) as ctx:
            await wrong.list_orders()
        await wrong.aclose()
        self.assertEqual(ctx.exception.message, "Invalid token")

    async def test_unknown_restaurant(self):
        with self.assertRaises(NotFoundError) as ctx:
            await self.submit(restaurantName="Elsewhere")
        self.assertEqual(ctx.exception.message, "Restaurant not found")

    async def test_server_side_submission_validation(self):
        response = await self.diner._client.post("/submit-order", json=make_submission_payload(tableNumber=None))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Table number required for dine-in orders")

    async def test_public_order_lookup(self):
        order = await self.submit()
        fetched = await self.diner.get_public_order(order.id)
        self.assertEqual(fetched.id, order.id)

        with self.assertRaises(NotFoundError):
            await self.diner.get_public_order("12345")

    async def test_invalid_transition_is_409(self):
        order = await self.submit()
        with self.assertRaises(ServerRejectionError) as ctx:
            await self.staff.update_status(order.id, OrderStatus.COMPLETED)
        self.assertEqual(ctx.exception.status_code, 409)

    async def test_missing_driver_is_400(self):
        order = await self.submit(orderType="take_out", tableNumber=None, deliveryAddress="1 Rue de Rivoli")
        await self.staff.update_status(order.id, OrderStatus.PREPARING)
        with self.assertRaises(ServerRejectionError) as ctx:
            await self.staff.update_status(order.id, OrderStatus.OUT_FOR_DELIVERY)
        self.assertEqual(ctx.exception.status_code, 400)

    async def test_unknown_order_update_is_404(self):
        with self.assertRaises(NotFoundError):
            await self.staff.update_status("777", OrderStatus.PREPARING)

    async def test_health(self):
        self.assertTrue(await self.diner.health_check())


class TestLifecycleEndToEnd(SimulationTestCase):
    """Reconciler and tracker against the simulation store"""

    async def test_take_out_walkthrough(self):
        notifications = MockNotificationService()
        reconciler = OrderReconciler(self.staff, notifications)
        tracker = OrderTracker(self.diner, "1", MockNotificationService())

        await reconciler.poll()
        self.assertEqual(await tracker.poll(), TrackerView.NOT_FOUND)

        order = await self.submit(orderType="take_out", tableNumber=None, deliveryAddress="1 Rue de Rivoli")
        await reconciler.poll()
        self.assertEqual(len(notifications.of_kind("new_order")), 1)
        self.assertEqual(await tracker.poll(), TrackerView.TRACKING)
        self.assertEqual(tracker.step, 0)

        await reconciler.transition(order.id, OrderStatus.PREPARING)
        await tracker.poll()
        self.assertEqual(tracker.step, 1)

        result = await reconciler.transition(order.id, OrderStatus.OUT_FOR_DELIVERY, driver=Driver(name="X"))
        self.assertEqual(result.order.driver.name, "X")
        await tracker.poll()
        self.assertEqual(tracker.step, 1)

        await reconciler.transition(order.id, OrderStatus.COMPLETED)
        await tracker.poll()
        self.assertTrue(tracker.finished)
        self.assertEqual(tracker.progress, 100)
        self.assertEqual(reconciler.get(order.id).status, OrderStatus.COMPLETED)

    async def test_cancellation_message_reaches_operator(self):
        notifications = MockNotificationService()
        reconciler = OrderReconciler(self.staff, notifications)
        order = await self.submit()
        await reconciler.poll()

        await reconciler.transition(order.id, OrderStatus.PREPARING)
        result = await reconciler.transition(order.id, OrderStatus.CANCELLED, confirmed=True)

        self.assertEqual(result.message, "Order cancelled. Commission was refunded (Daily free limit).")
        self.assertEqual([n.message for n in notifications.of_kind("message")], [result.message])
        self.assertEqual(reconciler.get(order.id).status, OrderStatus.CANCELLED)


if __name__ == "__main__":
    unittest.main()
