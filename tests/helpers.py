"""
Shared fakes for the test-suite.
"""

from decimal import Decimal
from typing import Optional, Union

from orderdesk.core.config import Settings
from orderdesk.schemas import (
    Driver,
    Order,
    OrderStatus,
    OrderSubmission,
    StatusUpdateResponse,
)
from orderdesk.services.orders.base import BaseOrderApi

STAFF_TOKEN = "test-staff-token"


def make_settings(**overrides) -> Settings:
    values = {
        "env_mode": "development",
        "restaurant_name": "Test Bistro",
        "simulation_auth_token": STAFF_TOKEN,
        "commission_rate": 0.02,
        "free_cancellations_per_day": 2,
    }
    values.update(overrides)
    return Settings(**values)


def make_order(order_id, status="pending", order_type="dine_in", **fields) -> Order:
    data = {
        "id": str(order_id),
        "status": status,
        "order_type": order_type,
        "total_price": Decimal("10.00"),
    }
    if str(order_id).isdigit():
        data["order_number"] = int(order_id)
    if order_type == "dine_in":
        data["table_number"] = "4"
    else:
        data["delivery_address"] = "12 Rue Oberkampf"
    data.update(fields)
    return Order.model_validate(data)


def make_submission_payload(**overrides) -> dict:
    payload = {
        "restaurantName": "Test Bistro",
        "orderType": "dine_in",
        "tableNumber": "7",
        "paymentMethod": "credit_card",
        "items": [{"name": "Margherita", "size": "large", "price": 12.5, "quantity": 2}],
        "totalPrice": 25.0,
    }
    payload.update(overrides)
    return payload


class FakeOrderApi(BaseOrderApi):
    """
    In-memory order API that records every call.

    update_status moves the order in ``orders`` the way a store would, so a
    re-poll after a transition sees the new status.
    """

    def __init__(self, orders: Optional[list[Order]] = None):
        self.orders: list[Order] = list(orders or [])
        self.calls: list[tuple] = []
        self.list_error: Optional[Exception] = None
        self.update_error: Optional[Exception] = None
        self.update_message: Optional[str] = None
        self.public_responses: list[Union[Order, Exception]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    async def list_orders(self) -> list[Order]:
        self.calls.append(("list_orders",))
        if self.list_error is not None:
            raise self.list_error
        return list(self.orders)

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        driver: Optional[Driver] = None,
    ) -> StatusUpdateResponse:
        status = OrderStatus(status)
        self.calls.append(("update_status", order_id, status, driver))
        if self.update_error is not None:
            raise self.update_error
        self.orders = [
            o.model_copy(update={"status": status}) if o.id == order_id else o
            for o in self.orders
        ]
        return StatusUpdateResponse(
            order={"id": order_id, "status": status.value},
            message=self.update_message,
        )

    async def get_public_order(self, order_id: str) -> Order:
        self.calls.append(("get_public_order", order_id))
        response = self.public_responses.pop(0) if len(self.public_responses) > 1 else self.public_responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def submit_order(self, submission: OrderSubmission) -> Order:
        self.calls.append(("submit_order", submission))
        order = make_order(len(self.orders) + 1, order_type=submission.order_type.value)
        self.orders.append(order)
        return order

    async def health_check(self) -> bool:
        return True
