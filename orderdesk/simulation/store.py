"""
In-Memory Order Store

Backs the simulation API in development mode. Mirrors what the production
store does with an order:

- sequential ids and display numbers
- commission computed server-side from the total
- the same transition table as the client (checked again here)
- commission recorded when an order is accepted (moves to preparing)
- cancellation answered with a policy message: refunded while the day's
  free cancellations last, retained afterwards

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from orderdesk.core.exceptions import NotFoundError
from orderdesk.lifecycle import validate_transition
from orderdesk.schemas import (
    Driver,
    Order,
    OrderStatus,
    OrderSubmission,
    PaymentMethod,
    PaymentStatus,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class InMemoryOrderStore:
    """Order table kept in a dict, one instance per simulation app."""

    def __init__(
        self,
        commission_rate: float = 0.02,
        free_cancellations_per_day: int = 2,
        starting_number: int = 1,
    ):
        self.commission_rate = Decimal(str(commission_rate))
        self.free_cancellations_per_day = free_cancellations_per_day
        self._orders: dict[str, Order] = {}
        self._next_id = 1
        self._next_number = starting_number
        self._commission_recorded: set[str] = set()
        self._cancellations: dict[date, int] = {}
        self.owed_commission = Decimal("0")

    def __len__(self) -> int:
        return len(self._orders)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list(self) -> list[Order]:
        """Every order, newest first."""
        return sorted(self._orders.values(), key=lambda o: (o.created_at, int(o.id)), reverse=True)

    def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(str(order_id))

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def create(self, submission: OrderSubmission, status: OrderStatus = OrderStatus.PENDING) -> Order:
        """Insert a new order from a validated submission."""
        now = self._now()
        order_id = str(self._next_id)
        self._next_id += 1

        order = Order(
            id=order_id,
            order_number=self._next_number,
            status=status,
            order_type=submission.order_type,
            table_number=submission.table_number,
            delivery_address=submission.delivery_address,
            payment_method=submission.payment_method,
            payment_status=(
                PaymentStatus.PENDING_CASH
                if submission.payment_method == PaymentMethod.CASH
                else PaymentStatus.UNPAID
            ),
            total_price=submission.total_price,
            commission_amount=(submission.total_price * self.commission_rate).quantize(CENT),
            items=submission.items,
            restaurant_name=submission.restaurant_name,
            created_at=now,
            updated_at=now,
        )
        self._next_number += 1
        self._orders[order_id] = order

        logger.info(f"Order #{order.order_number} created (id={order_id}, {order.order_type.value})")
        return order

    def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        driver: Optional[Driver] = None,
    ) -> tuple[Order, Optional[str]]:
        """
        Apply a status change.

        Returns:
            (updated order, optional policy message)

        Raises:
            NotFoundError: Unknown id
            InvalidTransitionError / ValidationError: Edge refused
        """
        order = self.get(order_id)
        if order is None:
            raise NotFoundError("Order not found")

        # reaching the store implies the operator confirmed
        target = validate_transition(order, status, driver=driver, confirmed=True)

        message = None
        if target == OrderStatus.PREPARING:
            self._record_commission(order)
        elif target == OrderStatus.CANCELLED:
            message = self._cancel(order)

        update = {"status": target, "updated_at": self._now()}
        if target == OrderStatus.OUT_FOR_DELIVERY:
            update["driver"] = driver
        updated = order.model_copy(update=update)
        self._orders[updated.id] = updated

        logger.info(f"Order #{order.order_number}: {order.status.value} → {target.value}")
        return updated, message

    def _record_commission(self, order: Order) -> None:
        if order.id in self._commission_recorded:
            return
        self._commission_recorded.add(order.id)
        self.owed_commission += order.commission_amount or Decimal("0")

    def _cancel(self, order: Order) -> str:
        today = self._now().date()
        cancelled_today = self._cancellations.get(today, 0)
        self._cancellations[today] = cancelled_today + 1

        message = "Order cancelled."
        commission = order.commission_amount or Decimal("0")

        if cancelled_today < self.free_cancellations_per_day:
            if order.id in self._commission_recorded and commission > 0:
                self.owed_commission = max(Decimal("0"), self.owed_commission - commission)
                message += " Commission was refunded (Daily free limit)."
        else:
            message += (
                f" We will still collect our {self.commission_rate:.0%} commission for this order."
                f" Tomorrow, your '{self.free_cancellations_per_day} Free Cancellations' limit will reset."
            )
        return message
