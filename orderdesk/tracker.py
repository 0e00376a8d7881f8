"""
Customer Order Tracker

Single-order poller behind the diner's order confirmation page. Polls
GET /public-order every few seconds and maps the six store statuses onto
a four-step progress bar:

    Order Sent (0) → Preparing (1) → Ready (2) → Completed (3)

out_for_delivery shares the Preparing step. cancelled has no step and is
its own terminal view. "Order not found" and "network failure" are kept
apart so the page can say which one happened.
"""

import logging
from enum import Enum
from typing import Optional

from orderdesk.core.exceptions import NetworkError, NotFoundError, ServerRejectionError
from orderdesk.lifecycle import is_terminal
from orderdesk.schemas import Order, OrderStatus
from orderdesk.services.notifications.base import STATUS_CHANGE_MESSAGES, BaseNotificationService
from orderdesk.services.orders.base import BaseOrderApi
from orderdesk.services.scheduler import PollingTask, SequenceGate

logger = logging.getLogger(__name__)

PROGRESS_STEPS: tuple[str, ...] = ("Order Sent", "Preparing", "Ready", "Completed")

STEP_INDEX: dict[OrderStatus, int] = {
    OrderStatus.PENDING: 0,
    OrderStatus.PREPARING: 1,
    OrderStatus.OUT_FOR_DELIVERY: 1,
    OrderStatus.READY: 2,
    OrderStatus.COMPLETED: 3,
}

PROGRESS_PERCENT: dict[OrderStatus, int] = {
    OrderStatus.PENDING: 25,
    OrderStatus.PREPARING: 50,
    OrderStatus.OUT_FOR_DELIVERY: 50,
    OrderStatus.READY: 75,
    OrderStatus.COMPLETED: 100,
    OrderStatus.CANCELLED: 0,
}


class TrackerView(str, Enum):
    """What the confirmation page should render."""
    LOADING = "loading"
    TRACKING = "tracking"
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"
    NETWORK_ERROR = "network_error"


def step_index(status: OrderStatus) -> Optional[int]:
    """Progress bar index for ``status``; None for cancelled."""
    return STEP_INDEX.get(OrderStatus(status))


def progress_percent(status: OrderStatus) -> int:
    return PROGRESS_PERCENT[OrderStatus(status)]


class OrderTracker:
    """Diner-side poller for one order."""

    def __init__(
        self,
        api: BaseOrderApi,
        order_id: str,
        notifications: Optional[BaseNotificationService] = None,
        interval: float = 10.0,
    ):
        self.order_id = str(order_id)
        self._api = api
        self._notifications = notifications
        self._gate = SequenceGate()
        self._task = PollingTask(f"order-{self.order_id}", self.poll, interval)

        self.order: Optional[Order] = None
        self.view = TrackerView.LOADING
        self.error: Optional[Exception] = None

    @property
    def step(self) -> Optional[int]:
        if self.order is None:
            return None
        return step_index(self.order.status)

    @property
    def progress(self) -> int:
        if self.order is None:
            return 0
        return progress_percent(self.order.status)

    @property
    def finished(self) -> bool:
        return self.order is not None and is_terminal(self.order.status)

    async def poll(self) -> TrackerView:
        sequence = self._gate.next()
        try:
            order = await self._api.get_public_order(self.order_id)
        except NotFoundError as e:
            if self._gate.accept(sequence):
                logger.info(f"Order {self.order_id} not found")
                self.order = None
                self.error = e
                self.view = TrackerView.NOT_FOUND
            return self.view
        except (NetworkError, ServerRejectionError) as e:
            logger.warning(f"Order {self.order_id} refresh failed: {e}")
            if self._gate.accept(sequence):
                self.error = e
                if self.order is None:
                    self.view = TrackerView.NETWORK_ERROR
            return self.view

        if not self._gate.accept(sequence):
            logger.debug(f"Discarding stale response #{sequence} for order {self.order_id}")
            return self.view

        previous = self.order.status if self.order else None
        self.order = order
        self.error = None
        self.view = TrackerView.CANCELLED if order.status == OrderStatus.CANCELLED else TrackerView.TRACKING

        if previous is not None and previous != order.status:
            logger.info(f"Order {self.order_id}: {previous.value} → {order.status.value}")
            if order.status in STATUS_CHANGE_MESSAGES and self._notifications is not None:
                await self._notifications.notify_status_change(order, previous)

        if is_terminal(order.status):
            self._task.cancel(f"order {order.status.value}")

        return self.view

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    async def join(self) -> None:
        await self._task.join()
