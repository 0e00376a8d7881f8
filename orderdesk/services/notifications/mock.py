"""
Mock Notification Service

Records every alert instead of playing sounds or drawing banners.
Used in development mode and by the test-suite to assert exactly
which alerts fired.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Optional

from orderdesk.schemas import Order, OrderStatus
from orderdesk.services.notifications.base import (
    STATUS_CHANGE_MESSAGES,
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


@dataclass
class SentNotification:
    kind: str
    message: str
    order_ids: list[str] = field(default_factory=list)


class MockNotificationService(BaseNotificationService):
    """Mock notification service for development and tests."""

    def __init__(self, failure_rate: float = 0.0):
        self.failure_rate = failure_rate
        self.sent: list[SentNotification] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def _record(self, kind: str, message: str, orders: list[Order]) -> NotificationResult:
        if self._should_fail():
            logger.warning(f"Mock {kind} notification failed (simulated)")
            return NotificationResult(
                success=False,
                kind=kind,
                error_message="Simulated notification failure",
                provider="mock",
            )

        self.sent.append(SentNotification(kind, message, [o.id for o in orders]))
        logger.info(f"Mock {kind} notification: {message}")
        return NotificationResult(success=True, kind=kind, message=message, provider="mock")

    def of_kind(self, kind: str) -> list[SentNotification]:
        return [n for n in self.sent if n.kind == kind]

    async def notify_new_orders(
        self,
        new_count: int,
        pending_orders: list[Order],
    ) -> NotificationResult:
        noun = "order" if new_count == 1 else "orders"
        return self._record("new_order", f"🔔 {new_count} new {noun} waiting", pending_orders)

    async def notify_status_change(
        self,
        order: Order,
        previous: Optional[OrderStatus],
    ) -> NotificationResult:
        message = STATUS_CHANGE_MESSAGES.get(order.status, f"Order is now {order.status.value}")
        return self._record("status_change", message, [order])

    async def show_message(
        self,
        message: str,
        order: Optional[Order] = None,
    ) -> NotificationResult:
        return self._record("message", message, [order] if order else [])
