"""
Console Notification Service

Terminal implementation used by the ``orderdesk`` CLI outside development:
rings the terminal bell for new orders and prints alerts on a stream.
"""

import logging
import sys
from typing import Optional, TextIO

from orderdesk.schemas import Order, OrderStatus
from orderdesk.services.notifications.base import (
    STATUS_CHANGE_MESSAGES,
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)

BELL = "\a"


class ConsoleNotificationService(BaseNotificationService):
    """Terminal bell + printed banners."""

    def __init__(self, stream: Optional[TextIO] = None, bell: bool = True):
        self._stream = stream or sys.stdout
        self._bell = bell

    @property
    def provider_name(self) -> str:
        return "console"

    def _emit(self, kind: str, text: str, ring: bool = False) -> NotificationResult:
        try:
            self._stream.write(f"{BELL if ring and self._bell else ''}{text}\n")
            self._stream.flush()
        except (OSError, ValueError) as e:
            logger.error(f"Console notification failed: {e}")
            return NotificationResult(success=False, kind=kind, error_message=str(e), provider="console")
        return NotificationResult(success=True, kind=kind, message=text, provider="console")

    async def notify_new_orders(
        self,
        new_count: int,
        pending_orders: list[Order],
    ) -> NotificationResult:
        numbers = ", ".join(f"#{o.order_number or o.id}" for o in pending_orders[:5])
        return self._emit("new_order", f"🔔 {new_count} new order(s), pending: {numbers}", ring=True)

    async def notify_status_change(
        self,
        order: Order,
        previous: Optional[OrderStatus],
    ) -> NotificationResult:
        text = STATUS_CHANGE_MESSAGES.get(order.status, f"Order is now {order.status.value}")
        return self._emit("status_change", text, ring=order.status in STATUS_CHANGE_MESSAGES)

    async def show_message(
        self,
        message: str,
        order: Optional[Order] = None,
    ) -> NotificationResult:
        prefix = f"[#{order.order_number or order.id}] " if order else ""
        return self._emit("message", f"ℹ️  {prefix}{message}")
