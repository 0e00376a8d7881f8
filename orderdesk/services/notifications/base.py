"""
Notification Service Abstract Base Class

Defines the interface for operator and diner alerts:
- New incoming order chime on the staff dashboard
- Status change alerts on the diner's order tracker
- Server policy messages shown to the operator after a transition

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from orderdesk.schemas import Order, OrderStatus


@dataclass
class NotificationResult:
    """Result from emitting a notification."""
    success: bool
    kind: str = "unknown"
    message: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


STATUS_CHANGE_MESSAGES: dict[OrderStatus, str] = {
    OrderStatus.READY: "Your order is ready! 🎉",
    OrderStatus.COMPLETED: "Your order is completed! Enjoy! 🍽️",
}


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def notify_new_orders(
        self,
        new_count: int,
        pending_orders: list[Order],
    ) -> NotificationResult:
        """One-shot audible/visual alert: ``new_count`` more orders are pending."""
        pass

    @abstractmethod
    async def notify_status_change(
        self,
        order: Order,
        previous: Optional[OrderStatus],
    ) -> NotificationResult:
        """Tell the diner their order moved to a status worth announcing."""
        pass

    @abstractmethod
    async def show_message(
        self,
        message: str,
        order: Optional[Order] = None,
    ) -> NotificationResult:
        """Surface a server-supplied message to the operator."""
        pass
