"""
Order API Abstract Base Class

Defines the interface the order core uses to reach the order store.
The pollers and the transition service only ever see this contract, so
tests can swap in a fake and the CLI can point at any deployment.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from typing import Optional

from orderdesk.schemas import (
    Driver,
    Order,
    OrderStatus,
    OrderSubmission,
    StatusUpdateResponse,
)


class BaseOrderApi(ABC):
    """
    Abstract base class for order store clients.

    Every method either returns parsed models or raises one of
    NetworkError, ServerRejectionError or NotFoundError.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def list_orders(self) -> list[Order]:
        """Fetch every order of the authenticated restaurant (GET /orders)."""
        pass

    @abstractmethod
    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        driver: Optional[Driver] = None,
    ) -> StatusUpdateResponse:
        """Ask the store to move an order to ``status`` (PATCH /orders/{id}/status)."""
        pass

    @abstractmethod
    async def get_public_order(self, order_id: str) -> Order:
        """Fetch a single order without auth (GET /public-order)."""
        pass

    @abstractmethod
    async def submit_order(self, submission: OrderSubmission) -> Order:
        """Create an order from a diner submission (POST /submit-order)."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check order store connectivity."""
        pass

    async def aclose(self) -> None:
        """Release any held connections."""
        return None
