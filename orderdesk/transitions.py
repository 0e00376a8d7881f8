"""
Order Transition Service

Turns an operator action ("Start Preparing", "Send out", "Cancel") into a
status update on the order store:

    1. validate against the lifecycle table (no request on failure)
    2. PATCH the status
    3. surface any policy message the store sent back
    4. hand back the store's acknowledged order

Local lists are never touched here; callers apply the returned order with
lifecycle.apply_transition once this returns.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from orderdesk.lifecycle import validate_transition
from orderdesk.schemas import Driver, Order, OrderStatus
from orderdesk.services.notifications.base import BaseNotificationService
from orderdesk.services.orders.base import BaseOrderApi

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of an acknowledged transition."""
    order: Order
    previous_status: OrderStatus
    message: Optional[str] = None


def merge_acknowledged(
    order: Order,
    acknowledged: dict[str, Any],
    target: OrderStatus,
    driver: Optional[Driver] = None,
) -> Order:
    """
    Build the post-transition snapshot.

    Stores may answer with a partial row (id, status, updated_at); whatever
    they send wins over the local copy.
    """
    data = order.model_dump()
    data["status"] = target
    if driver is not None and target == OrderStatus.OUT_FOR_DELIVERY:
        data["driver"] = driver.model_dump()
    data.update({k: v for k, v in acknowledged.items() if v is not None})
    return Order.model_validate(data)


class TransitionService:
    """
    Validated status changes against the order store.

    Example:
        >>> service = TransitionService(get_order_api(), get_notification_service())
        >>> result = await service.request_transition(order, "preparing")
        >>> result.order.status
        <OrderStatus.PREPARING: 'preparing'>
    """

    def __init__(
        self,
        api: BaseOrderApi,
        notifications: Optional[BaseNotificationService] = None,
    ):
        self._api = api
        self._notifications = notifications

    async def request_transition(
        self,
        order: Order,
        target: OrderStatus,
        driver: Optional[Driver] = None,
        confirmed: bool = False,
    ) -> TransitionResult:
        """
        Move ``order`` to ``target``.

        Args:
            order: Current snapshot
            target: Requested status
            driver: Driver details, required for out_for_delivery
            confirmed: Operator confirmed (required for cancelled)

        Returns:
            TransitionResult with the store's authoritative order

        Raises:
            InvalidTransitionError: Edge not allowed (nothing sent)
            ValidationError: Missing driver or confirmation (nothing sent)
            NetworkError, ServerRejectionError, NotFoundError: Store failure
        """
        target = validate_transition(order, target, driver=driver, confirmed=confirmed)
        send_driver = driver if target == OrderStatus.OUT_FOR_DELIVERY else None

        logger.info(f"Order {order.id}: {order.status.value} → {target.value}")
        response = await self._api.update_status(order.id, target, driver=send_driver)

        updated = merge_acknowledged(order, response.order, target, send_driver)
        if updated.status != target:
            logger.warning(
                f"Order {order.id}: store acknowledged '{updated.status.value}' "
                f"instead of '{target.value}'"
            )

        if response.message:
            logger.info(f"Order {order.id}: store message: {response.message}")
            if self._notifications is not None:
                await self._notifications.show_message(response.message, updated)

        return TransitionResult(order=updated, previous_status=order.status, message=response.message)
