"""
Order Lifecycle State Machine

Single source of truth for which status changes are legal:

    pending ──► preparing ──► completed            (dine_in)
                    │ ├─────► out_for_delivery ──► completed   (take_out, needs a driver)
                    │ └─────► ready ──► completed  (any type)
    any non-terminal ──► cancelled                 (explicit confirmation)

completed and cancelled are terminal. Nothing here touches the network;
the helpers decide and the TransitionService acts.
"""

from typing import Iterable, Optional

from orderdesk.core.exceptions import InvalidTransitionError, ValidationError
from orderdesk.schemas import Driver, Order, OrderStatus, OrderType

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
})

# (from, to) -> order types allowed to take that edge
TRANSITIONS: dict[tuple[OrderStatus, OrderStatus], frozenset[OrderType]] = {
    (OrderStatus.PENDING, OrderStatus.PREPARING): frozenset(OrderType),
    (OrderStatus.PREPARING, OrderStatus.COMPLETED): frozenset({OrderType.DINE_IN}),
    (OrderStatus.PREPARING, OrderStatus.OUT_FOR_DELIVERY): frozenset({OrderType.TAKE_OUT}),
    (OrderStatus.PREPARING, OrderStatus.READY): frozenset(OrderType),
    (OrderStatus.READY, OrderStatus.COMPLETED): frozenset(OrderType),
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.COMPLETED): frozenset(OrderType),
}

for _status in OrderStatus:
    if _status not in TERMINAL_STATUSES:
        TRANSITIONS[(_status, OrderStatus.CANCELLED)] = frozenset(OrderType)


def is_terminal(status: OrderStatus) -> bool:
    """Return True if no transition leaves ``status``."""
    return OrderStatus(status) in TERMINAL_STATUSES


def allowed_targets(status: OrderStatus, order_type: OrderType) -> frozenset[OrderStatus]:
    """Statuses reachable in one step for an order of ``order_type``."""
    status = OrderStatus(status)
    order_type = OrderType(order_type)
    return frozenset(
        target
        for (source, target), types in TRANSITIONS.items()
        if source == status and order_type in types
    )


def can_transition(order: Order, target: OrderStatus) -> bool:
    """Return True if ``order`` may move to ``target``."""
    return OrderStatus(target) in allowed_targets(order.status, order.order_type)


def validate_transition(
    order: Order,
    target: OrderStatus,
    driver: Optional[Driver] = None,
    confirmed: bool = False,
) -> OrderStatus:
    """
    Check a requested transition before anything is sent.

    Args:
        order: Current snapshot
        target: Requested status
        driver: Required when moving a take-out order out for delivery
        confirmed: Operator confirmed a cancellation

    Returns:
        The target as an OrderStatus

    Raises:
        InvalidTransitionError: The edge is not in the table for this order type
        ValidationError: The edge exists but its payload is missing
    """
    try:
        target = OrderStatus(target)
    except ValueError:
        raise InvalidTransitionError(order.status.value, str(target), order.order_type.value)

    if not can_transition(order, target):
        raise InvalidTransitionError(order.status.value, target.value, order.order_type.value)

    if target == OrderStatus.OUT_FOR_DELIVERY:
        if driver is None or not driver.name.strip():
            raise ValidationError("A driver name is required to send an order out for delivery", field="driver")

    if target == OrderStatus.CANCELLED and not confirmed:
        raise ValidationError("Cancelling an order must be confirmed", field="confirmed")

    return target


def apply_transition(orders: Iterable[Order], order_id: str, updated: Order) -> list[Order]:
    """
    Replace one order in a list with its acknowledged version.

    Pure: the input is left untouched and a new list is returned. An id
    that is not present yields an equal copy of the input.
    """
    order_id = str(order_id)
    return [updated if order.id == order_id else order for order in orders]
