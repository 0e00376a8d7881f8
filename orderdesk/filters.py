"""
Live Orders Filtering and Search

Pure derivation of the visible subset of the staff order list from
(orders, status filter, order type filter, search term). Recomputed on
every render; never mutates its input.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Sequence

from orderdesk.schemas import Order, OrderStatus

ALL = "all"

# "preparing" is the kitchen bucket for both order types
STATUS_ALIASES: dict[str, frozenset[str]] = {
    OrderStatus.PREPARING.value: frozenset({
        OrderStatus.PREPARING.value,
        OrderStatus.OUT_FOR_DELIVERY.value,
    }),
}


@dataclass(frozen=True)
class OrderFilter:
    """Dashboard filter bar state."""
    status: str = ALL
    order_type: str = ALL
    search: str = ""


def _value(v) -> str:
    return getattr(v, "value", v)


def matches_status(order: Order, status: str) -> bool:
    status = _value(status)
    if not status or status == ALL:
        return True
    return order.status.value in STATUS_ALIASES.get(status, frozenset({status}))


def matches_type(order: Order, order_type: str) -> bool:
    order_type = _value(order_type)
    if not order_type or order_type == ALL:
        return True
    return order.order_type.value == order_type


def matches_search(order: Order, search: str) -> bool:
    term = (search or "").strip().lower()
    if not term:
        return True
    haystacks = [order.id, str(order.total_price)]
    if order.order_number is not None:
        haystacks.append(str(order.order_number))
    return any(term in h.lower() for h in haystacks)


def filter_orders(
    orders: Iterable[Order],
    status: str = ALL,
    order_type: str = ALL,
    search: str = "",
) -> list[Order]:
    """
    Return the orders passing all three filters, in input order.

    Args:
        orders: Full in-memory order list
        status: Status bucket or "all"
        order_type: "dine_in", "take_out" or "all"
        search: Case-insensitive fragment of order number, id or total
    """
    return [
        order for order in orders
        if matches_status(order, status)
        and matches_type(order, order_type)
        and matches_search(order, search)
    ]


def apply_filter(orders: Iterable[Order], criteria: OrderFilter) -> list[Order]:
    return filter_orders(orders, criteria.status, criteria.order_type, criteria.search)


def count_pending(orders: Iterable[Order]) -> int:
    return sum(1 for order in orders if order.status == OrderStatus.PENDING)


def count_by_status(orders: Sequence[Order]) -> dict[str, int]:
    """Counter per status value, every status present (zero if unused)."""
    counts = Counter(order.status.value for order in orders)
    return {status.value: counts.get(status.value, 0) for status in OrderStatus}
