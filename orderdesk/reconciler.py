"""
Live Orders Reconciler (staff side)

Keeps the dashboard's order list eventually consistent with the order
store without a push channel:

- polls GET /orders on a fixed interval, swapping the whole snapshot
- fires the new-order alert when the pending count grows between two
  snapshots (never on the first load, never on total-count growth alone)
- keeps the last good snapshot when a poll fails
- applies transitions only once the store acknowledged them, then
  re-polls straight away

Each reconciler owns its list. Two dashboards may disagree until their
next poll; that window is expected.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime
from typing import Optional

from orderdesk.core.exceptions import NetworkError, NotFoundError, ServerRejectionError
from orderdesk.filters import ALL, OrderFilter, apply_filter, count_by_status, count_pending
from orderdesk.lifecycle import apply_transition
from orderdesk.schemas import Driver, Order, OrderStatus
from orderdesk.services.notifications.base import BaseNotificationService
from orderdesk.services.orders.base import BaseOrderApi
from orderdesk.services.scheduler import PollingTask, SequenceGate
from orderdesk.transitions import TransitionResult, TransitionService

logger = logging.getLogger(__name__)


class OrderReconciler:
    """
    Staff poller for the live orders view.

    Example:
        >>> reconciler = OrderReconciler(get_order_api(), get_notification_service())
        >>> await reconciler.refresh()
        >>> reconciler.visible_orders(OrderFilter(status="pending"))
    """

    def __init__(
        self,
        api: BaseOrderApi,
        notifications: BaseNotificationService,
        interval: float = 30.0,
        transitions: Optional[TransitionService] = None,
    ):
        self._api = api
        self._notifications = notifications
        self._transitions = transitions or TransitionService(api, notifications)
        self._orders: list[Order] = []
        self._loaded = False
        self._gate = SequenceGate()
        self._task = PollingTask("live-orders", self.poll, interval)

        self.alerts_fired = 0
        self.last_error: Optional[Exception] = None
        self.last_synced_at: Optional[datetime] = None

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def orders(self) -> list[Order]:
        """Current snapshot (a copy; the reconciler owns the real list)."""
        return list(self._orders)

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def pending_count(self) -> int:
        return count_pending(self._orders)

    def get(self, order_id: str) -> Optional[Order]:
        order_id = str(order_id)
        return next((o for o in self._orders if o.id == order_id), None)

    def visible_orders(self, criteria: Optional[OrderFilter] = None) -> list[Order]:
        return apply_filter(self._orders, criteria or OrderFilter(ALL, ALL, ""))

    def stats(self) -> dict[str, int]:
        return count_by_status(self._orders)

    # =========================================================================
    # POLLING
    # =========================================================================

    async def poll(self) -> bool:
        """
        Fetch the full list and swap it in.

        Returns:
            True if the fetched snapshot was applied
        """
        sequence = self._gate.next()
        try:
            fresh = await self._api.list_orders()
        except (NetworkError, ServerRejectionError) as e:
            self.last_error = e
            logger.warning(
                f"Live orders refresh #{sequence} failed, keeping {len(self._orders)} orders: {e}"
            )
            return False

        if not self._gate.accept(sequence):
            logger.debug(f"Discarding stale live orders response #{sequence}")
            return False

        pending_before = count_pending(self._orders)
        pending_after = count_pending(fresh)
        had_baseline = self._loaded

        self._orders = list(fresh)
        self._loaded = True
        self.last_error = None
        self.last_synced_at = datetime.now()

        if had_baseline and pending_after > pending_before:
            await self._alert_new_orders(pending_after - pending_before)

        return True

    async def refresh(self) -> bool:
        """On-demand refresh signal."""
        return await self.poll()

    async def _alert_new_orders(self, new_count: int) -> None:
        pending = [o for o in self._orders if o.status == OrderStatus.PENDING]
        logger.info(f"🔔 {new_count} new pending order(s)")
        self.alerts_fired += 1
        result = await self._notifications.notify_new_orders(new_count, pending)
        if not result.success:
            logger.warning(f"New order alert not delivered: {result.error_message}")

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    async def join(self) -> None:
        await self._task.join()

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    async def transition(
        self,
        order_id: str,
        target: OrderStatus,
        driver: Optional[Driver] = None,
        confirmed: bool = False,
    ) -> TransitionResult:
        """
        Move one of the listed orders to ``target``.

        The local list changes only after the store acknowledged; errors
        propagate to the caller with the list untouched.
        """
        order = self.get(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} is not in the live orders list")

        result = await self._transitions.request_transition(
            order, target, driver=driver, confirmed=confirmed
        )

        self._orders = apply_transition(self._orders, order.id, result.order)
        # polls issued before the acknowledgement carry the old status
        self._gate.supersede()

        await self.refresh()
        return result
