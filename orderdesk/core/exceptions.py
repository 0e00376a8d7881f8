"""
Order Desk Error Taxonomy

Every failure the order core can report derives from OrderDeskError:

    ValidationError          bad input, raised before any network call
    InvalidTransitionError   state-machine guard rejected the edge
    NetworkError             transport failure talking to the order store
    ServerRejectionError     non-2xx answer carrying a server message
        NotFoundError        the order id does not resolve

Validation and transition errors are meant for the operator. Network and
server errors raised while polling are logged and the last snapshot kept.
"""

from typing import Optional


class OrderDeskError(Exception):
    """Base class for all order core errors."""


class ValidationError(OrderDeskError):
    """Input rejected locally before anything is sent."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class InvalidTransitionError(OrderDeskError):
    """The requested status is not reachable from the current one."""

    def __init__(self, current: str, target: str, order_type: Optional[str] = None):
        self.current = current
        self.target = target
        self.order_type = order_type
        detail = f" for {order_type} orders" if order_type else ""
        super().__init__(f"Cannot move order from '{current}' to '{target}'{detail}")


class NetworkError(OrderDeskError):
    """The order store could not be reached."""


class ServerRejectionError(OrderDeskError):
    """The order store answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"[{status_code}] {message}")
        self.status_code = status_code
        self.message = message


class NotFoundError(ServerRejectionError):
    """The requested order does not exist (or is no longer visible)."""

    def __init__(self, message: str = "Order not found"):
        super().__init__(404, message)
