"""
                        Services Module

Integrations behind the order core, each with a factory that picks the
implementation for the current ENV_MODE.

Services:
    - orders: Order store HTTP client
    - notifications: New order chime, diner alerts, operator messages
    - scheduler: Polling loop, cancellation token, sequence gate
"""

from orderdesk.services.notifications import get_notification_service
from orderdesk.services.orders import get_order_api

__all__ = ["get_order_api", "get_notification_service"]
