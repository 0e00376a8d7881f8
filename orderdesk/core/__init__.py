"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from orderdesk.core.config import (
    ClientContext,
    EnvironmentMode,
    Settings,
    get_settings,
    setup_logging,
)
from orderdesk.core.exceptions import (
    InvalidTransitionError,
    NetworkError,
    NotFoundError,
    OrderDeskError,
    ServerRejectionError,
    ValidationError,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "ClientContext",
    "OrderDeskError",
    "ValidationError",
    "InvalidTransitionError",
    "NetworkError",
    "ServerRejectionError",
    "NotFoundError",
]
