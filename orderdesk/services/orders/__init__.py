"""
Order API Factory

Returns an order store client configured for the current ENV_MODE.

Environment Switching:
    - ENV_MODE=development → HttpOrderApi bound in-process to the simulation store
    - ENV_MODE=staging/production → HttpOrderApi against ORDER_API_BASE_URL

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

import httpx

from orderdesk.core.config import ClientContext, get_settings
from orderdesk.services.orders.base import BaseOrderApi
from orderdesk.services.orders.http import HttpOrderApi
from orderdesk.simulation import create_app

logger = logging.getLogger(__name__)

SIMULATION_BASE_URL = "http://simulation.local"


@lru_cache()
def get_order_api() -> BaseOrderApi:
    """Get the configured order API client."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Order API: Using in-process simulation store (development mode)")
        context = ClientContext(
            base_url=SIMULATION_BASE_URL,
            auth_token=settings.simulation_auth_token,
            timeout_seconds=settings.request_timeout_seconds,
        )
        return HttpOrderApi(context, transport=httpx.ASGITransport(app=create_app(settings)))

    logger.info(f"Order API: Using {settings.order_api_base_url} ({settings.env_mode.value} mode)")
    return HttpOrderApi(ClientContext.from_settings(settings))


def reset_order_api() -> None:
    """Clear the cached client instance."""
    get_order_api.cache_clear()


__all__ = [
    "get_order_api",
    "reset_order_api",
    "BaseOrderApi",
    "HttpOrderApi",
]
