"""
Notification Service Factory

Returns Mock or Console notification service based on ENV_MODE.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from orderdesk.core.config import get_settings
from orderdesk.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from orderdesk.services.notifications.console import ConsoleNotificationService
from orderdesk.services.notifications.mock import MockNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    """Get the configured notification service."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Notification Service: Using MockNotificationService (development mode)")
        return MockNotificationService()
    else:
        logger.info(f"Notification Service: Using ConsoleNotificationService ({settings.env_mode.value} mode)")
        return ConsoleNotificationService()


def reset_notification_service() -> None:
    """Clear the cached service instance."""
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "BaseNotificationService",
    "NotificationResult",
    "MockNotificationService",
    "ConsoleNotificationService",
]
