"""
Notification Service Factory

Returns Mock or Real notification service based on ENV_MODE.
"""

import logging
from functools import lru_cache

from orderflow.core.config import get_settings
from orderflow.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from orderflow.services.notifications.messages import (
    ADMIN_NEW_ORDER,
    MESSAGE_KINDS,
    ORDER_PLACED,
    PAYMENT_CONFIRMED,
    STATUS_CHANGED,
    OrderMessage,
    build_order_message,
)
from orderflow.services.notifications.mock import MockNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    """Get the configured notification service."""
    settings = get_settings()

    if not settings.use_real_services:
        logger.info("Notification Service: Using MockNotificationService (development mode)")
        return MockNotificationService(failure_rate=0.05)

    # Provider SDKs are only needed outside development
    from orderflow.services.notifications.real import RealNotificationService

    logger.info(f"Notification Service: Using RealNotificationService ({settings.env_mode.value} mode)")
    return RealNotificationService(settings)


def reset_notification_service() -> None:
    """Clear the cached service instance."""
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "BaseNotificationService",
    "NotificationResult",
    "MockNotificationService",
    "OrderMessage",
    "build_order_message",
    "MESSAGE_KINDS",
    "ORDER_PLACED",
    "ADMIN_NEW_ORDER",
    "STATUS_CHANGED",
    "PAYMENT_CONFIRMED",
]
