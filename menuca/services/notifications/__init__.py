"""Email sender selection: the mock sink in development, SendGrid elsewhere."""

import logging
from functools import lru_cache

from menuca.core.config import get_settings
from menuca.services.notifications.base import BaseNotificationService, NotificationResult
from menuca.services.notifications.mock import MockNotificationService
from menuca.services.notifications.sendgrid import SendGridNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    settings = get_settings()
    if settings.use_real_services:
        logger.info(f"Email: SendGrid ({settings.env_mode.value})")
        return SendGridNotificationService()

    logger.info("Email: in-memory mock")
    return MockNotificationService(failure_rate=settings.mock_failure_rate)


def reset_notification_service() -> None:
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "BaseNotificationService",
    "NotificationResult",
]
