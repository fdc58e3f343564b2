"""Email sink for development: messages are logged and appended to `sent`."""

import logging
import random
import uuid
from typing import Optional

from menuca.services.notifications.base import BaseNotificationService, NotificationResult

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):

    def __init__(self, failure_rate: float = 0.0):
        self.failure_rate = failure_rate
        self.sent: list[dict] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        if random.random() < self.failure_rate:
            logger.warning(f"Mock email: dropping {subject!r} to {to_email}")
            return NotificationResult(success=False, error_message="Mock email was dropped")

        self.sent.append({"to": to_email, "subject": subject, "html": body_html, "text": body_text})
        logger.info(f"Mock email: {subject!r} to {to_email}")
        return NotificationResult(success=True, message_id=f"mock_{uuid.uuid4().hex[:12]}")
