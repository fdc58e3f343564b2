"""Transactional email through SendGrid's v3 mail API."""

import logging
from typing import Optional

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from menuca.core.config import get_settings
from menuca.services.notifications.base import BaseNotificationService, NotificationResult

logger = logging.getLogger(__name__)


class SendGridNotificationService(BaseNotificationService):

    def __init__(self):
        settings = get_settings()
        if not settings.sendgrid_api_key:
            raise ValueError("SENDGRID_API_KEY must be set outside development")
        self._client = SendGridAPIClient(settings.sendgrid_api_key)
        self._sender = settings.sendgrid_from_email

    @property
    def provider_name(self) -> str:
        return "sendgrid"

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        mail = Mail(
            from_email=self._sender,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text,
        )
        try:
            response = self._client.send(mail)
        except HTTPError as e:
            logger.error(f"SendGrid: {subject!r} to {to_email} failed: {e}")
            return NotificationResult(success=False, error_message=str(e))

        # SendGrid answers 202 once the message is queued
        if response.status_code >= 300:
            return NotificationResult(success=False, error_message=f"SendGrid returned {response.status_code}")
        return NotificationResult(success=True, message_id=response.headers.get("X-Message-Id"))
