"""
Payment gateway selection.

Development gets MockPaymentService; staging and production get Stripe
(test or live keys respectively, whichever STRIPE_SECRET_KEY holds).
"""

import logging
from functools import lru_cache

from menuca.core.config import get_settings
from menuca.services.payment.base import BasePaymentService, PaymentResult
from menuca.services.payment.mock import MockPaymentService
from menuca.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    settings = get_settings()
    if settings.use_real_services:
        logger.info(f"Payments: Stripe ({settings.env_mode.value})")
        return StripePaymentService()

    logger.info("Payments: in-memory mock")
    return MockPaymentService(failure_rate=settings.mock_failure_rate)


def reset_payment_service() -> None:
    get_payment_service.cache_clear()


__all__ = [
    "get_payment_service",
    "reset_payment_service",
    "BasePaymentService",
    "PaymentResult",
]
