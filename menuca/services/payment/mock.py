"""
In-memory stand-in for Stripe used in development and tests.

Intents live in a dict so the order endpoint can read back what the
payment-intent endpoint created. Nothing confirms them on its own: call
mark_succeeded() to play the browser's part. Webhook payloads are trusted
as-is.
"""

import json
import logging
import random
import uuid
from typing import Optional

from menuca.services.payment.base import BasePaymentService, PaymentResult

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    declines = (
        ("card_declined", "Your card was declined."),
        ("insufficient_funds", "Your card has insufficient funds."),
        ("processing_error", "An error occurred while processing your card."),
    )

    def __init__(self, failure_rate: float = 0.0):
        self.failure_rate = failure_rate
        self.intents: dict[str, PaymentResult] = {}
        logger.info(f"Mock payments ready, {failure_rate:.0%} of intents will be declined")

    @property
    def provider_name(self) -> str:
        return "mock"

    def mark_succeeded(self, payment_intent_id: str) -> None:
        self.intents[payment_intent_id].status = "succeeded"

    def reset(self) -> None:
        self.intents.clear()

    async def create_customer(
        self,
        email: str,
        name: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Optional[str]:
        return f"cus_mock_{uuid.uuid4().hex[:14]}"

    async def create_payment_intent(
        self,
        amount: float,
        currency: str = "cad",
        customer_id: Optional[str] = None,
        shipping: Optional[dict] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        if random.random() < self.failure_rate:
            code, message = random.choice(self.declines)
            logger.debug(f"Mock payments: declined intent ({code})")
            return PaymentResult(success=False, error_message=message, error_code=code)

        intent_id = f"pi_mock_{uuid.uuid4().hex[:24]}"
        intent = self.intents[intent_id] = PaymentResult(
            success=True,
            payment_intent_id=intent_id,
            client_secret=f"{intent_id}_secret_mock",
            status="requires_payment_method",
            amount=round(amount, 2),
            currency=currency,
            customer_id=customer_id,
            metadata=metadata or {},
        )
        logger.debug(f"Mock payments: intent {intent_id} for ${amount:.2f}")
        return intent

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentResult:
        if payment_intent_id in self.intents:
            return self.intents[payment_intent_id]
        return PaymentResult(
            success=False,
            payment_intent_id=payment_intent_id,
            error_message="No such payment_intent",
            error_code="resource_missing",
        )

    async def verify_webhook(self, payload: bytes, signature: str) -> Optional[dict]:
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Mock payments: webhook body is not JSON")
            return None

    async def health_check(self) -> bool:
        return True
