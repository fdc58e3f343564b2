"""
Stripe-backed payments for storefront checkout (staging and production).

The browser confirms PaymentIntents with the client secret; the API only
creates them, reads them back when the order is recorded, and checks
webhook signatures with STRIPE_WEBHOOK_SECRET. Amounts cross this
boundary in dollars and are converted to cents here.
"""

import logging
from typing import Optional

import stripe

from menuca.core.config import get_settings
from menuca.services.payment.base import BasePaymentService, PaymentResult

logger = logging.getLogger(__name__)


class StripePaymentService(BasePaymentService):
    def __init__(self):
        settings = get_settings()
        if not settings.stripe_secret_key:
            raise ValueError("STRIPE_SECRET_KEY must be set outside development")

        stripe.api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._currency = settings.stripe_currency

        logger.info("StripePaymentService initialized")

    @property
    def provider_name(self) -> str:
        return "stripe"

    @staticmethod
    def _cents(amount: float) -> int:
        return int(round(amount * 100))

    @staticmethod
    def _dollars(cents: int) -> float:
        return cents / 100.0

    @staticmethod
    def _failure(e: stripe.StripeError) -> PaymentResult:
        """Map an SDK error to a result the checkout can show."""
        if isinstance(e, stripe.CardError):
            logger.warning(f"Stripe: card declined ({e.code}): {e.user_message}")
            return PaymentResult(success=False, error_message=e.user_message, error_code=e.code)
        if isinstance(e, stripe.AuthenticationError):
            logger.critical(f"Stripe: rejected our API key: {e}")
            return PaymentResult(success=False, error_message="Payments are misconfigured", error_code="authentication_error")
        if isinstance(e, stripe.APIConnectionError):
            logger.error(f"Stripe: unreachable: {e}")
            return PaymentResult(success=False, error_message="Payments are unavailable, try again shortly", error_code="connection_error")
        logger.error(f"Stripe: {e}")
        return PaymentResult(success=False, error_message=str(e), error_code="stripe_error")

    def _to_result(self, intent) -> PaymentResult:
        return PaymentResult(
            success=True,
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
            amount=self._dollars(intent.amount),
            currency=intent.currency,
            customer_id=intent.customer,
            metadata=dict(intent.metadata or {}),
        )

    async def create_customer(
        self,
        email: str,
        name: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Optional[str]:
        try:
            customer = stripe.Customer.create(email=email, name=name, metadata=metadata or {})
            return customer.id
        except stripe.StripeError as e:
            logger.error(f"Stripe: could not create customer for {email}: {e}")
            return None

    async def create_payment_intent(
        self,
        amount: float,
        currency: str = "cad",
        customer_id: Optional[str] = None,
        shipping: Optional[dict] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        params = {
            "amount": self._cents(amount),
            "currency": currency or self._currency,
            "metadata": metadata or {},
            "automatic_payment_methods": {"enabled": True},
        }
        if customer_id:
            params["customer"] = customer_id
        if shipping:
            params["shipping"] = shipping

        try:
            intent = stripe.PaymentIntent.create(**params)
        except stripe.StripeError as e:
            return self._failure(e)

        logger.info(f"Stripe: intent {intent.id} for ${amount:.2f}")
        return self._to_result(intent)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentResult:
        try:
            return self._to_result(stripe.PaymentIntent.retrieve(payment_intent_id))
        except stripe.InvalidRequestError as e:
            return PaymentResult(
                success=False,
                payment_intent_id=payment_intent_id,
                error_message=str(e),
                error_code="resource_missing",
            )
        except stripe.StripeError as e:
            return self._failure(e)

    async def verify_webhook(self, payload: bytes, signature: str) -> Optional[dict]:
        if not self._webhook_secret:
            logger.error("Stripe: no webhook secret configured, event rejected")
            return None

        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Stripe: webhook rejected: {e}")
            return None

        logger.debug(f"Stripe: webhook {event['id']} ({event['type']})")
        return event

    async def health_check(self) -> bool:
        try:
            stripe.Account.retrieve()
            return True
        except stripe.StripeError as e:
            logger.error(f"Stripe: health check failed: {e}")
            return False
