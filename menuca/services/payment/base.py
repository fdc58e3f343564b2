"""
Payment gateway interface.

Card checkout is confirmed in the browser: the API creates a PaymentIntent,
hands its client secret to Stripe.js, and later records the order only if
the intent it reads back has status "succeeded". Webhooks keep
payment_status in sync afterwards (failed or refunded charges).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class PaymentResult:
    """
    One PaymentIntent as seen by the API, or the reason it could not be read.

    amount is in dollars; metadata carries the checkout's email and
    restaurant id so the order endpoint can match the intent to the caller.
    """
    success: bool
    payment_intent_id: Optional[str] = None
    client_secret: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "cad"
    customer_id: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[dict] = None


class BasePaymentService(ABC):

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def create_customer(
        self,
        email: str,
        name: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Optional[str]:
        """Provider customer id for a signed-in diner, or None if creation failed."""

    @abstractmethod
    async def create_payment_intent(
        self,
        amount: float,
        currency: str = "cad",
        customer_id: Optional[str] = None,
        shipping: Optional[dict] = None,
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        """
        Open an intent for the checkout total (dollars).

        shipping is the delivery name and address, passed through so the
        provider's receipt shows where the order went.
        """

    @abstractmethod
    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentResult:
        ...

    @abstractmethod
    async def verify_webhook(self, payload: bytes, signature: str) -> Optional[dict]:
        """The parsed event when the signature checks out, otherwise None."""

    @abstractmethod
    async def health_check(self) -> bool:
        ...
