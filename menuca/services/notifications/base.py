"""
Transactional customer email: welcome, order confirmation and order
status updates. Implementations only provide send_email(); the message
bodies are rendered from Jinja2 templates here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from menuca.core.config import get_settings
from menuca.services.notifications.templates import render_email

STATUS_MESSAGES = {
    "confirmed": "Your order has been confirmed by the restaurant.",
    "preparing": "The kitchen is preparing your order.",
    "ready": "Your order is ready.",
    "out_for_delivery": "Your order is on its way.",
    "delivered": "Your order has been delivered. Enjoy!",
    "completed": "Your order is complete. Thank you!",
    "cancelled": "Your order has been cancelled.",
}


@dataclass
class NotificationResult:
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None


class BaseNotificationService(ABC):

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        ...

    async def send_welcome_email(self, to_email: str, first_name: Optional[str] = None) -> NotificationResult:
        settings = get_settings()
        html = render_email(
            "welcome.html",
            first_name=first_name or "there",
            site_url=settings.app_base_url,
        )
        return await self.send_email(
            to_email=to_email,
            subject="Welcome to Menu.ca!",
            body_html=html,
            body_text=f"Hi {first_name or 'there'}, welcome to Menu.ca! Order from {settings.app_base_url}",
        )

    async def send_order_confirmation(self, to_email: str, order: dict) -> NotificationResult:
        """
        Send the order confirmation.

        Args:
            order: Order summary with order_id, restaurant_name, items
                (name, quantity, size, unit_price), subtotal, tax,
                delivery_fee, total and an optional delivery_address
        """
        html = render_email("order_confirmation.html", order=order)
        return await self.send_email(
            to_email=to_email,
            subject=f"Order Confirmed #{order['order_id']} - {order.get('restaurant_name', 'Menu.ca')}",
            body_html=html,
            body_text=(
                f"Your order #{order['order_id']} has been received. "
                f"Total: ${float(order.get('total', 0)):.2f}"
            ),
        )

    async def send_order_status_update(
        self,
        to_email: str,
        order_id: int,
        status: str,
        restaurant_name: Optional[str] = None,
    ) -> NotificationResult:
        message = STATUS_MESSAGES.get(status, f"Your order status is now {status}.")
        html = render_email(
            "order_status.html",
            order_id=order_id,
            status=status,
            message=message,
            restaurant_name=restaurant_name,
        )
        return await self.send_email(
            to_email=to_email,
            subject=f"Order #{order_id} update",
            body_html=html,
            body_text=message,
        )
