"""
Order status workflow and the tablet view of an order.

Kitchen tablets move orders along a fixed set of transitions. Terminal
states (delivered, completed, cancelled) accept no further changes.
"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from menuca.models import Order, OrderStatus, OrderStatusHistory, OrderType
from menuca.services.device_auth import mask_email, mask_phone
from menuca.tasks import enqueue, send_order_status_email
from menuca.utils import as_utc, utcnow

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, list[str]] = {
    OrderStatus.PENDING.value: [
        OrderStatus.CONFIRMED.value, OrderStatus.PREPARING.value, OrderStatus.CANCELLED.value,
    ],
    OrderStatus.CONFIRMED.value: [OrderStatus.PREPARING.value, OrderStatus.CANCELLED.value],
    OrderStatus.PREPARING.value: [OrderStatus.READY.value, OrderStatus.CANCELLED.value],
    OrderStatus.READY.value: [
        OrderStatus.OUT_FOR_DELIVERY.value, OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value,
    ],
    OrderStatus.OUT_FOR_DELIVERY.value: [OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value],
    OrderStatus.DELIVERED.value: [],
    OrderStatus.COMPLETED.value: [],
    OrderStatus.CANCELLED.value: [],
}


def allowed_transitions(status: str) -> list[str]:
    return ALLOWED_TRANSITIONS.get(status, [])


def can_transition(current: str, new: str) -> bool:
    return new in allowed_transitions(current)


async def apply_status_change(
    db: AsyncSession,
    order: Order,
    new_status: str,
    notes: Optional[str] = None,
    estimated_ready_minutes: Optional[int] = None,
    device_id: Optional[int] = None,
    admin_id: Optional[int] = None,
) -> OrderStatusHistory:
    """
    Move an order to new_status, stamping lifecycle timestamps and
    recording a history row. Callers check can_transition() first.

    Tablets and admins both come through here, so the customer hears about
    every change: a status email is queued whenever the order has a
    contact address.
    """
    now = utcnow()
    previous = order.status
    order.status = new_status

    if new_status == OrderStatus.CONFIRMED.value:
        order.confirmed_at = now
    elif new_status in (OrderStatus.COMPLETED.value, OrderStatus.DELIVERED.value):
        order.completed_at = now
    elif new_status == OrderStatus.CANCELLED.value:
        order.cancelled_at = now

    if new_status == OrderStatus.PREPARING.value and estimated_ready_minutes:
        order.estimated_ready_time = now + timedelta(minutes=estimated_ready_minutes)

    history = OrderStatusHistory(
        order_id=order.id,
        previous_status=previous,
        status=new_status,
        notes=notes,
        changed_by_device_id=device_id,
        changed_by_admin_id=admin_id,
    )
    db.add(history)
    await db.commit()
    await db.refresh(order)

    logger.info(f"Order #{order.id}: {previous} -> {new_status}")

    email = order_contact_email(order)
    if email:
        restaurant_name = order.restaurant.name if order.restaurant else None
        enqueue(send_order_status_email, email, order.id, new_status, restaurant_name)

    return history


def order_contact_email(order: Order) -> Optional[str]:
    if order.guest_email:
        return order.guest_email
    address = order.delivery_address or {}
    return address.get("email")


def _iso(value) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def to_tablet_order(order: Order) -> dict:
    """
    Shape an order for the kitchen tablet.

    Customer contact details are masked; the delivery address is only
    included for delivery orders.
    """
    address = order.delivery_address or {}

    items = []
    for item in order.items:
        modifiers = [
            {
                "id": mod.get("modifier_id"),
                "name": mod.get("modifier_name"),
                "price": float(mod.get("modifier_price") or 0),
            }
            for mod in (item.modifiers or [])
        ]
        unit_total = item.unit_price + sum(m["price"] for m in modifiers)
        items.append({
            "dish_id": item.dish_id,
            "name": item.dish_name,
            "quantity": item.quantity,
            "size": item.size_variant or "default",
            "unit_price": item.unit_price,
            "subtotal": round(unit_total * item.quantity, 2),
            "modifiers": modifiers,
            "special_instructions": item.special_instructions,
        })

    delivery_address = None
    if order.order_type == OrderType.DELIVERY.value and address:
        delivery_address = {
            "street": address.get("street_address") or address.get("street") or "",
            "unit": address.get("unit"),
            "city": address.get("city") or address.get("city_name") or "",
            "province": address.get("province"),
            "postal_code": address.get("postal_code") or "",
            "instructions": address.get("delivery_instructions"),
        }

    if order.scheduled_time:
        service_time = {"type": "scheduled", "scheduledTime": _iso(order.scheduled_time)}
    else:
        service_time = {"type": "asap"}

    return {
        "id": order.id,
        "order_number": str(order.id),
        "order_type": order.order_type,
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "customer": {
            "name": order.guest_name or address.get("name") or "Customer",
            "phone": mask_phone(order.guest_phone or address.get("phone")),
            "email": mask_email(order_contact_email(order)),
        },
        "items": items,
        "delivery_address": delivery_address,
        "service_time": service_time,
        "special_instructions": order.special_instructions,
        "subtotal": order.subtotal,
        "delivery_fee": order.delivery_fee,
        "tax_amount": order.tax,
        "tip_amount": order.tip,
        "discount_amount": order.discount,
        "total_amount": order.total,
        "acknowledged_at": _iso(order.acknowledged_at),
        "estimated_ready_time": _iso(order.estimated_ready_time),
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }
