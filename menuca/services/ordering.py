"""
Server-side order pricing and persistence.

Totals sent by the browser are never trusted: every line is re-priced from
dish_prices and modifiers, the delivery fee comes from the restaurant's
first active delivery area, and tax applies to subtotal plus delivery fee.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.core.config import get_settings
from menuca.core.errors import BadRequestError
from menuca.models import (
    Dish,
    DishPrice,
    Modifier,
    ModifierGroup,
    Order,
    OrderItem,
    OrderType,
    Restaurant,
    RestaurantDeliveryArea,
)

logger = logging.getLogger(__name__)


@dataclass
class PricedLine:
    dish_id: int
    name: str
    size: str
    quantity: int
    unit_price: float
    modifiers: list[dict] = field(default_factory=list)
    special_instructions: Optional[str] = None

    @property
    def subtotal(self) -> float:
        modifier_total = sum(m["modifier_price"] for m in self.modifiers)
        return round((self.unit_price + modifier_total) * self.quantity, 2)


@dataclass
class PricedCart:
    lines: list[PricedLine]
    subtotal: float
    delivery_fee: float
    tax: float
    tip: float
    total: float


def normalize_order_type(order_type: Optional[str]) -> str:
    """The storefront calls takeout "pickup"."""
    if order_type == "pickup":
        return OrderType.TAKEOUT.value
    if order_type in {t.value for t in OrderType}:
        return order_type
    return OrderType.DELIVERY.value


async def delivery_fee_for(db: AsyncSession, restaurant_id: int) -> float:
    result = await db.execute(
        select(RestaurantDeliveryArea)
        .where(
            RestaurantDeliveryArea.restaurant_id == restaurant_id,
            RestaurantDeliveryArea.is_active.is_(True),
        )
        .order_by(RestaurantDeliveryArea.id)
        .limit(1)
    )
    area = result.scalar_one_or_none()
    return float(area.delivery_fee or 0) if area else 0.0


async def price_cart(
    db: AsyncSession,
    restaurant: Restaurant,
    cart_items: list,
    order_type: str,
    tip: float = 0.0,
) -> PricedCart:
    """
    Re-price a cart against the database.

    Each cart item needs dish_id, quantity, size and modifiers (objects
    with an id). Only what the storefront shows can be bought: inactive
    dishes, prices and modifiers are treated as unknown, and a dish marked
    unavailable is refused. Raises BadRequestError for all of these and
    for non-positive quantities.
    """
    lines = []
    for item in cart_items:
        if not item.quantity or item.quantity <= 0:
            raise BadRequestError("Invalid quantity")

        dish = (await db.execute(
            select(Dish).where(
                Dish.id == item.dish_id,
                Dish.restaurant_id == restaurant.id,
                Dish.deleted_at.is_(None),
                Dish.is_active.is_(True),
            )
        )).scalar_one_or_none()
        if dish is None:
            raise BadRequestError(f"Dish {item.dish_id} not found")
        if not dish.is_available:
            raise BadRequestError(f"{dish.name} is currently unavailable")

        size = item.size or "default"
        price = (await db.execute(
            select(DishPrice).where(
                DishPrice.dish_id == dish.id,
                DishPrice.size_variant == size,
                DishPrice.is_active.is_(True),
            )
        )).scalar_one_or_none()
        if price is None:
            raise BadRequestError(f"Invalid price for dish {dish.id}")

        modifiers = []
        for selected in item.modifiers:
            modifier = (await db.execute(
                select(Modifier)
                .join(ModifierGroup, Modifier.modifier_group_id == ModifierGroup.id)
                .where(
                    Modifier.id == selected.id,
                    Modifier.is_active.is_(True),
                    ModifierGroup.dish_id == dish.id,
                )
            )).scalar_one_or_none()
            if modifier is None:
                raise BadRequestError(f"Invalid modifier {selected.id} for dish {dish.id}")
            modifiers.append({
                "modifier_id": modifier.id,
                "modifier_name": modifier.name,
                "modifier_price": float(modifier.price or 0),
            })

        lines.append(PricedLine(
            dish_id=dish.id,
            name=dish.name,
            size=size,
            quantity=item.quantity,
            unit_price=float(price.price),
            modifiers=modifiers,
            special_instructions=item.special_instructions,
        ))

    subtotal = round(sum(line.subtotal for line in lines), 2)
    delivery_fee = 0.0
    if order_type == OrderType.DELIVERY.value:
        delivery_fee = await delivery_fee_for(db, restaurant.id)
    tax = round((subtotal + delivery_fee) * get_settings().tax_rate, 2)
    total = round(subtotal + delivery_fee + tax + tip, 2)

    return PricedCart(
        lines=lines,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        tax=tax,
        tip=tip,
        total=total,
    )


async def create_order(
    db: AsyncSession,
    restaurant: Restaurant,
    cart: PricedCart,
    order_type: str,
    payment_method: str,
    payment_status: str,
    payment_reference: str,
    user_id: Optional[int] = None,
    guest_email: Optional[str] = None,
    guest_name: Optional[str] = None,
    guest_phone: Optional[str] = None,
    delivery_address: Optional[dict] = None,
    special_instructions: Optional[str] = None,
    scheduled_time=None,
) -> Order:
    order = Order(
        restaurant_id=restaurant.id,
        user_id=user_id,
        guest_email=guest_email,
        guest_name=guest_name,
        guest_phone=guest_phone,
        order_type=order_type,
        payment_method=payment_method,
        payment_status=payment_status,
        stripe_payment_intent_id=payment_reference,
        subtotal=cart.subtotal,
        delivery_fee=cart.delivery_fee,
        tax=cart.tax,
        tip=cart.tip,
        total=cart.total,
        delivery_address=delivery_address,
        special_instructions=special_instructions,
        scheduled_time=scheduled_time,
    )
    order.items = [
        OrderItem(
            dish_id=line.dish_id,
            dish_name=line.name,
            quantity=line.quantity,
            size_variant=line.size,
            unit_price=line.unit_price,
            modifiers=line.modifiers,
            special_instructions=line.special_instructions,
        )
        for line in cart.lines
    ]
    db.add(order)
    await db.commit()
    await db.refresh(order)

    logger.info(
        f"Order #{order.id} created for restaurant {restaurant.id} "
        f"({payment_method}, ${order.total:.2f})"
    )
    return order


def confirmation_payload(order: Order, restaurant_name: str) -> dict:
    """JSON-serialisable summary passed to the confirmation email task."""
    return {
        "order_id": order.id,
        "restaurant_name": restaurant_name,
        "items": [
            {
                "name": item.dish_name,
                "quantity": item.quantity,
                "size": item.size_variant,
                "unit_price": item.unit_price,
            }
            for item in order.items
        ],
        "subtotal": order.subtotal,
        "delivery_fee": order.delivery_fee,
        "tax": order.tax,
        "total": order.total,
        "delivery_address": order.delivery_address,
    }
