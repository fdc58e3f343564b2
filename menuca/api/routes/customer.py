"""
Storefront API: restaurant pages, delivery checks, checkout and the
customer's own account.

Restaurants are addressed by slug ("{name}-{id}"). Checkout supports card
payments (Stripe PaymentIntents confirmed in the browser) and pay-at-door
orders; either way the cart is re-priced on the server.
"""

import logging
import secrets
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import find_customer, get_customer, get_optional_user
from menuca.core.config import get_settings
from menuca.core.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
)
from menuca.database import get_db
from menuca.models import (
    Dish,
    ModifierGroup,
    Order,
    OrderStatusHistory,
    PaymentStatus,
    PromotionalDeal,
    Restaurant,
    RestaurantDeliveryArea,
    RestaurantLocation,
    RestaurantSchedule,
    User,
    UserAddress,
)
from menuca.schemas.customer import (
    CASH_PAYMENT_TYPES,
    AddressCreate,
    CardOrderRequest,
    CashOrderRequest,
    PaymentIntentRequest,
    ProfileUpdate,
    SignupRequest,
    WelcomeEmailRequest,
)
from menuca.services.geo import get_geo_service
from menuca.services.geo_zones import find_matching_zone
from menuca.services.identity import IdentityUser
from menuca.services.ordering import confirmation_payload, create_order, normalize_order_type, price_cart
from menuca.services.payment import get_payment_service
from menuca.services.procedures import get_procedure_service
from menuca.tasks import enqueue, send_order_confirmation, send_welcome_email
from menuca.utils import apply_updates, create_restaurant_slug, extract_id_from_slug, model_to_dict, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customer", tags=["Customer"])


async def restaurant_from_slug(db: AsyncSession, slug: Optional[str]) -> Restaurant:
    restaurant_id = extract_id_from_slug(slug or "")
    if restaurant_id is None:
        raise BadRequestError("Invalid restaurant identifier")
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None or restaurant.deleted_at is not None:
        raise NotFoundError("Restaurant not found")
    return restaurant


async def _rows(db: AsyncSession, model, restaurant_id: int, *criteria) -> list[dict]:
    result = await db.execute(
        select(model).where(model.restaurant_id == restaurant_id, *criteria).order_by(model.id)
    )
    return [model_to_dict(row) for row in result.scalars().all()]


def _serialize_zone(area: RestaurantDeliveryArea) -> dict:
    return {
        "id": area.id,
        "restaurant_id": area.restaurant_id,
        "name": area.display_name or area.area_name or f"Delivery Zone {area.area_number or area.id}",
        "delivery_fee": area.delivery_fee or 0,
        "min_order": area.min_order_value,
        "polygon": area.geometry,
        "is_active": area.is_active,
    }


def _serialize_order(order: Order) -> dict:
    data = model_to_dict(order)
    data["items"] = [model_to_dict(item) for item in order.items]
    data["restaurant"] = {
        "id": order.restaurant_id,
        "name": order.restaurant.name if order.restaurant else None,
        "slug": create_restaurant_slug(order.restaurant_id, order.restaurant.name) if order.restaurant else None,
    }
    data["current_status"] = order.status
    if order.user_id:
        data.pop("guest_email", None)
    return data


def _require_checkout_identity(user: Optional[IdentityUser], guest_email: Optional[str]) -> None:
    if user is None and not guest_email:
        raise BadRequestError("Email required for guest checkout")


def _service_time(service_time) -> tuple[Optional[str], Optional[object]]:
    """Special-instructions note and scheduled time for a scheduled order."""
    if service_time is None or service_time.type != "scheduled" or service_time.scheduledTime is None:
        return None, None
    return f"Scheduled for: {service_time.scheduledTime.isoformat()}", service_time.scheduledTime


# =============================================================================
# RESTAURANT PAGES
# =============================================================================

@router.get("/restaurants/{slug}")
async def get_restaurant(slug: str, db: AsyncSession = Depends(get_db)) -> dict:
    restaurant = await restaurant_from_slug(db, slug)
    data = model_to_dict(restaurant, exclude=("deleted_at",))
    data["slug"] = create_restaurant_slug(restaurant.id, restaurant.name)
    data["restaurant_locations"] = await _rows(db, RestaurantLocation, restaurant.id)
    data["restaurant_schedules"] = await _rows(db, RestaurantSchedule, restaurant.id)
    data["restaurant_delivery_areas"] = await _rows(
        db, RestaurantDeliveryArea, restaurant.id, RestaurantDeliveryArea.is_active.is_(True),
    )
    return data


@router.get("/restaurants/{slug}/menu")
async def get_menu(slug: str, db: AsyncSession = Depends(get_db)):
    restaurant = await restaurant_from_slug(db, slug)
    return await get_procedure_service().call(db, "get_restaurant_menu", {"p_restaurant_id": restaurant.id})


@router.get("/restaurants/{slug}/schedules")
async def get_schedules(slug: str, db: AsyncSession = Depends(get_db)) -> list[dict]:
    restaurant = await restaurant_from_slug(db, slug)
    return await _rows(db, RestaurantSchedule, restaurant.id, RestaurantSchedule.is_enabled.is_(True))


@router.get("/restaurants/{slug}/promotions")
async def get_promotions(slug: str, db: AsyncSession = Depends(get_db)) -> list[dict]:
    """Enabled deals whose date window includes today."""
    restaurant = await restaurant_from_slug(db, slug)
    today = date.today()

    result = await db.execute(
        select(PromotionalDeal)
        .where(
            PromotionalDeal.restaurant_id == restaurant.id,
            PromotionalDeal.is_enabled.is_(True),
            PromotionalDeal.deleted_at.is_(None),
            or_(PromotionalDeal.start_date.is_(None), PromotionalDeal.start_date <= today),
            or_(PromotionalDeal.end_date.is_(None), PromotionalDeal.end_date >= today),
        )
        .order_by(PromotionalDeal.id)
    )
    return [
        {
            "id": deal.id,
            "name": deal.name,
            "description": deal.description,
            "promo_code": deal.promo_code,
            "discount_type": deal.discount_type,
            "discount_value": deal.discount_value,
            "minimum_purchase": deal.minimum_purchase,
            "end_date": deal.end_date,
            "first_order_only": deal.first_order_only,
        }
        for deal in result.scalars().all()
    ]


@router.get("/dishes/{dish_id}/modifiers")
async def get_dish_modifiers(dish_id: int, db: AsyncSession = Depends(get_db)) -> dict:
    dish = await db.get(Dish, dish_id)
    if dish is None or dish.deleted_at is not None or not dish.is_active:
        raise NotFoundError("Dish not found")

    result = await db.execute(
        select(ModifierGroup)
        .where(ModifierGroup.dish_id == dish_id)
        .order_by(ModifierGroup.display_order, ModifierGroup.id)
    )
    groups = []
    for group in result.scalars().all():
        groups.append({
            **model_to_dict(group),
            "modifiers": [model_to_dict(m) for m in group.modifiers if m.is_active],
        })
    return {"dish_id": dish_id, "modifier_groups": groups}


@router.get("/validate-delivery")
async def validate_delivery(
    restaurant_id: int = Query(..., gt=0),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    address: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Match a point against the restaurant's active delivery areas.

    The point comes from lat/lng, or from geocoding address when no
    coordinates are given.
    """
    result = await db.execute(
        select(RestaurantDeliveryArea)
        .where(
            RestaurantDeliveryArea.restaurant_id == restaurant_id,
            RestaurantDeliveryArea.is_active.is_(True),
        )
        .order_by(RestaurantDeliveryArea.id)
    )
    zones = [_serialize_zone(area) for area in result.scalars().all()]

    if (lat is None or lng is None) and address:
        geocoded = await get_geo_service().geocode(address)
        if not geocoded.is_valid:
            raise BadRequestError(geocoded.error_message or "Address could not be located")
        lat, lng = geocoded.latitude, geocoded.longitude

    matched = None
    if lat is not None and lng is not None:
        matched = find_matching_zone((lng, lat), zones)

    return {
        "zones": zones,
        "matchedZone": matched,
        "isWithinDeliveryArea": matched is not None,
        "hasDeliveryZones": len(zones) > 0,
    }


# =============================================================================
# CHECKOUT
# =============================================================================

@router.post("/create-payment-intent")
async def create_payment_intent(
    body: PaymentIntentRequest,
    user: Optional[IdentityUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if body.amount <= 0:
        raise BadRequestError("Invalid amount")
    _require_checkout_identity(user, body.guest_email)

    payments = get_payment_service()
    customer = await find_customer(db, user)

    if customer is not None:
        stripe_customer_id = customer.stripe_customer_id
        if not stripe_customer_id:
            name = " ".join(p for p in (customer.first_name, customer.last_name) if p) or None
            stripe_customer_id = await payments.create_customer(
                customer.email, name=name, metadata={"user_id": str(customer.id)},
            )
            customer.stripe_customer_id = stripe_customer_id
            await db.commit()
    elif user is not None:
        stripe_customer_id = await payments.create_customer(
            user.email or body.guest_email, metadata={"user_id": user.id},
        )
    else:
        stripe_customer_id = await payments.create_customer(
            body.guest_email, metadata={"guest_checkout": "true"},
        )

    shipping = None
    if body.shipping_address is not None:
        addr = body.shipping_address
        shipping = {
            "name": addr.name or body.guest_email or "Customer",
            "address": {
                "line1": addr.street_address,
                "line2": addr.unit,
                "city": addr.city,
                "state": addr.province or "ON",
                "postal_code": addr.postal_code,
                "country": "CA",
            },
        }

    metadata = {
        **{k: str(v) for k, v in body.metadata.items()},
        "user_id": str(customer.id) if customer else "guest",
        "country": "CA",
    }
    if body.guest_email:
        metadata["guest_email"] = body.guest_email

    result = await payments.create_payment_intent(
        body.amount,
        currency=get_settings().stripe_currency,
        customer_id=stripe_customer_id,
        shipping=shipping,
        metadata=metadata,
    )
    if not result.success:
        raise ServiceError(result.error_message or "Failed to create payment intent")

    return {"clientSecret": result.client_secret, "paymentIntentId": result.payment_intent_id}


@router.post("/orders")
async def create_card_order(
    body: CardOrderRequest,
    user: Optional[IdentityUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Record an order for a card payment the browser has already confirmed.

    The intent must have succeeded, belong to this customer (or guest
    email), not have been used before, and its amount must match the
    server-side total.
    """
    if not body.payment_intent_id:
        raise BadRequestError("Payment intent ID required")
    if not body.cart_items:
        raise BadRequestError("Cart items required")
    _require_checkout_identity(user, body.guest_email)

    intent = await get_payment_service().retrieve_payment_intent(body.payment_intent_id)
    if not intent.success:
        raise BadRequestError(intent.error_message or "Payment not found")

    customer = await find_customer(db, user)
    metadata = intent.metadata or {}
    expected_user = str(customer.id) if customer else "guest"
    if metadata.get("user_id") != expected_user:
        raise UnauthorizedError("Payment mismatch")
    if customer is None and metadata.get("guest_email") != body.guest_email:
        raise UnauthorizedError("Email mismatch")
    if intent.status != "succeeded":
        raise BadRequestError("Payment not completed")
    if not metadata.get("restaurant_slug"):
        raise BadRequestError("Invalid payment intent metadata")

    existing = await db.scalar(
        select(Order.id).where(Order.stripe_payment_intent_id == body.payment_intent_id)
    )
    if existing is not None:
        raise ConflictError("This payment has already been processed", extra={"order_id": existing})

    restaurant = await restaurant_from_slug(db, metadata["restaurant_slug"])
    order_type = normalize_order_type(body.order_type)
    cart = await price_cart(db, restaurant, body.cart_items, order_type, tip=body.tip)

    if abs((intent.amount or 0) - cart.total) > 0.01:
        logger.error(f"Total mismatch for {body.payment_intent_id}: paid {intent.amount}, expected {cart.total}")
        raise BadRequestError(
            "Payment amount does not match order total",
            extra={"details": {"expected": cart.total, "received": intent.amount}},
        )

    address = body.delivery_address.model_dump() if body.delivery_address else None
    note, scheduled = _service_time(body.service_time)
    email = body.guest_email or (user.email if user else None)

    order = await create_order(
        db,
        restaurant,
        cart,
        order_type=order_type,
        payment_method="card",
        payment_status=PaymentStatus.PAID.value,
        payment_reference=body.payment_intent_id,
        user_id=customer.id if customer else None,
        guest_email=None if customer else body.guest_email,
        guest_name=address.get("name") if address else None,
        guest_phone=address.get("phone") if address else None,
        delivery_address=address,
        special_instructions=note,
        scheduled_time=scheduled,
    )
    db.add(OrderStatusHistory(order_id=order.id, status=order.status, notes="Order placed and payment confirmed"))
    await db.commit()

    if email:
        enqueue(send_order_confirmation, email, confirmation_payload(order, restaurant.name))

    return _serialize_order(order)


@router.post("/orders/cash")
async def create_cash_order(
    body: CashOrderRequest,
    user: Optional[IdentityUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if body.payment_type not in CASH_PAYMENT_TYPES:
        raise BadRequestError("Invalid payment type for cash order")
    if not body.cart_items:
        raise BadRequestError("Cart items required")
    if not body.restaurant_slug:
        raise BadRequestError("Restaurant slug required")
    _require_checkout_identity(user, body.guest_email)

    restaurant = await restaurant_from_slug(db, body.restaurant_slug)
    order_type = normalize_order_type(body.order_type)
    cart = await price_cart(db, restaurant, body.cart_items, order_type)

    customer = await find_customer(db, user)
    address = body.delivery_address.model_dump() if body.delivery_address else None
    note, scheduled = _service_time(body.service_time)

    order = await create_order(
        db,
        restaurant,
        cart,
        order_type=order_type,
        payment_method=body.payment_type,
        payment_status=PaymentStatus.PENDING.value,
        payment_reference=f"CASH-{secrets.token_hex(8).upper()}",
        user_id=customer.id if customer else None,
        guest_email=None if customer else body.guest_email,
        guest_name=address.get("name") if address else None,
        guest_phone=address.get("phone") if address else None,
        delivery_address=address,
        special_instructions=note,
        scheduled_time=scheduled,
    )
    db.add(OrderStatusHistory(order_id=order.id, status=order.status, notes=f"Order placed ({body.payment_type})"))
    await db.commit()

    email = body.guest_email or (user.email if user else None)
    if email:
        enqueue(send_order_confirmation, email, confirmation_payload(order, restaurant.name))
    else:
        logger.warning(f"Order #{order.id}: no customer email, confirmation skipped")

    return {
        "success": True,
        "order_id": order.id,
        "order_number": str(order.id),
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "total": order.total,
    }


@router.get("/orders")
async def order_history(
    customer: User = Depends(get_customer),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    """The signed-in customer's orders, newest first."""
    result = await db.execute(
        select(Order)
        .where(Order.user_id == customer.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    orders = []
    for order in result.scalars().all():
        data = _serialize_order(order)
        data["restaurant"]["logo_url"] = order.restaurant.logo_url if order.restaurant else None
        orders.append(data)
    return orders


@router.get("/orders/{order_id}")
async def get_order(
    order_id: int,
    email: Optional[str] = Query(None, description="Guest email used at checkout"),
    user: Optional[IdentityUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Visible to the customer who placed it, or to a guest quoting the checkout email."""
    order = await db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")

    customer = await find_customer(db, user)
    is_owner = customer is not None and order.user_id == customer.id
    is_guest = (
        order.guest_email is not None
        and email is not None
        and order.guest_email.lower() == email.strip().lower()
    )
    if not (is_owner or is_guest):
        raise NotFoundError("Order not found")

    return _serialize_order(order)


# =============================================================================
# PAYMENT WEBHOOK
# =============================================================================

WEBHOOK_PAYMENT_STATUS = {
    "payment_intent.succeeded": PaymentStatus.PAID.value,
    "payment_intent.payment_failed": PaymentStatus.FAILED.value,
    "charge.refunded": PaymentStatus.REFUNDED.value,
}


@router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if not stripe_signature:
        raise BadRequestError("No signature")

    event = await get_payment_service().verify_webhook(await request.body(), stripe_signature)
    if event is None:
        raise BadRequestError("Invalid signature")

    event_type = event.get("type")
    payment_status = WEBHOOK_PAYMENT_STATUS.get(event_type)
    if payment_status is None:
        logger.debug(f"Webhook {event_type} ignored")
        return {"received": True, "status": "ignored"}

    obj = (event.get("data") or {}).get("object") or {}
    intent_id = obj.get("payment_intent") if event_type == "charge.refunded" else obj.get("id")
    if not intent_id:
        raise BadRequestError("Event has no payment intent")

    result = await db.execute(
        update(Order)
        .where(Order.stripe_payment_intent_id == intent_id)
        .values(payment_status=payment_status, updated_at=utcnow())
    )
    await db.commit()

    logger.info(f"Webhook {event_type}: {result.rowcount} order(s) for {intent_id} marked {payment_status}")
    return {"received": True, "status": "processed"}


# =============================================================================
# ACCOUNT
# =============================================================================

def _serialize_customer(customer: User) -> dict:
    return model_to_dict(customer, exclude=("auth_user_id", "stripe_customer_id"))


@router.post("/signup")
async def signup(
    body: SignupRequest,
    user: Optional[IdentityUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Create the customer row for a freshly registered auth account.

    Called right after sign-up, when email confirmation may still be
    pending, so a session is optional; if one is sent it must belong to
    the account being created.
    """
    if user is not None and user.id != body.auth_user_id:
        raise ForbiddenError("Forbidden - can only create profile for authenticated user")

    result = await db.execute(
        select(User).where(or_(User.auth_user_id == body.auth_user_id, User.email == body.email))
    )
    if result.scalars().first() is not None:
        raise ConflictError("An account with this email already exists")

    customer = User(**body.model_dump())
    db.add(customer)
    await db.commit()
    await db.refresh(customer)

    logger.info(f"Customer {customer.id} signed up ({customer.email})")
    return {"success": True, "user": _serialize_customer(customer)}


@router.get("/profile")
async def get_profile(customer: User = Depends(get_customer)) -> dict:
    return _serialize_customer(customer)


@router.patch("/profile")
async def update_profile(
    body: ProfileUpdate,
    customer: User = Depends(get_customer),
    db: AsyncSession = Depends(get_db),
) -> dict:
    changed = apply_updates(customer, body.model_dump(exclude_unset=True))
    if changed:
        await db.commit()
        await db.refresh(customer)
        logger.info(f"Customer {customer.id} updated {changed}")
    return _serialize_customer(customer)


@router.get("/addresses")
async def list_addresses(
    customer: User = Depends(get_customer),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    result = await db.execute(
        select(UserAddress)
        .where(UserAddress.user_id == customer.id)
        .order_by(UserAddress.is_default.desc(), UserAddress.id)
    )
    return [model_to_dict(a) for a in result.scalars().all()]


@router.post("/addresses", status_code=201)
async def create_address(
    body: AddressCreate,
    customer: User = Depends(get_customer),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if body.is_default:
        await db.execute(
            update(UserAddress).where(UserAddress.user_id == customer.id).values(is_default=False)
        )

    geocoded = await get_geo_service().geocode(
        f"{body.street_address}, {body.city}, {body.province} {body.postal_code}"
    )
    address = UserAddress(
        user_id=customer.id,
        **body.model_dump(),
        latitude=geocoded.latitude if geocoded.is_valid else None,
        longitude=geocoded.longitude if geocoded.is_valid else None,
    )
    db.add(address)
    await db.commit()
    await db.refresh(address)
    return model_to_dict(address)


@router.delete("/addresses/{address_id}")
async def delete_address(
    address_id: int,
    customer: User = Depends(get_customer),
    db: AsyncSession = Depends(get_db),
) -> dict:
    address = await db.get(UserAddress, address_id)
    if address is None or address.user_id != customer.id:
        raise NotFoundError("Address not found")
    await db.delete(address)
    await db.commit()
    return {"success": True}


@router.post("/welcome-email")
async def welcome_email(body: WelcomeEmailRequest) -> dict:
    queued = enqueue(send_welcome_email, body.email, body.first_name)
    return {"success": queued}
