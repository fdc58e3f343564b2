"""
Promotional deals (admin) and public promo code validation.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, ensure_restaurant_access, require_permission
from menuca.core.errors import BadRequestError, NotFoundError
from menuca.core.rbac import Action, Resource
from menuca.database import get_db
from menuca.models import Order, PaymentStatus, PromotionalCoupon, PromotionalDeal, Restaurant
from menuca.schemas.promotions import DealCreate, DealToggle, DealUpdate, PromoValidateRequest
from menuca.services.procedures import get_procedure_service
from menuca.utils import apply_updates, as_utc, extract_id_from_slug, model_to_dict, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Promotions"])

can_view_coupons = require_permission(Resource.COUPONS, Action.VIEW)
can_edit_coupons = require_permission(Resource.COUPONS, Action.EDIT)

# Order types a coupon's availability_types entry covers
AVAILABILITY_ALIASES = {
    "delivery": {"delivery", "all"},
    "pickup": {"takeout", "pickup", "all"},
    "takeout": {"takeout", "pickup", "all"},
    "dine_in": {"dine_in", "all"},
}


def serialize_deal(deal: PromotionalDeal) -> dict:
    return model_to_dict(deal, exclude=("deleted_at",))


async def _load_deal(db: AsyncSession, admin: AdminContext, deal_id: int) -> PromotionalDeal:
    deal = await db.get(PromotionalDeal, deal_id)
    if deal is None or deal.deleted_at is not None:
        raise NotFoundError("Deal not found")
    ensure_restaurant_access(admin, deal.restaurant_id)
    return deal


# =============================================================================
# DEALS
# =============================================================================

@router.get("/api/admin/promotions/deals")
async def list_deals(
    restaurant_id: Optional[int] = Query(None),
    admin: AdminContext = Depends(can_view_coupons),
    db: AsyncSession = Depends(get_db),
) -> dict:
    query = (
        select(PromotionalDeal)
        .where(PromotionalDeal.deleted_at.is_(None))
        .order_by(PromotionalDeal.created_at.desc(), PromotionalDeal.id.desc())
    )
    if restaurant_id is not None:
        ensure_restaurant_access(admin, restaurant_id)
        query = query.where(PromotionalDeal.restaurant_id == restaurant_id)
    elif admin.restaurant_ids is not None:
        query = query.where(PromotionalDeal.restaurant_id.in_(admin.restaurant_ids))

    deals = (await db.execute(query)).scalars().all()
    return {"deals": [serialize_deal(d) for d in deals], "total": len(deals)}


@router.post("/api/admin/promotions/deals/create", status_code=201)
async def create_deal(
    body: DealCreate,
    admin: AdminContext = Depends(require_permission(Resource.COUPONS, Action.CREATE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    ensure_restaurant_access(admin, body.restaurant_id)
    data = body.model_dump()
    if data["promo_code"]:
        data["promo_code"] = data["promo_code"].strip().upper()

    deal = PromotionalDeal(**data, created_by=admin.admin_user.id)
    db.add(deal)
    await db.commit()
    await db.refresh(deal)

    logger.info(f"Deal {deal.id} '{deal.name}' created for restaurant {deal.restaurant_id}")
    return {"success": True, "deal": serialize_deal(deal)}


@router.get("/api/admin/promotions/deals/{deal_id}")
async def get_deal(
    deal_id: int,
    admin: AdminContext = Depends(can_view_coupons),
    db: AsyncSession = Depends(get_db),
) -> dict:
    return {"deal": serialize_deal(await _load_deal(db, admin, deal_id))}


@router.patch("/api/admin/promotions/deals/{deal_id}")
async def update_deal(
    deal_id: int,
    body: DealUpdate,
    admin: AdminContext = Depends(can_edit_coupons),
    db: AsyncSession = Depends(get_db),
) -> dict:
    deal = await _load_deal(db, admin, deal_id)
    updates = body.model_dump(exclude_unset=True)
    if updates.get("promo_code"):
        updates["promo_code"] = updates["promo_code"].strip().upper()

    start = updates.get("start_date", deal.start_date)
    end = updates.get("end_date", deal.end_date)
    if start and end and end < start:
        raise BadRequestError("end_date must be on or after start_date")
    discount_type = updates.get("discount_type", deal.discount_type)
    discount_value = updates.get("discount_value", deal.discount_value)
    if discount_type == "percentage" and discount_value is not None and discount_value > 100:
        raise BadRequestError("Percentage discount cannot exceed 100")

    changed = apply_updates(deal, updates)
    await db.commit()
    await db.refresh(deal)

    logger.info(f"Deal {deal_id} updated: {changed}")
    return {"success": True, "deal": serialize_deal(deal)}


@router.delete("/api/admin/promotions/deals/{deal_id}")
async def delete_deal(
    deal_id: int,
    admin: AdminContext = Depends(require_permission(Resource.COUPONS, Action.DELETE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    deal = await _load_deal(db, admin, deal_id)
    deal.deleted_at = utcnow()
    deal.is_enabled = False
    await db.commit()

    logger.info(f"Deal {deal_id} deleted by {admin.admin_user.email}")
    return {"success": True}


@router.patch("/api/admin/promotions/deals/{deal_id}/toggle")
async def toggle_deal(
    deal_id: int,
    body: DealToggle,
    admin: AdminContext = Depends(can_edit_coupons),
    db: AsyncSession = Depends(get_db),
) -> dict:
    deal = await _load_deal(db, admin, deal_id)
    deal.is_enabled = body.is_enabled
    await db.commit()
    await db.refresh(deal)
    return {"success": True, "deal": serialize_deal(deal)}


@router.get("/api/admin/promotions/deals/{deal_id}/stats")
async def deal_stats(
    deal_id: int,
    admin: AdminContext = Depends(can_view_coupons),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await _load_deal(db, admin, deal_id)
    stats = await get_procedure_service().call(db, "get_deal_performance", {"p_deal_id": deal_id})
    if isinstance(stats, list):
        stats = stats[0] if stats else None
    return {"stats": stats}


@router.get("/api/admin/promotions/stats")
async def promotion_stats(
    restaurant_id: Optional[int] = Query(None),
    admin: AdminContext = Depends(can_view_coupons),
    db: AsyncSession = Depends(get_db),
):
    if restaurant_id is not None:
        ensure_restaurant_access(admin, restaurant_id)
        restaurant_ids = [restaurant_id]
    else:
        restaurant_ids = admin.restaurant_ids

    return await get_procedure_service().call(db, "get_promotion_stats", {"p_restaurant_ids": restaurant_ids})


# =============================================================================
# PUBLIC VALIDATION
# =============================================================================

def _minimum_message(minimum: float, subtotal: float) -> str:
    return f"Add ${minimum - subtotal:.2f} more to use this code (min. ${minimum:g})"


def _coupon_discount(coupon: PromotionalCoupon) -> tuple[str, float, str]:
    """(normalized type, value, description) for a coupon."""
    amount = coupon.discount_amount or 0
    if coupon.discount_type in ("percent", "percentage"):
        return "percent", amount, f"{amount:g}% off your order"
    if coupon.discount_type in ("currency", "fixed"):
        return "currency", amount, f"${amount:g} off your order"
    if coupon.discount_type == "item":
        return "item", 0, coupon.name or "Free item"
    if coupon.discount_type == "delivery":
        return "delivery", 0, "Free delivery"
    return coupon.discount_type, amount, coupon.name or "Discount applied"


async def _has_paid_orders(db: AsyncSession, user_id: int, restaurant_id: int) -> bool:
    count = await db.scalar(select(func.count(Order.id)).where(
        Order.user_id == user_id,
        Order.restaurant_id == restaurant_id,
        Order.payment_status == PaymentStatus.PAID.value,
    ))
    return bool(count)


async def _validate_coupon(
    db: AsyncSession, coupon: PromotionalCoupon, body: PromoValidateRequest, restaurant_id: int,
) -> dict:
    now = utcnow()

    if coupon.valid_from_at and as_utc(coupon.valid_from_at) > now:
        raise BadRequestError("This promo code is not yet active")
    if coupon.valid_until_at and as_utc(coupon.valid_until_at) < now:
        raise BadRequestError("This promo code has expired")
    if not coupon.is_active:
        raise BadRequestError("This promo code is no longer active")
    if coupon.max_redemptions is not None and (coupon.redemption_count or 0) >= coupon.max_redemptions:
        raise BadRequestError("This promo code has reached its usage limit")
    if coupon.minimum_purchase and body.subtotal < coupon.minimum_purchase:
        raise BadRequestError(_minimum_message(coupon.minimum_purchase, body.subtotal))

    available = set(coupon.availability_types or [])
    if available and not available & AVAILABILITY_ALIASES.get(body.order_type or "", set()):
        raise BadRequestError(f"This code is not valid for {body.order_type} orders")

    if coupon.first_order_only and body.user_id and await _has_paid_orders(db, body.user_id, restaurant_id):
        raise BadRequestError("This code is only valid for first-time customers")

    discount_type, value, description = _coupon_discount(coupon)
    return {
        "valid": True,
        "code": coupon.code,
        "discount_type": discount_type,
        "discount_value": value,
        "description": description,
        "promo_id": coupon.id,
        "promo_type": "coupon",
        "name": coupon.name,
    }


def _validate_deal(deal: PromotionalDeal, body: PromoValidateRequest) -> dict:
    today = date.today()

    if deal.start_date and deal.start_date > today:
        raise BadRequestError("This promo code is not yet active")
    if deal.end_date and deal.end_date < today:
        raise BadRequestError("This promo code has expired")
    if deal.minimum_purchase and body.subtotal < deal.minimum_purchase:
        raise BadRequestError(_minimum_message(deal.minimum_purchase, body.subtotal))

    if deal.discount_type == "percentage":
        discount_type, description = "percent", f"{deal.discount_value:g}% off your order"
    else:
        discount_type, description = "currency", f"${deal.discount_value:g} off your order"

    return {
        "valid": True,
        "code": deal.promo_code,
        "discount_type": discount_type,
        "discount_value": deal.discount_value,
        "description": description,
        "promo_id": deal.id,
        "promo_type": "deal",
        "name": deal.name,
    }


@router.post("/api/promotions/validate")
async def validate_promo_code(body: PromoValidateRequest, db: AsyncSession = Depends(get_db)) -> dict:
    """
    Check a storefront promo code.

    Coupons are tried first; a deal whose promo_code matches is the
    fallback. Every rejection is a 400 with a customer-facing message.
    """
    restaurant_id = extract_id_from_slug(body.restaurant_slug)
    if restaurant_id is None:
        raise BadRequestError("Invalid restaurant identifier")

    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None or restaurant.deleted_at is not None:
        raise NotFoundError("Restaurant not found")

    code = body.code.strip().upper()
    logger.info(f"Validating promo code {code} for restaurant {restaurant_id}")

    coupon = (await db.execute(select(PromotionalCoupon).where(
        PromotionalCoupon.code == code,
        PromotionalCoupon.restaurant_id == restaurant_id,
        PromotionalCoupon.deleted_at.is_(None),
    ))).scalars().first()
    if coupon is not None:
        return await _validate_coupon(db, coupon, body, restaurant_id)

    deal = (await db.execute(select(PromotionalDeal).where(
        PromotionalDeal.promo_code == code,
        PromotionalDeal.restaurant_id == restaurant_id,
        PromotionalDeal.is_enabled.is_(True),
        PromotionalDeal.deleted_at.is_(None),
    ))).scalars().first()
    if deal is not None:
        return _validate_deal(deal, body)

    raise BadRequestError("Invalid promo code")
