"""
Restaurant coupons. Codes are stored uppercase and are unique per restaurant.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, ensure_restaurant_access, require_permission
from menuca.core.errors import BadRequestError, ConflictError, NotFoundError
from menuca.core.rbac import Action, Resource
from menuca.database import get_db
from menuca.models import PromotionalCoupon
from menuca.schemas.promotions import CouponCreate, CouponUpdate
from menuca.utils import apply_updates, as_utc, model_to_dict, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/coupons", tags=["Coupons"])


async def _load_coupon(db: AsyncSession, admin: AdminContext, coupon_id: int) -> PromotionalCoupon:
    coupon = await db.get(PromotionalCoupon, coupon_id)
    if coupon is None or coupon.deleted_at is not None:
        raise NotFoundError("Coupon not found")
    ensure_restaurant_access(admin, coupon.restaurant_id)
    return coupon


@router.get("")
async def list_coupons(
    restaurant_id: Optional[int] = Query(None),
    admin: AdminContext = Depends(require_permission(Resource.COUPONS, Action.VIEW)),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    query = (
        select(PromotionalCoupon)
        .where(PromotionalCoupon.deleted_at.is_(None))
        .order_by(PromotionalCoupon.created_at.desc(), PromotionalCoupon.id.desc())
    )
    if restaurant_id is not None:
        ensure_restaurant_access(admin, restaurant_id)
        query = query.where(PromotionalCoupon.restaurant_id == restaurant_id)
    elif admin.restaurant_ids is not None:
        query = query.where(PromotionalCoupon.restaurant_id.in_(admin.restaurant_ids))

    coupons = (await db.execute(query)).scalars().all()
    return [model_to_dict(c, exclude=("deleted_at",)) for c in coupons]


@router.post("", status_code=201)
async def create_coupon(
    body: CouponCreate,
    admin: AdminContext = Depends(require_permission(Resource.COUPONS, Action.CREATE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    ensure_restaurant_access(admin, body.restaurant_id)

    duplicate = await db.scalar(select(PromotionalCoupon.id).where(
        PromotionalCoupon.restaurant_id == body.restaurant_id,
        PromotionalCoupon.code == body.code,
        PromotionalCoupon.deleted_at.is_(None),
    ))
    if duplicate is not None:
        raise ConflictError(f"Coupon code {body.code} already exists for this restaurant")

    coupon = PromotionalCoupon(**body.model_dump())
    db.add(coupon)
    await db.commit()
    await db.refresh(coupon)

    logger.info(f"Coupon {coupon.code} created for restaurant {coupon.restaurant_id}")
    return model_to_dict(coupon, exclude=("deleted_at",))


@router.patch("/{coupon_id}")
async def update_coupon(
    coupon_id: int,
    body: CouponUpdate,
    admin: AdminContext = Depends(require_permission(Resource.COUPONS, Action.EDIT)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    coupon = await _load_coupon(db, admin, coupon_id)
    updates = body.model_dump(exclude_unset=True)

    discount_type = updates.get("discount_type", coupon.discount_type)
    amount = updates.get("discount_amount", coupon.discount_amount)
    if discount_type == "percentage" and amount is not None and amount > 100:
        raise BadRequestError("Percentage discount cannot exceed 100")

    valid_from = as_utc(updates.get("valid_from_at", coupon.valid_from_at))
    valid_until = as_utc(updates.get("valid_until_at", coupon.valid_until_at))
    if valid_from and valid_until and valid_until < valid_from:
        raise BadRequestError("valid_until_at must be after valid_from_at")

    changed = apply_updates(coupon, updates)
    await db.commit()
    await db.refresh(coupon)

    logger.info(f"Coupon {coupon_id} updated: {changed}")
    return model_to_dict(coupon, exclude=("deleted_at",))


@router.delete("/{coupon_id}")
async def delete_coupon(
    coupon_id: int,
    admin: AdminContext = Depends(require_permission(Resource.COUPONS, Action.DELETE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    coupon = await _load_coupon(db, admin, coupon_id)
    coupon.deleted_at = utcnow()
    coupon.is_active = False
    await db.commit()

    logger.info(f"Coupon {coupon_id} deleted by {admin.admin_user.email}")
    return {"success": True}
