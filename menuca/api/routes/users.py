"""
Customer accounts as seen from the admin dashboard.

Any active admin may look customers up; customer data is not tied to a
restaurant, so there is no restaurant scoping here.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, get_admin_context
from menuca.core.errors import BadRequestError
from menuca.database import get_db
from menuca.models import User, UserFavoriteRestaurant
from menuca.utils import create_restaurant_slug, model_to_dict

router = APIRouter(prefix="/api/users", tags=["Customers"])


@router.get("")
async def list_customers(
    search: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    conditions = []
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(
            User.email.ilike(pattern), User.first_name.ilike(pattern), User.last_name.ilike(pattern),
        ))

    count = await db.scalar(select(func.count(User.id)).where(*conditions))
    result = await db.execute(
        select(User)
        .where(*conditions)
        .order_by(User.created_at.desc(), User.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return {
        "data": [model_to_dict(u, exclude=("auth_user_id", "stripe_customer_id")) for u in result.scalars().all()],
        "count": count or 0,
        "limit": limit,
        "offset": offset,
    }


@router.get("/favorites")
async def list_favorites(
    user_id: Optional[int] = Query(None),
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    if user_id is None:
        raise BadRequestError("user_id is required")

    result = await db.execute(
        select(UserFavoriteRestaurant)
        .where(UserFavoriteRestaurant.user_id == user_id, UserFavoriteRestaurant.deleted_at.is_(None))
        .order_by(UserFavoriteRestaurant.created_at.desc(), UserFavoriteRestaurant.id.desc())
    )
    favorites = []
    for favorite in result.scalars().all():
        restaurant = favorite.restaurant
        favorites.append({
            "id": favorite.id,
            "user_id": favorite.user_id,
            "restaurant_id": favorite.restaurant_id,
            "created_at": favorite.created_at,
            "restaurant": {
                "id": restaurant.id,
                "name": restaurant.name,
                "slug": create_restaurant_slug(restaurant.id, restaurant.name),
                "status": restaurant.status,
                "logo_url": restaurant.logo_url,
            },
        })
    return favorites
