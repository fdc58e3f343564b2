"""
Restaurant management: the restaurant record, its sub-resources
(locations, contacts, schedules, delivery areas, domains, images) and its
onboarding checklist.

Every endpoint is scoped: admins other than Super Admin only reach the
restaurants assigned to them.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, ensure_restaurant_access, require_permission
from menuca.core.errors import BadRequestError, ConflictError, NotFoundError
from menuca.core.rbac import Action, Resource
from menuca.database import Base, get_db
from menuca.models import (
    Restaurant,
    RestaurantContact,
    RestaurantDeliveryArea,
    RestaurantDomain,
    RestaurantImage,
    RestaurantLocation,
    RestaurantSchedule,
)
from menuca.schemas.onboarding import ONBOARDING_STEPS
from menuca.schemas.restaurants import (
    ApplyScheduleTemplate,
    ContactCreate,
    ContactUpdate,
    DeliveryAreaCreate,
    DeliveryAreaUpdate,
    DomainCreate,
    DomainUpdate,
    ImageCreate,
    ImageReorder,
    ImageUpdate,
    LocationCreate,
    LocationUpdate,
    OnboardingStepUpdate,
    RestaurantCreate,
    RestaurantUpdate,
    ScheduleCreate,
    ScheduleUpdate,
    ToggleOnlineOrdering,
)
from menuca.services.functions import invoke_or_raise
from menuca.services.onboarding import (
    add_onboarding_steps,
    load_onboarding_steps,
    mark_onboarding_step,
    summarize_onboarding,
)
from menuca.utils import apply_updates, create_restaurant_slug, model_to_dict, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/restaurants", tags=["Restaurants"])

can_view = require_permission(Resource.RESTAURANTS, Action.VIEW)
can_edit = require_permission(Resource.RESTAURANTS, Action.EDIT)


def serialize_restaurant(restaurant: Restaurant) -> dict:
    data = model_to_dict(restaurant, exclude=("deleted_at",))
    data["slug"] = create_restaurant_slug(restaurant.id, restaurant.name)
    return data


async def get_restaurant_or_404(db: AsyncSession, restaurant_id: int) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None or restaurant.deleted_at is not None:
        raise NotFoundError("Restaurant not found")
    return restaurant


async def load_scoped_restaurant(db: AsyncSession, admin: AdminContext, restaurant_id: int) -> Restaurant:
    ensure_restaurant_access(admin, restaurant_id)
    return await get_restaurant_or_404(db, restaurant_id)


# =============================================================================
# RESTAURANTS
# =============================================================================

@router.get("")
async def list_restaurants(
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    province: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
) -> dict:
    conditions = [Restaurant.deleted_at.is_(None)]
    if admin.restaurant_ids is not None:
        conditions.append(Restaurant.id.in_(admin.restaurant_ids))
    if search:
        conditions.append(Restaurant.name.ilike(f"%{search}%"))
    if status:
        conditions.append(Restaurant.status == status)
    if city:
        conditions.append(Restaurant.city == city)
    if province:
        conditions.append(Restaurant.province == province)

    total = await db.scalar(select(func.count(Restaurant.id)).where(*conditions))
    result = await db.execute(
        select(Restaurant).where(*conditions).order_by(Restaurant.name).limit(limit).offset(offset)
    )
    return {
        "restaurants": [serialize_restaurant(r) for r in result.scalars().all()],
        "total": total or 0,
        "limit": limit,
        "offset": offset,
    }


@router.post("", status_code=201)
async def create_restaurant(
    body: RestaurantCreate,
    admin: AdminContext = Depends(require_permission(Resource.RESTAURANTS, Action.CREATE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    restaurant = Restaurant(**body.model_dump())
    db.add(restaurant)
    await db.flush()

    add_onboarding_steps(db, restaurant.id)
    await db.commit()
    await db.refresh(restaurant)

    logger.info(f"Restaurant {restaurant.id} '{restaurant.name}' created by {admin.admin_user.email}")
    return serialize_restaurant(restaurant)


@router.get("/{restaurant_id}")
async def get_restaurant(
    restaurant_id: int,
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
) -> dict:
    restaurant = await load_scoped_restaurant(db, admin, restaurant_id)
    return serialize_restaurant(restaurant)


@router.patch("/{restaurant_id}")
async def update_restaurant(
    restaurant_id: int,
    body: RestaurantUpdate,
    admin: AdminContext = Depends(can_edit),
    db: AsyncSession = Depends(get_db),
) -> dict:
    restaurant = await load_scoped_restaurant(db, admin, restaurant_id)
    changed = apply_updates(restaurant, body.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(restaurant)

    logger.info(f"Restaurant {restaurant_id} updated: {changed}")
    return serialize_restaurant(restaurant)


@router.delete("/{restaurant_id}")
async def delete_restaurant(
    restaurant_id: int,
    admin: AdminContext = Depends(require_permission(Resource.RESTAURANTS, Action.DELETE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    restaurant = await load_scoped_restaurant(db, admin, restaurant_id)
    restaurant.deleted_at = utcnow()
    restaurant.status = "inactive"
    await db.commit()

    logger.info(f"Restaurant {restaurant_id} deleted by {admin.admin_user.email}")
    return {"success": True}


@router.post("/{restaurant_id}/toggle-online-ordering")
async def toggle_online_ordering(
    restaurant_id: int,
    body: ToggleOnlineOrdering,
    admin: AdminContext = Depends(can_edit),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if not body.enabled and not body.reason:
        raise BadRequestError("Reason is required when disabling online ordering")

    restaurant = await load_scoped_restaurant(db, admin, restaurant_id)
    restaurant.online_ordering_enabled = body.enabled
    restaurant.online_ordering_disabled_reason = None if body.enabled else body.reason
    restaurant.online_ordering_disabled_at = None if body.enabled else utcnow()
    await db.commit()

    state = "enabled" if body.enabled else "disabled"
    logger.info(f"Restaurant {restaurant_id}: online ordering {state}")
    return {
        "success": True,
        "restaurant_id": restaurant_id,
        "online_ordering_enabled": body.enabled,
        "message": f"Online ordering {state}",
    }


# =============================================================================
# SUB-RESOURCES
# =============================================================================

def register_sub_resource(
    path: str,
    model: type[Base],
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    order_by,
    label: str,
    with_create: bool = True,
):
    """
    List / create / update / delete endpoints for a table keyed by
    restaurant_id. Tables with deleted_at are soft deleted.
    """
    soft_delete = hasattr(model, "deleted_at")
    key = path.replace("-", "_")

    async def load_row(db: AsyncSession, restaurant_id: int, row_id: int):
        row = await db.get(model, row_id)
        if (
            row is None
            or row.restaurant_id != restaurant_id
            or (soft_delete and row.deleted_at is not None)
        ):
            raise NotFoundError(f"{label} not found")
        return row

    @router.get(f"/{{restaurant_id}}/{path}", name=f"list_{key}")
    async def list_rows(
        restaurant_id: int,
        admin: AdminContext = Depends(can_view),
        db: AsyncSession = Depends(get_db),
    ) -> dict:
        await load_scoped_restaurant(db, admin, restaurant_id)
        query = select(model).where(model.restaurant_id == restaurant_id).order_by(*order_by)
        if soft_delete:
            query = query.where(model.deleted_at.is_(None))
        rows = (await db.execute(query)).scalars().all()
        return {key: [model_to_dict(r) for r in rows]}

    if with_create:
        @router.post(f"/{{restaurant_id}}/{path}", status_code=201, name=f"create_{key}")
        async def create_row(
            restaurant_id: int,
            body: create_schema,
            admin: AdminContext = Depends(can_edit),
            db: AsyncSession = Depends(get_db),
        ) -> dict:
            await load_scoped_restaurant(db, admin, restaurant_id)
            row = model(restaurant_id=restaurant_id, **body.model_dump(exclude_none=True))
            db.add(row)
            await db.commit()
            await db.refresh(row)
            logger.info(f"Restaurant {restaurant_id}: {label.lower()} {row.id} created")
            return model_to_dict(row)

    @router.patch(f"/{{restaurant_id}}/{path}/{{row_id}}", name=f"update_{key}")
    async def update_row(
        restaurant_id: int,
        row_id: int,
        body: update_schema,
        admin: AdminContext = Depends(can_edit),
        db: AsyncSession = Depends(get_db),
    ) -> dict:
        await load_scoped_restaurant(db, admin, restaurant_id)
        row = await load_row(db, restaurant_id, row_id)
        apply_updates(row, body.model_dump(exclude_unset=True))
        await db.commit()
        await db.refresh(row)
        return model_to_dict(row)

    @router.delete(f"/{{restaurant_id}}/{path}/{{row_id}}", name=f"delete_{key}")
    async def delete_row(
        restaurant_id: int,
        row_id: int,
        admin: AdminContext = Depends(can_edit),
        db: AsyncSession = Depends(get_db),
    ) -> dict:
        await load_scoped_restaurant(db, admin, restaurant_id)
        row = await load_row(db, restaurant_id, row_id)
        if soft_delete:
            row.deleted_at = utcnow()
        else:
            await db.delete(row)
        await db.commit()
        logger.info(f"Restaurant {restaurant_id}: {label.lower()} {row_id} deleted")
        return {"success": True}


@router.post("/{restaurant_id}/schedules/apply-template")
async def apply_schedule_template(
    restaurant_id: int,
    body: ApplyScheduleTemplate,
    admin: AdminContext = Depends(can_edit),
    db: AsyncSession = Depends(get_db),
):
    await load_scoped_restaurant(db, admin, restaurant_id)
    return await invoke_or_raise(
        "apply-schedule-template",
        {"restaurant_id": restaurant_id, **body.model_dump()},
        admin.access_token,
    )


@router.post("/{restaurant_id}/images/reorder")
async def reorder_images(
    restaurant_id: int,
    body: ImageReorder,
    admin: AdminContext = Depends(can_edit),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await load_scoped_restaurant(db, admin, restaurant_id)

    # One update per image; earlier updates stay if a later one fails
    for position, image_id in enumerate(body.image_ids):
        image = await db.get(RestaurantImage, image_id)
        if image is None or image.restaurant_id != restaurant_id:
            raise NotFoundError(f"Image {image_id} not found")
        image.display_order = position
        await db.commit()

    return {"success": True}


@router.post("/{restaurant_id}/domains", status_code=201)
async def create_domain(
    restaurant_id: int,
    body: DomainCreate,
    admin: AdminContext = Depends(can_edit),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await load_scoped_restaurant(db, admin, restaurant_id)

    existing = await db.scalar(select(RestaurantDomain.id).where(RestaurantDomain.domain == body.domain))
    if existing is not None:
        raise ConflictError("This domain is already registered")

    domain = RestaurantDomain(restaurant_id=restaurant_id, **body.model_dump())
    db.add(domain)
    await db.commit()
    await db.refresh(domain)

    logger.info(f"Restaurant {restaurant_id}: domain {domain.domain} added")
    return model_to_dict(domain)


register_sub_resource(
    "locations", RestaurantLocation, LocationCreate, LocationUpdate,
    order_by=(RestaurantLocation.is_primary.desc(), RestaurantLocation.id), label="Location",
)
register_sub_resource(
    "contacts", RestaurantContact, ContactCreate, ContactUpdate,
    order_by=(RestaurantContact.contact_priority, RestaurantContact.id), label="Contact",
)
register_sub_resource(
    "schedules", RestaurantSchedule, ScheduleCreate, ScheduleUpdate,
    order_by=(RestaurantSchedule.type, RestaurantSchedule.day_start, RestaurantSchedule.time_start),
    label="Schedule",
)
register_sub_resource(
    "delivery-areas", RestaurantDeliveryArea, DeliveryAreaCreate, DeliveryAreaUpdate,
    order_by=(RestaurantDeliveryArea.area_number, RestaurantDeliveryArea.id), label="Delivery area",
)
register_sub_resource(
    "domains", RestaurantDomain, DomainCreate, DomainUpdate,
    order_by=(RestaurantDomain.domain,), label="Domain", with_create=False,
)
register_sub_resource(
    "images", RestaurantImage, ImageCreate, ImageUpdate,
    order_by=(RestaurantImage.display_order, RestaurantImage.id), label="Image",
)


# =============================================================================
# ONBOARDING
# =============================================================================

@router.get("/{restaurant_id}/onboarding")
async def get_onboarding(
    restaurant_id: int,
    admin: AdminContext = Depends(can_view),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await load_scoped_restaurant(db, admin, restaurant_id)
    steps = await load_onboarding_steps(db, restaurant_id)
    return {"restaurant_id": restaurant_id, **summarize_onboarding(steps)}


@router.patch("/{restaurant_id}/onboarding/steps/{step_name}")
async def update_onboarding_step(
    restaurant_id: int,
    step_name: str,
    body: OnboardingStepUpdate,
    admin: AdminContext = Depends(can_edit),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if step_name not in ONBOARDING_STEPS:
        raise BadRequestError(f"Invalid step. Must be one of: {', '.join(ONBOARDING_STEPS)}")

    await load_scoped_restaurant(db, admin, restaurant_id)
    step = await mark_onboarding_step(db, restaurant_id, step_name, body.is_completed)
    if body.notes is not None:
        step.notes = body.notes
    await db.commit()

    steps = await load_onboarding_steps(db, restaurant_id)
    return {"restaurant_id": restaurant_id, **summarize_onboarding(steps)}
