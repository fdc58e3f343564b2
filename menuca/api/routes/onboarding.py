"""
Restaurant onboarding wizard.

Creating a restaurant, applying schedule templates, copying a franchise
menu and completing onboarding run as edge functions. Locations, contacts,
delivery zones and first menu items are written directly, and each of
these ticks off its checklist step.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, ensure_restaurant_access, get_admin_context, require_permission
from menuca.core.errors import NotFoundError
from menuca.core.rbac import Action, Resource
from menuca.database import get_db
from menuca.models import (
    Course,
    Dish,
    DishPrice,
    Restaurant,
    RestaurantContact,
    RestaurantDeliveryArea,
    RestaurantLocation,
)
from menuca.schemas.onboarding import (
    AddContact,
    AddLocation,
    AddMenuItem,
    CompleteOnboarding,
    CopyFranchiseMenu,
    CreateDeliveryZone,
    CreateRestaurantOnboarding,
    OnboardingScheduleTemplate,
)
from menuca.services.functions import invoke_or_raise
from menuca.services.geo_zones import circle_polygon
from menuca.services.onboarding import mark_onboarding_step
from menuca.services.procedures import get_procedure_service
from menuca.utils import model_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/onboarding", tags=["Onboarding"])

DEFAULT_CATEGORY = "Main Menu"


async def _scoped_restaurant(db: AsyncSession, admin: AdminContext, restaurant_id: int) -> Restaurant:
    ensure_restaurant_access(admin, restaurant_id)
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None or restaurant.deleted_at is not None:
        raise NotFoundError("Restaurant not found")
    return restaurant


# =============================================================================
# EDGE FUNCTION STEPS
# =============================================================================

@router.post("/create-restaurant")
async def create_restaurant(
    body: CreateRestaurantOnboarding,
    admin: AdminContext = Depends(require_permission(Resource.RESTAURANTS, Action.CREATE)),
):
    data = await invoke_or_raise("create-restaurant-onboarding", body.model_dump(), admin.access_token)
    logger.info(f"Onboarding started for '{body.name}' by {admin.admin_user.email}")
    return data


@router.post("/apply-schedule-template")
async def apply_schedule_template(
    body: OnboardingScheduleTemplate,
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
):
    await _scoped_restaurant(db, admin, body.restaurant_id)
    data = await invoke_or_raise("apply-schedule-template", body.model_dump(), admin.access_token)

    await mark_onboarding_step(db, body.restaurant_id, "schedule")
    await db.commit()
    return data


@router.post("/copy-franchise-menu")
async def copy_franchise_menu(
    body: CopyFranchiseMenu,
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
):
    await _scoped_restaurant(db, admin, body.source_restaurant_id)
    await _scoped_restaurant(db, admin, body.target_restaurant_id)
    data = await invoke_or_raise("copy-franchise-menu", body.model_dump(), admin.access_token)

    await mark_onboarding_step(db, body.target_restaurant_id, "menu")
    await db.commit()
    logger.info(f"Menu copied from {body.source_restaurant_id} to {body.target_restaurant_id}")
    return data


@router.post("/complete")
async def complete_onboarding(
    body: CompleteOnboarding,
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
):
    await _scoped_restaurant(db, admin, body.restaurant_id)
    data = await invoke_or_raise("complete-restaurant-onboarding", body.model_dump(), admin.access_token)
    logger.info(f"Onboarding completed for restaurant {body.restaurant_id}")
    return data


# =============================================================================
# DIRECT WRITES
# =============================================================================

@router.post("/add-location")
async def add_location(
    body: AddLocation,
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Create the primary location, or overwrite it when one exists."""
    await _scoped_restaurant(db, admin, body.restaurant_id)

    result = await db.execute(select(RestaurantLocation).where(
        RestaurantLocation.restaurant_id == body.restaurant_id,
        RestaurantLocation.is_primary.is_(True),
    ))
    location = result.scalars().first()
    fields = body.model_dump(exclude={"restaurant_id"})
    if location is None:
        location = RestaurantLocation(restaurant_id=body.restaurant_id, is_primary=True, **fields)
        db.add(location)
    else:
        for key, value in fields.items():
            setattr(location, key, value)

    await mark_onboarding_step(db, body.restaurant_id, "location")
    await db.commit()
    await db.refresh(location)

    return {"success": True, "location": model_to_dict(location), "message": "Location saved successfully"}


@router.post("/add-contact")
async def add_contact(
    body: AddContact,
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await _scoped_restaurant(db, admin, body.restaurant_id)

    contact = RestaurantContact(
        **body.model_dump(),
        contact_priority=1,
        receives_orders=True,
    )
    db.add(contact)
    await mark_onboarding_step(db, body.restaurant_id, "contact")
    await db.commit()
    await db.refresh(contact)

    return {"success": True, "contact": model_to_dict(contact), "message": "Contact added successfully"}


@router.post("/create-delivery-zone")
async def create_delivery_zone(
    body: CreateDeliveryZone,
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await _scoped_restaurant(db, admin, body.restaurant_id)

    geometry = body.geometry
    if geometry is None:
        geometry = circle_polygon(body.center_latitude, body.center_longitude, body.radius_meters or 5000)

    last_number = await db.scalar(
        select(func.max(RestaurantDeliveryArea.area_number))
        .where(RestaurantDeliveryArea.restaurant_id == body.restaurant_id)
    )
    area_number = (last_number or 0) + 1
    name = body.zone_name or f"Zone {area_number}"

    area = RestaurantDeliveryArea(
        restaurant_id=body.restaurant_id,
        area_number=area_number,
        area_name=name,
        display_name=name,
        delivery_fee=body.delivery_fee,
        min_order_value=body.min_order_value,
        estimated_delivery_minutes=body.estimated_delivery_minutes,
        geometry=geometry,
        is_active=True,
    )
    db.add(area)
    await mark_onboarding_step(db, body.restaurant_id, "delivery")
    await db.commit()
    await db.refresh(area)

    logger.info(f"Restaurant {body.restaurant_id}: delivery zone {area.id} created")
    return {"success": True, "zone": model_to_dict(area), "message": "Delivery zone created successfully"}


@router.post("/add-menu-item")
async def add_menu_item(
    body: AddMenuItem,
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Add a dish with one price, under its category course (created on demand)."""
    await _scoped_restaurant(db, admin, body.restaurant_id)
    category = body.category or DEFAULT_CATEGORY

    result = await db.execute(select(Course).where(
        Course.restaurant_id == body.restaurant_id,
        Course.name == category,
        Course.deleted_at.is_(None),
    ))
    course = result.scalars().first()
    if course is None:
        course = Course(restaurant_id=body.restaurant_id, name=category, is_active=True, display_order=0)
        db.add(course)
        await db.flush()

    dish = Dish(
        restaurant_id=body.restaurant_id,
        course_id=course.id,
        name=body.name,
        description=body.description,
        image_url=body.image_url,
        is_active=True,
        display_order=0,
    )
    dish.prices = [DishPrice(size_variant="default", price=body.price, display_order=0)]
    db.add(dish)
    await mark_onboarding_step(db, body.restaurant_id, "menu")
    await db.commit()
    await db.refresh(dish)

    return {
        "success": True,
        "dish": {**model_to_dict(dish, exclude=("deleted_at",)), "price": body.price},
        "message": "Menu item added successfully",
    }


# =============================================================================
# PROGRESS
# =============================================================================

@router.get("/stats")
async def onboarding_stats(
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    return await get_procedure_service().read_view(
        db, "v_onboarding_progress_stats", order_by=[("step_order", False)],
    )


@router.get("/incomplete")
async def incomplete_restaurants(
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    rows = await get_procedure_service().read_view(
        db,
        "v_incomplete_onboarding_restaurants",
        order_by=[("days_in_onboarding", True), ("completion_percentage", True)],
    )
    if admin.restaurant_ids is not None:
        rows = [r for r in rows if r.get("restaurant_id") in admin.restaurant_ids]
    return rows


@router.get("/summary")
async def onboarding_summary(
    admin: AdminContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db),
):
    return await get_procedure_service().call(db, "get_onboarding_summary")
