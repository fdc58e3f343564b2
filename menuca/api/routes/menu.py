"""
Menu builder: courses, dishes, dish prices, modifier groups and modifiers.

Reorder endpoints issue one update per item without a surrounding
transaction; earlier positions persist when a later id is rejected.
Price calculation and customization checks are public.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, ensure_restaurant_access, require_permission
from menuca.core.errors import BadRequestError, NotFoundError
from menuca.core.rbac import Action, Resource
from menuca.database import get_db
from menuca.models import Course, Dish, DishPrice, Modifier, ModifierGroup, Restaurant
from menuca.schemas.menu import (
    CalculatePriceRequest,
    CourseCreate,
    CourseReorder,
    CourseUpdate,
    DishCreate,
    DishPricesReplace,
    DishReorder,
    DishUpdate,
    IdsReorder,
    InventoryUpdate,
    ModifierCreate,
    ModifierGroupCreate,
    ModifierGroupUpdate,
    ModifierUpdate,
    ValidateCustomizationRequest,
)
from menuca.services.modifier_validator import (
    ModifierGroupRule,
    ModifierOption,
    SelectedModifier,
    calculate_dish_price,
    validate_modifier_selections,
)
from menuca.services.procedures import get_procedure_service
from menuca.utils import apply_updates, model_to_dict, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/menu", tags=["Menu"])

can_edit_menu = require_permission(Resource.MENU, Action.EDIT)


# =============================================================================
# SERIALIZATION
# =============================================================================

def serialize_dish(dish: Dish) -> dict:
    data = model_to_dict(dish, exclude=("deleted_at",))
    data["prices"] = [model_to_dict(p) for p in dish.prices if p.is_active]
    return data


def serialize_group(group: ModifierGroup) -> dict:
    data = model_to_dict(group)
    data["modifiers"] = [model_to_dict(m) for m in group.modifiers]
    return data


# =============================================================================
# LOADERS
# =============================================================================

async def _load_course(db: AsyncSession, admin: AdminContext, course_id: int) -> Course:
    course = await db.get(Course, course_id)
    if course is None or course.deleted_at is not None:
        raise NotFoundError("Course not found")
    ensure_restaurant_access(admin, course.restaurant_id)
    return course


async def _load_dish(db: AsyncSession, admin: Optional[AdminContext], dish_id: int) -> Dish:
    dish = await db.get(Dish, dish_id)
    if dish is None or dish.deleted_at is not None:
        raise NotFoundError("Dish not found")
    if admin is not None:
        ensure_restaurant_access(admin, dish.restaurant_id)
    return dish


async def _load_group(db: AsyncSession, admin: AdminContext, group_id: int) -> ModifierGroup:
    group = await db.get(ModifierGroup, group_id)
    if group is None:
        raise NotFoundError("Modifier group not found")
    await _load_dish(db, admin, group.dish_id)
    return group


async def _load_modifier(db: AsyncSession, admin: AdminContext, modifier_id: int) -> Modifier:
    modifier = await db.get(Modifier, modifier_id)
    if modifier is None:
        raise NotFoundError("Modifier not found")
    await _load_group(db, admin, modifier.modifier_group_id)
    return modifier


async def _next_position(db: AsyncSession, column, *conditions) -> int:
    current = await db.scalar(select(func.max(column)).where(*conditions))
    return 0 if current is None else current + 1


async def _dish_groups(db: AsyncSession, dish_id: int) -> list[ModifierGroup]:
    result = await db.execute(
        select(ModifierGroup)
        .where(ModifierGroup.dish_id == dish_id)
        .order_by(ModifierGroup.display_order, ModifierGroup.id)
    )
    return list(result.scalars().all())


# =============================================================================
# COURSES
# =============================================================================

@router.get("/courses")
async def list_courses(
    restaurant_id: int = Query(..., gt=0),
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    ensure_restaurant_access(admin, restaurant_id)
    result = await db.execute(
        select(Course)
        .where(Course.restaurant_id == restaurant_id, Course.deleted_at.is_(None))
        .order_by(Course.display_order, Course.id)
    )
    return {"courses": [model_to_dict(c, exclude=("deleted_at",)) for c in result.scalars().all()]}


@router.post("/courses", status_code=201)
async def create_course(
    body: CourseCreate,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    ensure_restaurant_access(admin, body.restaurant_id)
    data = body.model_dump()
    if data["display_order"] is None:
        data["display_order"] = await _next_position(
            db, Course.display_order,
            Course.restaurant_id == body.restaurant_id, Course.deleted_at.is_(None),
        )

    course = Course(**data)
    db.add(course)
    await db.commit()
    await db.refresh(course)

    logger.info(f"Course {course.id} '{course.name}' created for restaurant {course.restaurant_id}")
    return model_to_dict(course, exclude=("deleted_at",))


@router.post("/courses/reorder")
async def reorder_courses(
    body: CourseReorder,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    ensure_restaurant_access(admin, body.restaurant_id)
    for position, course_id in enumerate(body.course_ids):
        course = await db.get(Course, course_id)
        if course is None or course.restaurant_id != body.restaurant_id:
            raise NotFoundError(f"Course {course_id} not found")
        course.display_order = position
        await db.commit()
    return {"success": True}


@router.patch("/courses/{course_id}")
async def update_course(
    course_id: int,
    body: CourseUpdate,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    course = await _load_course(db, admin, course_id)
    apply_updates(course, body.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(course)
    return model_to_dict(course, exclude=("deleted_at",))


@router.delete("/courses/{course_id}")
async def delete_course(
    course_id: int,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    course = await _load_course(db, admin, course_id)
    course.deleted_at = utcnow()
    await db.commit()

    logger.info(f"Course {course_id} deleted by {admin.admin_user.email}")
    return {"success": True}


# =============================================================================
# DISHES
# =============================================================================

@router.get("/dishes")
async def list_dishes(
    restaurant_id: int = Query(..., gt=0),
    course_id: Optional[int] = Query(None),
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    ensure_restaurant_access(admin, restaurant_id)
    query = (
        select(Dish)
        .where(Dish.restaurant_id == restaurant_id, Dish.deleted_at.is_(None))
        .order_by(Dish.display_order, Dish.id)
    )
    if course_id is not None:
        query = query.where(Dish.course_id == course_id)

    dishes = (await db.execute(query)).scalars().all()
    return {"dishes": [serialize_dish(d) for d in dishes]}


@router.post("/dishes", status_code=201)
async def create_dish(
    body: DishCreate,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    ensure_restaurant_access(admin, body.restaurant_id)
    if body.course_id is not None:
        course = await _load_course(db, admin, body.course_id)
        if course.restaurant_id != body.restaurant_id:
            raise BadRequestError("Course belongs to a different restaurant")

    data = body.model_dump(exclude={"prices"})
    if data["display_order"] is None:
        data["display_order"] = await _next_position(
            db, Dish.display_order,
            Dish.restaurant_id == body.restaurant_id,
            Dish.course_id == body.course_id,
            Dish.deleted_at.is_(None),
        )

    dish = Dish(**data)
    dish.prices = [DishPrice(**p.model_dump()) for p in body.prices]
    db.add(dish)
    await db.commit()
    await db.refresh(dish)

    logger.info(f"Dish {dish.id} '{dish.name}' created with {len(body.prices)} prices")
    return serialize_dish(dish)


@router.post("/dishes/reorder")
async def reorder_dishes(
    body: DishReorder,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await _load_course(db, admin, body.course_id)
    for position, dish_id in enumerate(body.dish_ids):
        dish = await db.get(Dish, dish_id)
        if dish is None or dish.course_id != body.course_id:
            raise NotFoundError(f"Dish {dish_id} not found")
        dish.display_order = position
        await db.commit()
    return {"success": True}


@router.get("/dishes/{dish_id}")
async def get_dish(
    dish_id: int,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    dish = await _load_dish(db, admin, dish_id)
    data = serialize_dish(dish)
    data["modifier_groups"] = [serialize_group(g) for g in await _dish_groups(db, dish.id)]
    return data


@router.patch("/dishes/{dish_id}")
async def update_dish(
    dish_id: int,
    body: DishUpdate,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    dish = await _load_dish(db, admin, dish_id)
    updates = body.model_dump(exclude_unset=True)
    if updates.get("course_id") is not None:
        course = await _load_course(db, admin, updates["course_id"])
        if course.restaurant_id != dish.restaurant_id:
            raise BadRequestError("Course belongs to a different restaurant")

    changed = apply_updates(dish, updates)
    await db.commit()
    await db.refresh(dish)

    logger.info(f"Dish {dish_id} updated: {changed}")
    return serialize_dish(dish)


@router.delete("/dishes/{dish_id}")
async def delete_dish(
    dish_id: int,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    dish = await _load_dish(db, admin, dish_id)
    dish.deleted_at = utcnow()
    dish.is_active = False
    await db.commit()

    logger.info(f"Dish {dish_id} deleted by {admin.admin_user.email}")
    return {"success": True}


@router.patch("/dishes/{dish_id}/inventory")
async def update_inventory(
    dish_id: int,
    body: InventoryUpdate,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    dish = await _load_dish(db, admin, dish_id)
    dish.is_available = body.is_available
    dish.unavailable_until = None if body.is_available else body.unavailable_until
    await db.commit()
    await db.refresh(dish)

    return {
        "dish_id": dish.id,
        "is_available": dish.is_available,
        "unavailable_until": dish.unavailable_until,
    }


@router.put("/dishes/{dish_id}/prices")
async def replace_prices(
    dish_id: int,
    body: DishPricesReplace,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    dish = await _load_dish(db, admin, dish_id)
    # old rows must be gone before the (dish_id, size_variant) pairs are reused
    dish.prices = []
    await db.flush()
    dish.prices = [DishPrice(**p.model_dump()) for p in body.prices]
    await db.commit()
    await db.refresh(dish)

    logger.info(f"Dish {dish_id}: {len(body.prices)} prices set")
    return {"dish_id": dish.id, "prices": [model_to_dict(p) for p in dish.prices]}


# =============================================================================
# MODIFIER GROUPS
# =============================================================================

@router.get("/dishes/{dish_id}/modifier-groups")
async def list_modifier_groups(
    dish_id: int,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await _load_dish(db, admin, dish_id)
    return {"modifier_groups": [serialize_group(g) for g in await _dish_groups(db, dish_id)]}


@router.post("/dishes/{dish_id}/modifier-groups", status_code=201)
async def create_modifier_group(
    dish_id: int,
    body: ModifierGroupCreate,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await _load_dish(db, admin, dish_id)
    data = body.model_dump()
    if data["display_order"] is None:
        data["display_order"] = await _next_position(
            db, ModifierGroup.display_order, ModifierGroup.dish_id == dish_id,
        )

    group = ModifierGroup(dish_id=dish_id, **data)
    db.add(group)
    await db.commit()
    await db.refresh(group)
    return serialize_group(group)


@router.post("/dishes/{dish_id}/modifier-groups/reorder")
async def reorder_modifier_groups(
    dish_id: int,
    body: IdsReorder,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await _load_dish(db, admin, dish_id)
    for position, group_id in enumerate(body.ids):
        group = await db.get(ModifierGroup, group_id)
        if group is None or group.dish_id != dish_id:
            raise NotFoundError(f"Modifier group {group_id} not found")
        group.display_order = position
        await db.commit()
    return {"success": True}


@router.patch("/modifier-groups/{group_id}")
async def update_modifier_group(
    group_id: int,
    body: ModifierGroupUpdate,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    group = await _load_group(db, admin, group_id)
    updates = body.model_dump(exclude_unset=True)

    minimum = updates.get("min_selections", group.min_selections)
    maximum = updates.get("max_selections", group.max_selections)
    if maximum is not None and minimum is not None and maximum < minimum:
        raise BadRequestError("max_selections must be at least min_selections")

    apply_updates(group, updates)
    await db.commit()
    await db.refresh(group)
    return serialize_group(group)


@router.delete("/modifier-groups/{group_id}")
async def delete_modifier_group(
    group_id: int,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    group = await _load_group(db, admin, group_id)
    await db.delete(group)
    await db.commit()

    logger.info(f"Modifier group {group_id} deleted by {admin.admin_user.email}")
    return {"success": True}


# =============================================================================
# MODIFIERS
# =============================================================================

@router.get("/modifier-groups/{group_id}/modifiers")
async def list_modifiers(
    group_id: int,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    group = await _load_group(db, admin, group_id)
    return {"modifiers": [model_to_dict(m) for m in group.modifiers]}


@router.post("/modifier-groups/{group_id}/modifiers", status_code=201)
async def create_modifier(
    group_id: int,
    body: ModifierCreate,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await _load_group(db, admin, group_id)
    data = body.model_dump()
    if data["display_order"] is None:
        data["display_order"] = await _next_position(
            db, Modifier.display_order, Modifier.modifier_group_id == group_id,
        )

    modifier = Modifier(modifier_group_id=group_id, **data)
    db.add(modifier)
    await db.commit()
    await db.refresh(modifier)
    return model_to_dict(modifier)


@router.post("/modifier-groups/{group_id}/modifiers/reorder")
async def reorder_modifiers(
    group_id: int,
    body: IdsReorder,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await _load_group(db, admin, group_id)
    for position, modifier_id in enumerate(body.ids):
        modifier = await db.get(Modifier, modifier_id)
        if modifier is None or modifier.modifier_group_id != group_id:
            raise NotFoundError(f"Modifier {modifier_id} not found")
        modifier.display_order = position
        await db.commit()
    return {"success": True}


@router.patch("/modifiers/{modifier_id}")
async def update_modifier(
    modifier_id: int,
    body: ModifierUpdate,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    modifier = await _load_modifier(db, admin, modifier_id)
    apply_updates(modifier, body.model_dump(exclude_unset=True))
    await db.commit()
    await db.refresh(modifier)
    return model_to_dict(modifier)


@router.delete("/modifiers/{modifier_id}")
async def delete_modifier(
    modifier_id: int,
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    modifier = await _load_modifier(db, admin, modifier_id)
    await db.delete(modifier)
    await db.commit()
    return {"success": True}


# =============================================================================
# MENU BUILDER
# =============================================================================

@router.get("/builder")
async def menu_builder(
    restaurant_id: int = Query(..., gt=0),
    admin: AdminContext = Depends(can_edit_menu),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """The whole menu as courses -> dishes -> prices -> modifier groups -> modifiers."""
    ensure_restaurant_access(admin, restaurant_id)
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None or restaurant.deleted_at is not None:
        raise NotFoundError("Restaurant not found")

    courses = (await db.execute(
        select(Course)
        .where(Course.restaurant_id == restaurant_id, Course.deleted_at.is_(None))
        .order_by(Course.display_order, Course.id)
    )).scalars().all()
    dishes = (await db.execute(
        select(Dish)
        .where(Dish.restaurant_id == restaurant_id, Dish.deleted_at.is_(None))
        .order_by(Dish.display_order, Dish.id)
    )).scalars().all()

    dish_ids = [d.id for d in dishes]
    groups_by_dish: dict[int, list[dict]] = {}
    if dish_ids:
        groups = (await db.execute(
            select(ModifierGroup)
            .where(ModifierGroup.dish_id.in_(dish_ids))
            .order_by(ModifierGroup.display_order, ModifierGroup.id)
        )).scalars().all()
        for group in groups:
            groups_by_dish.setdefault(group.dish_id, []).append(serialize_group(group))

    dishes_by_course: dict[Optional[int], list[dict]] = {}
    for dish in dishes:
        data = serialize_dish(dish)
        data["modifier_groups"] = groups_by_dish.get(dish.id, [])
        dishes_by_course.setdefault(dish.course_id, []).append(data)

    return {
        "restaurant_id": restaurant_id,
        "courses": [
            {**model_to_dict(c, exclude=("deleted_at",)), "dishes": dishes_by_course.get(c.id, [])}
            for c in courses
        ],
        "uncategorized_dishes": dishes_by_course.get(None, []),
    }


# =============================================================================
# PUBLIC
# =============================================================================

@router.post("/calculate-price")
async def calculate_price(body: CalculatePriceRequest, db: AsyncSession = Depends(get_db)):
    return await get_procedure_service().call(db, "calculate_dish_price", {
        "p_dish_id": body.dish_id,
        "p_size_code": body.size_code or "default",
        "p_modifiers": [m.model_dump() for m in body.modifiers],
    })


@router.post("/validate-customization")
async def validate_customization(
    body: ValidateCustomizationRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    dish = await _load_dish(db, None, body.dish_id)
    groups = await _dish_groups(db, dish.id)

    rules = [
        ModifierGroupRule(
            id=g.id,
            name=g.name,
            is_required=g.is_required,
            min_selections=g.min_selections,
            max_selections=g.max_selections,
            modifiers=[ModifierOption(m.id, m.name, m.price) for m in g.modifiers if m.is_active],
        )
        for g in groups
    ]
    options = {(rule.id, option.id): option for rule in rules for option in rule.modifiers}

    selected = []
    for choice in body.selected_modifiers:
        option = options.get((choice.group_id, choice.modifier_id))
        if option is None:
            raise BadRequestError(f"Invalid modifier {choice.modifier_id} for dish {dish.id}")
        selected.append(SelectedModifier(choice.group_id, option.id, option.name, option.price))

    result = validate_modifier_selections(rules, selected)

    prices = {p.size_variant: p.price for p in dish.prices if p.is_active}
    size = body.size or "default"
    if size not in prices and body.size is not None:
        raise BadRequestError(f"Invalid size '{size}' for dish {dish.id}")
    base_price = prices.get(size, next(iter(prices.values()), 0.0))

    return {
        **result.to_dict(),
        "dish_id": dish.id,
        "size": size,
        "quantity": body.quantity,
        "total_price": calculate_dish_price(base_price, selected, body.quantity),
    }
