"""
Admin user management.

Restaurant Managers are provisioned end to end (identity account, admin
row, restaurant assignments). Other roles go through the
create_admin_user_request procedure and are activated by a platform
operator.
"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, get_admin_context, require_permission
from menuca.core.errors import BadRequestError, ForbiddenError, NotFoundError, ServiceError
from menuca.core.rbac import RESTAURANT_MANAGER_ROLE_ID, Action, Resource, can_create_role
from menuca.database import get_db
from menuca.models import AdminRole, AdminUser, AdminUserRestaurant, Restaurant
from menuca.schemas.admin import AdminUserCreate, AdminUserUpdate, AssignmentRequest
from menuca.services.identity import get_identity_service
from menuca.services.procedures import get_procedure_service
from menuca.utils import apply_updates, model_to_dict, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin-users", tags=["Admin Users"])

TEMP_PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz23456789!@#$%^&*"
ASSIGNMENT_ACTIONS = ("add", "remove", "replace")


def generate_temp_password(length: int = 16) -> str:
    return "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length))


def serialize_admin(admin_user: AdminUser) -> dict:
    data = model_to_dict(admin_user, exclude=("deleted_at",))
    data["role"] = (
        {"id": admin_user.role.id, "name": admin_user.role.name} if admin_user.role else None
    )
    return data


async def _get_admin_or_404(db: AsyncSession, admin_user_id: int) -> AdminUser:
    admin_user = await db.get(AdminUser, admin_user_id)
    if admin_user is None or admin_user.deleted_at is not None:
        raise NotFoundError("Admin user not found")
    return admin_user


@router.get("/me")
async def get_me(admin: AdminContext = Depends(get_admin_context)) -> dict:
    return {
        "admin_user": serialize_admin(admin.admin_user),
        "role": model_to_dict(admin.role),
        "permissions": admin.permissions,
        "restaurant_ids": admin.restaurant_ids,
        "is_super_admin": admin.is_super_admin,
    }


@router.get("")
async def list_admin_users(
    search: Optional[str] = Query(None),
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.VIEW)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    query = select(AdminUser).where(AdminUser.deleted_at.is_(None)).order_by(AdminUser.created_at.desc())
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            AdminUser.email.ilike(pattern),
            AdminUser.first_name.ilike(pattern),
            AdminUser.last_name.ilike(pattern),
        ))

    result = await db.execute(query)
    admin_users = result.scalars().all()
    return {"admin_users": [serialize_admin(a) for a in admin_users], "total": len(admin_users)}


@router.get("/{admin_user_id}")
async def get_admin_user(
    admin_user_id: int,
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.VIEW)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    admin_user = await _get_admin_or_404(db, admin_user_id)

    rows = await db.execute(
        select(Restaurant.id, Restaurant.name)
        .join(AdminUserRestaurant, AdminUserRestaurant.restaurant_id == Restaurant.id)
        .where(AdminUserRestaurant.admin_user_id == admin_user.id)
        .order_by(Restaurant.name)
    )
    data = serialize_admin(admin_user)
    data["restaurants"] = [{"id": rid, "name": name} for rid, name in rows.all()]
    return data


@router.post("/create", status_code=201)
async def create_admin_user(
    body: AdminUserCreate,
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.CREATE)),
    db: AsyncSession = Depends(get_db),
):
    if body.role_id == RESTAURANT_MANAGER_ROLE_ID and not body.restaurant_ids:
        raise BadRequestError("restaurant_ids are required for Restaurant Manager role")

    if not can_create_role(admin.role.id, body.role_id):
        raise ForbiddenError("You do not have permission to create admins with this role")

    if body.role_id == RESTAURANT_MANAGER_ROLE_ID:
        return await _create_restaurant_manager(db, body)

    # Other roles are created as pending requests by the database
    result = await get_procedure_service().call(db, "create_admin_user_request", {
        "p_email": body.email,
        "p_first_name": body.first_name,
        "p_last_name": body.last_name,
        "p_phone": body.phone,
    })
    rows = result if isinstance(result, list) else [result]
    logger.info(f"Admin user request created for {body.email} by {admin.admin_user.email}")
    return [{**(row or {}), "role_id": body.role_id} for row in rows]


async def _create_restaurant_manager(db: AsyncSession, body: AdminUserCreate) -> list[dict]:
    identity = get_identity_service()
    temp_password = generate_temp_password()

    auth_user = await identity.create_user(
        email=body.email,
        password=temp_password,
        user_metadata={
            "first_name": body.first_name,
            "last_name": body.last_name,
            "phone": body.phone,
        },
    )

    try:
        admin_user = AdminUser(
            email=body.email,
            first_name=body.first_name,
            last_name=body.last_name,
            auth_user_id=auth_user.id,
            role_id=RESTAURANT_MANAGER_ROLE_ID,
            status="active",
        )
        db.add(admin_user)
        await db.flush()

        for restaurant_id in dict.fromkeys(body.restaurant_ids):
            db.add(AdminUserRestaurant(admin_user_id=admin_user.id, restaurant_id=restaurant_id))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Restaurant manager provisioning failed for {body.email}: {e}")
        if not await identity.delete_user(auth_user.id):
            logger.error(f"Could not remove auth user {auth_user.id} after failed provisioning")
        raise ServiceError("Failed to create restaurant owner. Please try again.")

    await db.refresh(admin_user)
    logger.info(f"Restaurant manager {body.email} created with {len(body.restaurant_ids)} restaurants")

    return [{
        "success": True,
        "automated": True,
        "admin_user_id": admin_user.id,
        "email": admin_user.email,
        "status": admin_user.status,
        "role_id": admin_user.role_id,
        "auth_user_id": auth_user.id,
        "temp_password": temp_password,
        "restaurants_assigned": len(set(body.restaurant_ids)),
        "message": (
            "Restaurant Owner created successfully. "
            f"Credentials: Email: {body.email}, Temporary Password: {temp_password}"
        ),
    }]


@router.patch("/{admin_user_id}")
async def update_admin_user(
    admin_user_id: int,
    body: AdminUserUpdate,
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.EDIT)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    admin_user = await _get_admin_or_404(db, admin_user_id)
    updates = body.model_dump(exclude_unset=True)

    if "role_id" in updates:
        if await db.get(AdminRole, updates["role_id"]) is None:
            raise BadRequestError("Role not found")
        if not can_create_role(admin.role.id, updates["role_id"]):
            raise ForbiddenError("You do not have permission to assign this role")

    changed = apply_updates(admin_user, updates)
    await db.commit()
    await db.refresh(admin_user)

    logger.info(f"Admin user {admin_user.id} updated: {changed}")
    return serialize_admin(admin_user)


@router.delete("/{admin_user_id}")
async def delete_admin_user(
    admin_user_id: int,
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.DELETE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if admin_user_id == admin.admin_user.id:
        raise BadRequestError("You cannot delete your own account")

    admin_user = await _get_admin_or_404(db, admin_user_id)
    admin_user.deleted_at = utcnow()
    admin_user.status = "inactive"
    await db.commit()

    logger.info(f"Admin user {admin_user_id} deleted by {admin.admin_user.email}")
    return {"success": True}


@router.post("/assignments")
async def update_assignments(
    body: AssignmentRequest,
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.EDIT)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    if not body.admin_user_id or body.restaurant_ids is None or not body.action:
        raise BadRequestError("admin_user_id, restaurant_ids, and action are required")
    if body.action not in ASSIGNMENT_ACTIONS:
        raise BadRequestError("action must be one of: add, remove, replace")

    await _get_admin_or_404(db, body.admin_user_id)

    existing_rows = await db.execute(
        select(AdminUserRestaurant.restaurant_id)
        .where(AdminUserRestaurant.admin_user_id == body.admin_user_id)
    )
    existing = {row[0] for row in existing_rows.all()}
    requested = set(body.restaurant_ids)

    if body.action == "replace":
        to_remove, to_add = existing - requested, requested - existing
    elif body.action == "add":
        to_remove, to_add = set(), requested - existing
    else:
        to_remove, to_add = existing & requested, set()

    if to_remove:
        await db.execute(delete(AdminUserRestaurant).where(
            AdminUserRestaurant.admin_user_id == body.admin_user_id,
            AdminUserRestaurant.restaurant_id.in_(to_remove),
        ))
    for restaurant_id in sorted(to_add):
        db.add(AdminUserRestaurant(admin_user_id=body.admin_user_id, restaurant_id=restaurant_id))
    await db.commit()

    logger.info(
        f"Assignments for admin {body.admin_user_id} ({body.action}): "
        f"+{sorted(to_add)} -{sorted(to_remove)}"
    )
    return {
        "success": True,
        "action": body.action,
        "added": sorted(to_add),
        "removed": sorted(to_remove),
        "restaurant_ids": sorted((existing - to_remove) | to_add),
    }
