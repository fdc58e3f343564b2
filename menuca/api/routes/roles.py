"""
Admin role management. System roles are read-only.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.deps import AdminContext, require_permission
from menuca.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from menuca.core.rbac import Action, Resource, validate_permission_matrix
from menuca.database import get_db
from menuca.models import AdminRole, AdminUser
from menuca.schemas.admin import RoleCreate, RoleUpdate
from menuca.utils import model_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/roles", tags=["Roles"])


async def _get_role_or_404(db: AsyncSession, role_id: int) -> AdminRole:
    role = await db.get(AdminRole, role_id)
    if role is None:
        raise NotFoundError("Role not found")
    return role


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> bool:
    query = select(AdminRole.id).where(func.lower(AdminRole.name) == name.lower())
    if exclude_id is not None:
        query = query.where(AdminRole.id != exclude_id)
    return (await db.execute(query)).first() is not None


@router.get("")
async def list_roles(
    include_system: bool = Query(True),
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.VIEW)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    query = select(AdminRole).order_by(AdminRole.is_system_role.desc(), AdminRole.name)
    if not include_system:
        query = query.where(AdminRole.is_system_role.is_(False))

    roles = (await db.execute(query)).scalars().all()
    return {"roles": [model_to_dict(r) for r in roles]}


@router.post("", status_code=201)
async def create_role(
    body: RoleCreate,
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.CREATE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    name = (body.name or "").strip()
    if not name:
        raise BadRequestError("Role name is required")

    permissions = body.permissions if body.permissions is not None else {}
    if not validate_permission_matrix(permissions):
        raise BadRequestError("Invalid permissions format")

    if await _name_taken(db, name):
        raise ConflictError("A role with this name already exists")

    role = AdminRole(
        name=name,
        description=body.description,
        permissions=permissions,
        is_system_role=False,
    )
    db.add(role)
    await db.commit()
    await db.refresh(role)

    logger.info(f"Role '{role.name}' created by {admin.admin_user.email}")
    return model_to_dict(role)


@router.get("/{role_id}")
async def get_role(
    role_id: int,
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.VIEW)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    role = await _get_role_or_404(db, role_id)
    user_count = await db.scalar(
        select(func.count(AdminUser.id))
        .where(AdminUser.role_id == role.id, AdminUser.deleted_at.is_(None))
    )
    return {**model_to_dict(role), "user_count": user_count or 0}


@router.patch("/{role_id}")
async def update_role(
    role_id: int,
    body: RoleUpdate,
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.EDIT)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    role = await _get_role_or_404(db, role_id)
    if role.is_system_role:
        raise ForbiddenError("System roles cannot be modified")

    updates = body.model_dump(exclude_unset=True)
    if "permissions" in updates and not validate_permission_matrix(updates["permissions"]):
        raise BadRequestError("Invalid permissions format")
    if "name" in updates:
        if not (updates["name"] or "").strip():
            raise BadRequestError("Role name is required")
        updates["name"] = updates["name"].strip()
        if await _name_taken(db, updates["name"], exclude_id=role.id):
            raise ConflictError("A role with this name already exists")

    for key, value in updates.items():
        setattr(role, key, value)
    await db.commit()
    await db.refresh(role)
    return model_to_dict(role)


@router.delete("/{role_id}")
async def delete_role(
    role_id: int,
    admin: AdminContext = Depends(require_permission(Resource.USERS, Action.DELETE)),
    db: AsyncSession = Depends(get_db),
) -> dict:
    role = await _get_role_or_404(db, role_id)
    if role.is_system_role:
        raise ForbiddenError("System roles cannot be deleted")

    assigned = await db.scalar(
        select(func.count(AdminUser.id))
        .where(AdminUser.role_id == role.id, AdminUser.deleted_at.is_(None))
    )
    if assigned:
        raise ConflictError(f"Role is assigned to {assigned} admin user(s)")

    await db.delete(role)
    await db.commit()

    logger.info(f"Role {role_id} deleted by {admin.admin_user.email}")
    return {"success": True}
