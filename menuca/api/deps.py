"""
Request Dependencies

Authentication for the three kinds of callers:

- Admin dashboard users: bearer access token -> identity user -> active
  admin_users row -> role and permission matrix.
- Kitchen tablets: bearer device session token, rate limited per device.
- Storefront customers: optional bearer access token.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.core.errors import ForbiddenError, RateLimitError, UnauthorizedError
from menuca.core.rbac import Action, PermissionMatrix, Resource, has_permission, is_super_admin
from menuca.database import get_db
from menuca.models import AdminRole, AdminUser, AdminUserRestaurant, User
from menuca.services.device_auth import DeviceContext, validate_session_token
from menuca.services.identity import IdentityUser, get_identity_service
from menuca.services.rate_limit import get_rate_limiter

logger = logging.getLogger(__name__)


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Token from "Bearer <token>"; None unless the header has exactly two parts."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


# =============================================================================
# ADMIN USERS
# =============================================================================

@dataclass
class AdminContext:
    """The authenticated admin behind a request."""
    user: IdentityUser
    admin_user: AdminUser
    role: AdminRole
    permissions: PermissionMatrix
    access_token: str
    # None means unrestricted (Super Admin)
    restaurant_ids: Optional[list[int]] = field(default=None)

    @property
    def is_super_admin(self) -> bool:
        return is_super_admin(self.role)

    def can(self, resource: Resource, action: Action) -> bool:
        return has_permission(self.permissions, resource, action)

    def can_access_restaurant(self, restaurant_id: int) -> bool:
        return self.restaurant_ids is None or restaurant_id in self.restaurant_ids


async def get_current_user(authorization: Optional[str] = Header(None)) -> tuple[IdentityUser, str]:
    token = parse_bearer(authorization)
    if token is None:
        raise UnauthorizedError()

    user = await get_identity_service().get_user(token)
    if user is None or not user.email:
        raise UnauthorizedError()
    return user, token


async def get_admin_context(
    current: tuple[IdentityUser, str] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AdminContext:
    user, token = current

    result = await db.execute(
        select(AdminUser).where(
            AdminUser.email == user.email,
            AdminUser.status == "active",
            AdminUser.deleted_at.is_(None),
        )
    )
    admin_user = result.scalar_one_or_none()
    if admin_user is None:
        logger.info(f"Rejected non-admin user {user.email}")
        raise ForbiddenError()

    role = admin_user.role
    if role is None:
        raise ForbiddenError("Forbidden - no role assigned")

    restaurant_ids = None
    if not is_super_admin(role):
        rows = await db.execute(
            select(AdminUserRestaurant.restaurant_id)
            .where(AdminUserRestaurant.admin_user_id == admin_user.id)
        )
        restaurant_ids = [row[0] for row in rows.all()]

    return AdminContext(
        user=user,
        admin_user=admin_user,
        role=role,
        permissions=role.permissions or {},
        access_token=token,
        restaurant_ids=restaurant_ids,
    )


def require_permission(resource: Resource, action: Action):
    """Dependency factory: the admin context, provided it holds resource:action."""

    async def dependency(admin: AdminContext = Depends(get_admin_context)) -> AdminContext:
        if not admin.can(resource, action):
            raise ForbiddenError(
                f"Forbidden - requires {resource.value}:{action.value} permission"
            )
        return admin

    return dependency


def ensure_restaurant_access(admin: AdminContext, restaurant_id: int) -> None:
    if not admin.can_access_restaurant(restaurant_id):
        raise ForbiddenError("Forbidden - no access to this restaurant")


# =============================================================================
# TABLET DEVICES
# =============================================================================

async def get_device_context(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> DeviceContext:
    token = parse_bearer(authorization)
    if token is None:
        raise UnauthorizedError("Missing or invalid Authorization header")

    context = await validate_session_token(db, token)
    if context is None:
        raise UnauthorizedError("Invalid or expired session token")

    if context.restaurant_id is None:
        raise ForbiddenError("Device not assigned to a restaurant")

    limit = await get_rate_limiter().hit(f"device:{context.device_id}")
    if not limit.allowed:
        logger.warning(f"Device {context.device_id} rate limited")
        raise RateLimitError(limit.retry_after)

    return context


# =============================================================================
# CUSTOMERS
# =============================================================================

async def get_optional_user(authorization: Optional[str] = Header(None)) -> Optional[IdentityUser]:
    """Signed-in storefront user, or None for guests."""
    token = parse_bearer(authorization)
    if token is None:
        return None
    return await get_identity_service().get_user(token)


async def get_customer(
    user: Optional[IdentityUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Customer row for the signed-in user; 401 for guests."""
    if user is None:
        raise UnauthorizedError()

    result = await db.execute(select(User).where(User.auth_user_id == user.id))
    customer = result.scalar_one_or_none()
    if customer is None:
        raise UnauthorizedError("Customer account not found")
    return customer


async def find_customer(db: AsyncSession, user: Optional[IdentityUser]) -> Optional[User]:
    if user is None:
        return None
    result = await db.execute(select(User).where(User.auth_user_id == user.id))
    return result.scalar_one_or_none()
