"""
Role-Based Access Control

Admin roles carry a permission matrix of the form
``{resource: {action: bool}}``. A permission is granted only when the
matrix holds a literal True for it.
"""

from enum import Enum
from typing import Any, Iterable, Optional


class Resource(str, Enum):
    RESTAURANTS = "restaurants"
    USERS = "users"
    ORDERS = "orders"
    REPORTS = "reports"
    SETTINGS = "settings"
    MENU = "menu"
    COUPONS = "coupons"
    FRANCHISE = "franchise"
    BLACKLIST = "blacklist"
    ACCOUNTING = "accounting"


class Action(str, Enum):
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    VIEW = "view"
    MANAGE = "manage"


PermissionMatrix = dict[str, dict[str, bool]]


# =============================================================================
# SYSTEM ROLES
# =============================================================================

SUPER_ADMIN_ROLE_ID = 1
MANAGER_ROLE_ID = 2
SUPPORT_ROLE_ID = 3
RESTAURANT_MANAGER_ROLE_ID = 5
STAFF_ROLE_ID = 6

SUPER_ADMIN_ROLE = "Super Admin"
RESTAURANT_MANAGER_ROLE = "Restaurant Manager"
STAFF_ROLE = "Staff"

# creator role id -> role ids it may hand out (None means any)
ROLE_CREATION_RULES: dict[int, Optional[set[int]]] = {
    SUPER_ADMIN_ROLE_ID: None,
    MANAGER_ROLE_ID: {RESTAURANT_MANAGER_ROLE_ID, STAFF_ROLE_ID},
    SUPPORT_ROLE_ID: {RESTAURANT_MANAGER_ROLE_ID, STAFF_ROLE_ID},
}


def _matrix(grants: dict[Resource, Iterable[Action]]) -> PermissionMatrix:
    return {
        resource.value: {action.value: True for action in actions}
        for resource, actions in grants.items()
    }


SUPER_ADMIN_PERMISSIONS: PermissionMatrix = _matrix(
    {resource: list(Action) for resource in Resource}
)

RESTAURANT_MANAGER_PERMISSIONS: PermissionMatrix = _matrix({
    Resource.RESTAURANTS: [Action.EDIT, Action.VIEW],
    Resource.ORDERS: [Action.MANAGE, Action.VIEW],
    Resource.MENU: [Action.EDIT],
    Resource.REPORTS: [Action.VIEW],
    Resource.COUPONS: [Action.CREATE, Action.EDIT, Action.VIEW],
})

STAFF_PERMISSIONS: PermissionMatrix = _matrix({
    Resource.RESTAURANTS: [Action.VIEW],
    Resource.ORDERS: [Action.VIEW],
    Resource.REPORTS: [Action.VIEW],
})


# =============================================================================
# CHECKS
# =============================================================================

def _key(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def has_permission(
    permissions: Optional[PermissionMatrix],
    resource: Resource | str,
    action: Action | str,
) -> bool:
    if not permissions:
        return False
    actions = permissions.get(_key(resource))
    if not isinstance(actions, dict):
        return False
    return actions.get(_key(action)) is True


def has_any_permission(
    permissions: Optional[PermissionMatrix],
    checks: Iterable[tuple[Resource | str, Action | str]],
) -> bool:
    return any(has_permission(permissions, r, a) for r, a in checks)


def has_all_permissions(
    permissions: Optional[PermissionMatrix],
    checks: Iterable[tuple[Resource | str, Action | str]],
) -> bool:
    return all(has_permission(permissions, r, a) for r, a in checks)


def is_system_role(role) -> bool:
    return bool(role is not None and role.is_system_role)


def is_super_admin(role) -> bool:
    return is_system_role(role) and role.name == SUPER_ADMIN_ROLE


def is_restaurant_manager(role) -> bool:
    return role is not None and role.name == RESTAURANT_MANAGER_ROLE


def is_staff(role) -> bool:
    return role is not None and role.name == STAFF_ROLE


def can_create_role(creator_role_id: int, target_role_id: int) -> bool:
    """Whether an admin holding creator_role_id may create target_role_id admins."""
    if creator_role_id not in ROLE_CREATION_RULES:
        return False
    allowed = ROLE_CREATION_RULES[creator_role_id]
    return allowed is None or target_role_id in allowed


def validate_permission_matrix(value: Any) -> bool:
    """A matrix is a dict of dicts whose leaves are all booleans."""
    if not isinstance(value, dict):
        return False
    for actions in value.values():
        if not isinstance(actions, dict):
            return False
        if not all(isinstance(flag, bool) for flag in actions.values()):
            return False
    return True
