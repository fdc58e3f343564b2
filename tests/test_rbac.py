"""Permission matrix checks and role helpers."""

from types import SimpleNamespace

from menuca.core.rbac import (
    MANAGER_ROLE_ID,
    RESTAURANT_MANAGER_PERMISSIONS,
    RESTAURANT_MANAGER_ROLE_ID,
    STAFF_PERMISSIONS,
    STAFF_ROLE_ID,
    SUPER_ADMIN_PERMISSIONS,
    SUPER_ADMIN_ROLE_ID,
    Action,
    Resource,
    can_create_role,
    has_all_permissions,
    has_any_permission,
    has_permission,
    is_super_admin,
    validate_permission_matrix,
)


def test_super_admin_has_everything():
    for resource in Resource:
        for action in Action:
            assert has_permission(SUPER_ADMIN_PERMISSIONS, resource, action)


def test_restaurant_manager_matrix():
    assert has_permission(RESTAURANT_MANAGER_PERMISSIONS, Resource.MENU, Action.EDIT)
    assert has_permission(RESTAURANT_MANAGER_PERMISSIONS, "orders", "manage")
    assert not has_permission(RESTAURANT_MANAGER_PERMISSIONS, Resource.RESTAURANTS, Action.DELETE)
    assert not has_permission(RESTAURANT_MANAGER_PERMISSIONS, Resource.USERS, Action.VIEW)


def test_staff_is_read_only():
    assert has_permission(STAFF_PERMISSIONS, Resource.ORDERS, Action.VIEW)
    assert not has_permission(STAFF_PERMISSIONS, Resource.ORDERS, Action.MANAGE)
    assert not has_permission(STAFF_PERMISSIONS, Resource.MENU, Action.EDIT)


def test_only_literal_true_grants():
    matrix = {"orders": {"view": "true", "manage": 1, "edit": True}}
    assert not has_permission(matrix, "orders", "view")
    assert not has_permission(matrix, "orders", "manage")
    assert has_permission(matrix, "orders", "edit")
    assert not has_permission(None, "orders", "edit")
    assert not has_permission({"orders": True}, "orders", "edit")


def test_any_and_all():
    checks = [(Resource.ORDERS, Action.VIEW), (Resource.MENU, Action.EDIT)]
    assert has_any_permission(STAFF_PERMISSIONS, checks)
    assert not has_all_permissions(STAFF_PERMISSIONS, checks)
    assert has_all_permissions(RESTAURANT_MANAGER_PERMISSIONS, checks)


def test_is_super_admin_requires_system_role():
    assert is_super_admin(SimpleNamespace(name="Super Admin", is_system_role=True))
    assert not is_super_admin(SimpleNamespace(name="Super Admin", is_system_role=False))
    assert not is_super_admin(SimpleNamespace(name="Staff", is_system_role=True))
    assert not is_super_admin(None)


def test_role_creation_rules():
    assert can_create_role(SUPER_ADMIN_ROLE_ID, SUPER_ADMIN_ROLE_ID)
    assert can_create_role(MANAGER_ROLE_ID, STAFF_ROLE_ID)
    assert not can_create_role(MANAGER_ROLE_ID, SUPER_ADMIN_ROLE_ID)
    assert not can_create_role(RESTAURANT_MANAGER_ROLE_ID, STAFF_ROLE_ID)


def test_validate_permission_matrix():
    assert validate_permission_matrix({"orders": {"view": True, "edit": False}})
    assert validate_permission_matrix({})
    assert not validate_permission_matrix([])
    assert not validate_permission_matrix({"orders": ["view"]})
    assert not validate_permission_matrix({"orders": {"view": "yes"}})
