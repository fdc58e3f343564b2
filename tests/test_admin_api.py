"""Admin users, restaurant assignments and roles."""

from sqlalchemy import select

from menuca.core.rbac import RESTAURANT_MANAGER_ROLE_ID, STAFF_ROLE_ID, SUPPORT_ROLE_ID
from menuca.models import AdminRole, AdminUserRestaurant, User, UserFavoriteRestaurant
from menuca.utils import create_restaurant_slug, utcnow

from conftest import make_admin


# =============================================================================
# AUTHENTICATION
# =============================================================================

async def test_missing_token_is_unauthorized(client):
    response = await client.get("/api/admin-users/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized - authentication required"}


async def test_unknown_token_is_unauthorized(client):
    response = await client.get("/api/admin-users/me", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


async def test_signed_in_non_admin_is_forbidden(client, identity, roles):
    identity.add_token("stranger", "stranger@menu.ca")
    response = await client.get("/api/admin-users/me", headers={"Authorization": "Bearer stranger"})
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden - admin access required"


async def test_me_for_super_admin(client, super_headers):
    response = await client.get("/api/admin-users/me", headers=super_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["is_super_admin"] is True
    assert data["restaurant_ids"] is None
    assert data["admin_user"]["email"] == "root@menu.ca"
    assert data["permissions"]["restaurants"]["delete"] is True


async def test_me_for_restaurant_manager(client, manager_headers, restaurant):
    data = (await client.get("/api/admin-users/me", headers=manager_headers)).json()
    assert data["is_super_admin"] is False
    assert data["restaurant_ids"] == [restaurant.id]


async def test_missing_permission_is_named(client, staff_headers):
    response = await client.get("/api/admin-users", headers=staff_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden - requires users:view permission"


# =============================================================================
# ADMIN USERS
# =============================================================================

async def test_list_and_search_admins(client, super_headers, manager_headers):
    data = (await client.get("/api/admin-users", headers=super_headers)).json()
    assert data["total"] == 2

    data = (await client.get("/api/admin-users", params={"search": "manag"}, headers=super_headers)).json()
    assert [a["email"] for a in data["admin_users"]] == ["manager@menu.ca"]
    assert data["admin_users"][0]["role"]["name"] == "Restaurant Manager"


async def test_get_admin_lists_restaurants(client, db, identity, super_headers, restaurant):
    manager, _ = await make_admin(db, identity, "owner@menu.ca", RESTAURANT_MANAGER_ROLE_ID, [restaurant.id])
    data = (await client.get(f"/api/admin-users/{manager.id}", headers=super_headers)).json()
    assert data["restaurants"] == [{"id": restaurant.id, "name": "Mario's Pizza"}]

    response = await client.get("/api/admin-users/9999", headers=super_headers)
    assert response.status_code == 404


async def test_create_restaurant_manager(client, db, identity, super_headers, restaurant):
    response = await client.post("/api/admin-users/create", headers=super_headers, json={
        "email": "newowner@menu.ca",
        "first_name": "New",
        "last_name": "Owner",
        "role_id": RESTAURANT_MANAGER_ROLE_ID,
        "restaurant_ids": [restaurant.id, restaurant.id],
    })
    assert response.status_code == 201
    [created] = response.json()
    assert created["automated"] is True
    assert created["restaurants_assigned"] == 1
    assert len(created["temp_password"]) == 16
    assert any(u.email == "newowner@menu.ca" for u in identity.users.values())

    rows = await db.execute(
        select(AdminUserRestaurant.restaurant_id).where(AdminUserRestaurant.admin_user_id == created["admin_user_id"])
    )
    assert [r[0] for r in rows.all()] == [restaurant.id]


async def test_restaurant_manager_needs_restaurants(client, super_headers):
    response = await client.post("/api/admin-users/create", headers=super_headers, json={
        "email": "x@menu.ca", "first_name": "X", "last_name": "Y", "role_id": RESTAURANT_MANAGER_ROLE_ID,
    })
    assert response.status_code == 400
    assert response.json()["error"] == "restaurant_ids are required for Restaurant Manager role"


async def test_other_roles_go_through_request_procedure(client, super_headers, procedures):
    procedures.set_response("create_admin_user_request", [{"admin_user_id": 77, "status": "pending"}])
    response = await client.post("/api/admin-users/create", headers=super_headers, json={
        "email": "support@menu.ca", "first_name": "Sue", "last_name": "Port", "role_id": SUPPORT_ROLE_ID,
    })
    assert response.status_code == 201
    assert response.json() == [{"admin_user_id": 77, "status": "pending", "role_id": SUPPORT_ROLE_ID}]
    name, params = procedures.calls[-1]
    assert name == "create_admin_user_request"
    assert params["p_email"] == "support@menu.ca"


async def test_create_validation_error_shape(client, super_headers):
    response = await client.post("/api/admin-users/create", headers=super_headers, json={"email": "bad"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert {d["field"] for d in body["details"]} >= {"email", "first_name", "role_id"}


async def test_update_admin_rejects_unknown_fields(client, db, identity, super_headers):
    staff, _ = await make_admin(db, identity, "clerk@menu.ca", STAFF_ROLE_ID)
    response = await client.patch(f"/api/admin-users/{staff.id}", headers=super_headers, json={"email": "x@menu.ca"})
    assert response.status_code == 400

    response = await client.patch(
        f"/api/admin-users/{staff.id}", headers=super_headers, json={"first_name": "Clara", "status": "suspended"},
    )
    assert response.status_code == 200
    assert response.json()["first_name"] == "Clara"
    assert response.json()["status"] == "suspended"


async def test_cannot_delete_yourself(client, super_admin):
    admin, headers = super_admin
    response = await client.delete(f"/api/admin-users/{admin.id}", headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "You cannot delete your own account"


async def test_deleted_admin_loses_access(client, db, identity, super_headers):
    staff, staff_headers = await make_admin(db, identity, "gone@menu.ca", STAFF_ROLE_ID)
    assert (await client.delete(f"/api/admin-users/{staff.id}", headers=super_headers)).json() == {"success": True}

    assert (await client.get("/api/admin-users/me", headers=staff_headers)).status_code == 403
    assert (await client.get(f"/api/admin-users/{staff.id}", headers=super_headers)).status_code == 404


async def test_assignments(client, db, identity, super_headers, restaurant, other_restaurant):
    manager, _ = await make_admin(db, identity, "owner@menu.ca", RESTAURANT_MANAGER_ROLE_ID, [restaurant.id])

    data = (await client.post("/api/admin-users/assignments", headers=super_headers, json={
        "admin_user_id": manager.id, "restaurant_ids": [other_restaurant.id], "action": "add",
    })).json()
    assert data["added"] == [other_restaurant.id]
    assert data["restaurant_ids"] == sorted([restaurant.id, other_restaurant.id])

    data = (await client.post("/api/admin-users/assignments", headers=super_headers, json={
        "admin_user_id": manager.id, "restaurant_ids": [other_restaurant.id], "action": "replace",
    })).json()
    assert data["removed"] == [restaurant.id]
    assert data["restaurant_ids"] == [other_restaurant.id]

    data = (await client.post("/api/admin-users/assignments", headers=super_headers, json={
        "admin_user_id": manager.id, "restaurant_ids": [other_restaurant.id], "action": "remove",
    })).json()
    assert data["restaurant_ids"] == []


async def test_assignments_validate_action(client, super_admin):
    admin, headers = super_admin
    response = await client.post("/api/admin-users/assignments", headers=headers, json={
        "admin_user_id": admin.id, "restaurant_ids": [], "action": "merge",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "action must be one of: add, remove, replace"


# =============================================================================
# ROLES
# =============================================================================

async def test_role_lifecycle(client, super_headers):
    response = await client.post("/api/roles", headers=super_headers, json={
        "name": "Accountant", "permissions": {"accounting": {"view": True}},
    })
    assert response.status_code == 201
    role_id = response.json()["id"]
    assert response.json()["is_system_role"] is False

    data = (await client.get(f"/api/roles/{role_id}", headers=super_headers)).json()
    assert data["user_count"] == 0

    response = await client.patch(f"/api/roles/{role_id}", headers=super_headers, json={"description": "Books"})
    assert response.json()["description"] == "Books"

    assert (await client.delete(f"/api/roles/{role_id}", headers=super_headers)).json() == {"success": True}
    assert (await client.get(f"/api/roles/{role_id}", headers=super_headers)).status_code == 404


async def test_create_role_validation(client, super_headers):
    response = await client.post("/api/roles", headers=super_headers, json={"name": "  "})
    assert response.json()["error"] == "Role name is required"

    response = await client.post("/api/roles", headers=super_headers, json={
        "name": "Broken", "permissions": {"orders": {"view": "yes"}},
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid permissions format"

    response = await client.post("/api/roles", headers=super_headers, json={"name": "staff"})
    assert response.status_code == 409


async def test_system_roles_are_read_only(client, super_headers):
    response = await client.patch(f"/api/roles/{STAFF_ROLE_ID}", headers=super_headers, json={"description": "x"})
    assert response.status_code == 403
    response = await client.delete(f"/api/roles/{STAFF_ROLE_ID}", headers=super_headers)
    assert response.status_code == 403


async def test_list_roles_can_hide_system_roles(client, super_headers):
    await client.post("/api/roles", headers=super_headers, json={"name": "Auditor"})
    data = (await client.get("/api/roles", headers=super_headers)).json()
    assert len(data["roles"]) == 4
    data = (await client.get("/api/roles", params={"include_system": "false"}, headers=super_headers)).json()
    assert [r["name"] for r in data["roles"]] == ["Auditor"]


async def test_role_in_use_cannot_be_deleted(client, db, identity, super_headers):
    role = AdminRole(name="Night Shift", permissions={"orders": {"view": True}}, is_system_role=False)
    db.add(role)
    await db.commit()
    await make_admin(db, identity, "night@menu.ca", role.id)

    response = await client.delete(f"/api/roles/{role.id}", headers=super_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "Role is assigned to 1 admin user(s)"


# =============================================================================
# CUSTOMER ACCOUNTS
# =============================================================================

async def test_list_customers(client, db, customer, manager_headers, customer_headers):
    db.add(User(auth_user_id="auth-ben", email="ben@menu.ca", first_name="Ben", last_name="Okafor"))
    await db.commit()

    data = (await client.get("/api/users", headers=manager_headers)).json()
    assert data["count"] == 2
    assert "auth_user_id" not in data["data"][0]

    data = (await client.get("/api/users", params={"search": "silva"}, headers=manager_headers)).json()
    assert [u["email"] for u in data["data"]] == ["ana@menu.ca"]
    assert (data["count"], data["limit"], data["offset"]) == (1, 50, 0)

    # a customer session is not an admin session
    assert (await client.get("/api/users", headers=customer_headers)).status_code == 403


async def test_customer_favorites(client, db, customer, restaurant, other_restaurant, manager_headers):
    db.add_all([
        UserFavoriteRestaurant(user_id=customer.id, restaurant_id=restaurant.id),
        UserFavoriteRestaurant(user_id=customer.id, restaurant_id=other_restaurant.id, deleted_at=utcnow()),
    ])
    await db.commit()

    response = await client.get("/api/users/favorites", headers=manager_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "user_id is required"

    [favorite] = (await client.get("/api/users/favorites", params={"user_id": customer.id}, headers=manager_headers)).json()
    assert favorite["restaurant_id"] == restaurant.id
    assert favorite["restaurant"] == {
        "id": restaurant.id,
        "name": "Mario's Pizza",
        "slug": create_restaurant_slug(restaurant.id, "Mario's Pizza"),
        "status": restaurant.status,
        "logo_url": None,
    }
