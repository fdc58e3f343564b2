"""
Admin Bootstrap Script

Seeds the system roles and creates (or updates) an admin user linked to an
existing identity-provider account.
Run from project root: python scripts/create_admin.py admin@example.com --auth-user-id <uuid>
"""

import argparse
import asyncio
import sys

from sqlalchemy import select

from menuca import database
from menuca.core.rbac import (
    RESTAURANT_MANAGER_PERMISSIONS,
    RESTAURANT_MANAGER_ROLE,
    RESTAURANT_MANAGER_ROLE_ID,
    STAFF_PERMISSIONS,
    STAFF_ROLE,
    STAFF_ROLE_ID,
    SUPER_ADMIN_PERMISSIONS,
    SUPER_ADMIN_ROLE,
    SUPER_ADMIN_ROLE_ID,
)
from menuca.models import AdminRole, AdminUser, AdminUserRestaurant

SYSTEM_ROLES = [
    (SUPER_ADMIN_ROLE_ID, SUPER_ADMIN_ROLE, "Full platform access", SUPER_ADMIN_PERMISSIONS),
    (RESTAURANT_MANAGER_ROLE_ID, RESTAURANT_MANAGER_ROLE, "Manages assigned restaurants", RESTAURANT_MANAGER_PERMISSIONS),
    (STAFF_ROLE_ID, STAFF_ROLE, "Read-only access to assigned restaurants", STAFF_PERMISSIONS),
]


async def seed_roles(db) -> None:
    for role_id, name, description, permissions in SYSTEM_ROLES:
        if await db.get(AdminRole, role_id) is None:
            db.add(AdminRole(
                id=role_id,
                name=name,
                description=description,
                permissions=permissions,
                is_system_role=True,
            ))
            print(f"   + role {role_id} {name}")
    await db.commit()


async def create_admin(
    email: str,
    auth_user_id: str,
    role_id: int,
    restaurant_ids: list[int],
    create_tables: bool,
) -> None:
    manager = await database.init_db(create_tables=create_tables)
    try:
        async with manager.session() as db:
            print("=" * 60)
            print("Seeding system roles")
            await seed_roles(db)

            result = await db.execute(select(AdminUser).where(AdminUser.email == email))
            admin = result.scalar_one_or_none()
            if admin is None:
                admin = AdminUser(email=email)
                db.add(admin)
            admin.auth_user_id = auth_user_id
            admin.role_id = role_id
            admin.status = "active"
            admin.deleted_at = None
            await db.flush()

            for restaurant_id in restaurant_ids:
                exists = await db.scalar(select(AdminUserRestaurant.id).where(
                    AdminUserRestaurant.admin_user_id == admin.id,
                    AdminUserRestaurant.restaurant_id == restaurant_id,
                ))
                if exists is None:
                    db.add(AdminUserRestaurant(admin_user_id=admin.id, restaurant_id=restaurant_id))

            await db.commit()
            print(f"Admin #{admin.id} {email} (role {role_id}) ready")
            if restaurant_ids:
                print(f"   Restaurants: {restaurant_ids}")
            print("=" * 60)
    finally:
        await database.close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("email")
    parser.add_argument("--auth-user-id", required=True, help="Identity provider user id")
    parser.add_argument("--role-id", type=int, default=SUPER_ADMIN_ROLE_ID)
    parser.add_argument("--restaurant", type=int, action="append", default=[], help="Assign a restaurant (repeatable)")
    parser.add_argument("--create-tables", action="store_true", help="Create tables first (local databases only)")
    args = parser.parse_args()

    if args.role_id != SUPER_ADMIN_ROLE_ID and not args.restaurant:
        print("Non-Super Admin roles need at least one --restaurant")
        sys.exit(1)

    asyncio.run(create_admin(args.email, args.auth_user_id, args.role_id, args.restaurant, args.create_tables))
