"""Shared fixtures: a fresh SQLite database per test, mock services and an API client.

The application runs in development mode, so every external service
(identity, payments, geocoding, storage, procedures, edge functions) is
its in-memory mock. Celery is never contacted: Task.delay is replaced by a
recorder and tests inspect the `queued` list.
"""

import os

os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./menuca-test.db"
os.environ["REDIS_URL"] = "redis://127.0.0.1:6399/0"
os.environ["DEVICE_BCRYPT_ROUNDS"] = "4"
os.environ["DEBUG"] = "false"

import pytest
from celery.app.task import Task
from httpx import ASGITransport, AsyncClient

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
from menuca.database import DatabaseSessionManager
from menuca.main import app
from menuca.models import (
    AdminRole,
    AdminUser,
    AdminUserRestaurant,
    Device,
    Dish,
    DishPrice,
    Modifier,
    ModifierGroup,
    Order,
    OrderItem,
    Restaurant,
    RestaurantDeliveryArea,
    User,
)
from menuca.services.device_auth import create_device_session, hash_device_key
from menuca.services.functions import get_function_service, reset_function_service
from menuca.services.geo import get_geo_service, reset_geo_service
from menuca.services.identity import get_identity_service, reset_identity_service
from menuca.services.notifications import reset_notification_service
from menuca.services.payment import get_payment_service, reset_payment_service
from menuca.services.procedures import get_procedure_service, reset_procedure_service
from menuca.services.rate_limit import reset_rate_limiter
from menuca.services.storage import get_storage_service, reset_storage_service
from menuca.utils import create_restaurant_slug

DEVICE_KEY = "test-device-key"

# Square around downtown Ottawa, (lng, lat) order
OTTAWA_SQUARE = {
    "type": "Polygon",
    "coordinates": [[[-75.8, 45.3], [-75.6, 45.3], [-75.6, 45.5], [-75.8, 45.5], [-75.8, 45.3]]],
}


# =============================================================================
# INFRASTRUCTURE
# =============================================================================

@pytest.fixture
async def db_manager(tmp_path, monkeypatch):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'menuca.db'}")
    await manager.create_all()
    monkeypatch.setattr(database, "db_manager", manager)
    yield manager
    await manager.close()


@pytest.fixture
async def db(db_manager):
    async with db_manager.session() as session:
        yield session


@pytest.fixture
async def client(db_manager):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture(autouse=True)
def fresh_services():
    """Every test starts with empty mocks."""
    for reset in (
        reset_identity_service,
        reset_payment_service,
        reset_geo_service,
        reset_notification_service,
        reset_storage_service,
        reset_procedure_service,
        reset_function_service,
        reset_rate_limiter,
    ):
        reset()
    yield


@pytest.fixture(autouse=True)
def queued(monkeypatch):
    """Tasks handed to Celery, as (task name, args, kwargs)."""
    calls = []

    def record(self, *args, **kwargs):
        calls.append((self.name, args, kwargs))

    monkeypatch.setattr(Task, "delay", record)
    return calls


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    from menuca.core.config import get_settings

    path = tmp_path / "exports"
    monkeypatch.setattr(get_settings(), "data_directory", str(path))
    return path


@pytest.fixture
def identity():
    return get_identity_service()


@pytest.fixture
def payments():
    return get_payment_service()


@pytest.fixture
def geo():
    return get_geo_service()


@pytest.fixture
def procedures():
    return get_procedure_service()


@pytest.fixture
def functions():
    return get_function_service()


@pytest.fixture
def storage():
    return get_storage_service()


# =============================================================================
# ADMINS
# =============================================================================

@pytest.fixture
async def roles(db):
    for role_id, name, permissions in (
        (SUPER_ADMIN_ROLE_ID, SUPER_ADMIN_ROLE, SUPER_ADMIN_PERMISSIONS),
        (RESTAURANT_MANAGER_ROLE_ID, RESTAURANT_MANAGER_ROLE, RESTAURANT_MANAGER_PERMISSIONS),
        (STAFF_ROLE_ID, STAFF_ROLE, STAFF_PERMISSIONS),
    ):
        db.add(AdminRole(id=role_id, name=name, permissions=permissions, is_system_role=True))
    await db.commit()


async def make_admin(db, identity, email: str, role_id: int, restaurant_ids=()) -> tuple[AdminUser, dict]:
    """Admin row plus the Authorization header of a registered token."""
    admin = AdminUser(email=email, role_id=role_id, status="active", first_name=email.split("@")[0])
    db.add(admin)
    await db.flush()
    for restaurant_id in restaurant_ids:
        db.add(AdminUserRestaurant(admin_user_id=admin.id, restaurant_id=restaurant_id))
    await db.commit()
    await db.refresh(admin)

    token = f"token-{email}"
    identity.add_token(token, email)
    return admin, {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def super_admin(db, identity, roles):
    return await make_admin(db, identity, "root@menu.ca", SUPER_ADMIN_ROLE_ID)


@pytest.fixture
async def super_headers(super_admin):
    return super_admin[1]


@pytest.fixture
async def manager_headers(db, identity, roles, restaurant):
    _, headers = await make_admin(db, identity, "manager@menu.ca", RESTAURANT_MANAGER_ROLE_ID, [restaurant.id])
    return headers


@pytest.fixture
async def staff_headers(db, identity, roles, restaurant):
    _, headers = await make_admin(db, identity, "staff@menu.ca", STAFF_ROLE_ID, [restaurant.id])
    return headers


# =============================================================================
# RESTAURANT DATA
# =============================================================================

@pytest.fixture
async def restaurant(db):
    restaurant = Restaurant(name="Mario's Pizza", city="Ottawa", province="ON")
    db.add(restaurant)
    await db.commit()
    await db.refresh(restaurant)
    return restaurant


@pytest.fixture
async def other_restaurant(db):
    restaurant = Restaurant(name="Sushi Place", city="Toronto", province="ON")
    db.add(restaurant)
    await db.commit()
    await db.refresh(restaurant)
    return restaurant


@pytest.fixture
def slug(restaurant):
    return create_restaurant_slug(restaurant.id, restaurant.name)


@pytest.fixture
async def dish(db, restaurant):
    """Margherita: default $12.50 / large $16.00, optional toppings (max 2)."""
    dish = Dish(restaurant_id=restaurant.id, name="Margherita", is_active=True)
    dish.prices = [
        DishPrice(size_variant="default", price=12.50, display_order=0),
        DishPrice(size_variant="large", size_label="Large", price=16.00, display_order=1),
    ]
    db.add(dish)
    await db.flush()

    group = ModifierGroup(dish_id=dish.id, name="Toppings", min_selections=0, max_selections=2)
    group.modifiers = [
        Modifier(name="Olives", price=1.50, display_order=0),
        Modifier(name="Mushrooms", price=2.00, display_order=1),
    ]
    db.add(group)
    await db.commit()
    await db.refresh(dish)
    await db.refresh(group)
    return dish


@pytest.fixture
async def toppings(db, dish):
    from sqlalchemy import select

    result = await db.execute(select(ModifierGroup).where(ModifierGroup.dish_id == dish.id))
    return result.scalar_one()


@pytest.fixture
async def delivery_area(db, restaurant):
    area = RestaurantDeliveryArea(
        restaurant_id=restaurant.id,
        area_number=1,
        display_name="Downtown",
        delivery_fee=3.00,
        min_order_value=15.0,
        geometry=OTTAWA_SQUARE,
        is_active=True,
    )
    db.add(area)
    await db.commit()
    await db.refresh(area)
    return area


@pytest.fixture
async def order(db, restaurant, dish):
    order = Order(
        restaurant_id=restaurant.id,
        guest_name="Jane Doe",
        guest_email="jane.doe@menu.ca",
        guest_phone="613-555-1234",
        order_type="delivery",
        status="pending",
        payment_status="paid",
        payment_method="card",
        stripe_payment_intent_id="pi_seeded",
        subtotal=25.00,
        delivery_fee=3.00,
        tax=3.64,
        total=31.64,
        delivery_address={
            "name": "Jane Doe",
            "street_address": "100 Bank St",
            "city": "Ottawa",
            "province": "ON",
            "postal_code": "K1P 1J1",
            "delivery_instructions": "Ring twice",
        },
    )
    order.items = [
        OrderItem(
            dish_id=dish.id,
            dish_name="Margherita",
            quantity=2,
            size_variant="default",
            unit_price=12.50,
            modifiers=[{"modifier_id": 1, "modifier_name": "Olives", "modifier_price": 0.0}],
        ),
    ]
    db.add(order)
    await db.commit()
    await db.refresh(order)
    return order


# =============================================================================
# CUSTOMERS AND DEVICES
# =============================================================================

@pytest.fixture
async def customer(db, identity):
    user = User(auth_user_id="auth-ana", email="ana@menu.ca", first_name="Ana", last_name="Silva")
    db.add(user)
    await db.commit()
    await db.refresh(user)
    identity.add_token("customer-token", "ana@menu.ca", "auth-ana")
    return user


@pytest.fixture
def customer_headers(customer):
    return {"Authorization": "Bearer customer-token"}


@pytest.fixture
async def device(db, restaurant):
    device = Device(
        uuid="7f1c2a9e-0000-4000-8000-000000000001",
        device_name="Kitchen Tablet",
        restaurant_id=restaurant.id,
        device_key_hash=hash_device_key(DEVICE_KEY, rounds=4),
        is_active=True,
    )
    db.add(device)
    await db.commit()
    await db.refresh(device)
    return device


@pytest.fixture
async def device_headers(db, device):
    session = await create_device_session(db, device.id)
    return {"Authorization": f"Bearer {session.session_token}"}
