"""
SQLAlchemy Database Models

Mapping of the platform tables the API reads and writes. The tables are
owned by the hosted database (schema menuca_v3); constraints declared here
mirror the ones that matter to request handling.
"""

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from menuca.database import Base


class RestaurantStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderType(str, enum.Enum):
    DELIVERY = "delivery"
    TAKEOUT = "takeout"
    DINE_IN = "dine_in"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# =============================================================================
# RESTAURANTS
# =============================================================================

class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    status = Column(String(20), default=RestaurantStatus.ACTIVE.value, nullable=False, index=True)
    timezone = Column(String(64), default="America/Toronto", nullable=False)

    # Contact
    city = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    address = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)

    # =========================================================================
    # BRANDING
    # =========================================================================
    logo_url = Column(Text, nullable=True)
    banner_image_url = Column(Text, nullable=True)
    primary_color = Column(String(7), nullable=True)
    secondary_color = Column(String(7), nullable=True)
    checkout_button_color = Column(String(7), nullable=True)
    price_color = Column(String(7), nullable=True)
    font_family = Column(String(100), nullable=True)
    button_style = Column(String(20), nullable=True)
    menu_layout = Column(String(20), nullable=True)
    logo_display_mode = Column(String(20), nullable=True)
    show_order_online_badge = Column(Boolean, default=True, nullable=False)

    # =========================================================================
    # OPERATIONS
    # =========================================================================
    online_ordering_enabled = Column(Boolean, default=True, nullable=False)
    online_ordering_disabled_reason = Column(Text, nullable=True)
    online_ordering_disabled_at = Column(DateTime(timezone=True), nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)

    # =========================================================================
    # FRANCHISE
    # =========================================================================
    parent_restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=True, index=True)
    is_franchise_parent = Column(Boolean, default=False, nullable=False)
    franchise_brand_name = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Restaurant(id={self.id}, name={self.name!r}, status={self.status})>"


class RestaurantLocation(Base):
    __tablename__ = "restaurant_locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    street_address = Column(String(255), nullable=False)
    unit = Column(String(50), nullable=True)
    city = Column(String(100), nullable=False)
    province = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    phone = Column(String(30), nullable=True)
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class RestaurantContact(Base):
    __tablename__ = "restaurant_contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    title = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    contact_priority = Column(Integer, default=1, nullable=False)
    receives_orders = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class RestaurantSchedule(Base):
    __tablename__ = "restaurant_schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # delivery | takeout
    day_start = Column(Integer, nullable=False)  # 1 = Monday ... 7 = Sunday
    day_stop = Column(Integer, nullable=False)
    time_start = Column(String(5), nullable=False)  # HH:MM
    time_stop = Column(String(5), nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class RestaurantDeliveryArea(Base):
    __tablename__ = "restaurant_delivery_areas"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    area_number = Column(Integer, nullable=True)
    area_name = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=True)
    delivery_fee = Column(Float, default=0.0, nullable=False)
    min_order_value = Column(Float, nullable=True)
    estimated_delivery_minutes = Column(Integer, nullable=True)
    geometry = Column(JSON, nullable=True)  # GeoJSON Polygon / MultiPolygon
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class RestaurantDomain(Base):
    __tablename__ = "restaurant_domains"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    domain = Column(String(255), nullable=False, unique=True)
    domain_type = Column(String(20), default="main", nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    ssl_verified = Column(Boolean, default=False, nullable=False)
    dns_verified = Column(Boolean, default=False, nullable=False)
    last_checked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class RestaurantImage(Base):
    __tablename__ = "restaurant_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    image_url = Column(Text, nullable=False)
    storage_path = Column(Text, nullable=True)
    alt_text = Column(String(255), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class OnboardingStep(Base):
    __tablename__ = "restaurant_onboarding_steps"
    __table_args__ = (UniqueConstraint("restaurant_id", "step_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    step_name = Column(String(50), nullable=False)
    step_order = Column(Integer, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)


# =============================================================================
# MENU
# =============================================================================

class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class Dish(Base):
    __tablename__ = "dishes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Inventory
    is_available = Column(Boolean, default=True, nullable=False)
    unavailable_until = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    prices = relationship(
        "DishPrice", order_by="DishPrice.display_order", lazy="selectin",
        cascade="all, delete-orphan",
    )


class DishPrice(Base):
    __tablename__ = "dish_prices"
    __table_args__ = (UniqueConstraint("dish_id", "size_variant"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    dish_id = Column(Integer, ForeignKey("dishes.id"), nullable=False, index=True)
    size_variant = Column(String(50), default="default", nullable=False)
    size_label = Column(String(100), nullable=True)
    price = Column(Float, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class ModifierGroup(Base):
    __tablename__ = "modifier_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    dish_id = Column(Integer, ForeignKey("dishes.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_required = Column(Boolean, default=False, nullable=False)
    min_selections = Column(Integer, default=0, nullable=False)
    max_selections = Column(Integer, nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    modifiers = relationship(
        "Modifier", order_by="Modifier.display_order", lazy="selectin",
        cascade="all, delete-orphan",
    )


class Modifier(Base):
    __tablename__ = "modifiers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    modifier_group_id = Column(Integer, ForeignKey("modifier_groups.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Float, default=0.0, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)


# =============================================================================
# PROMOTIONS
# =============================================================================

class PromotionalDeal(Base):
    __tablename__ = "promotional_deals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    promo_code = Column(String(50), nullable=True, index=True)
    discount_type = Column(String(20), nullable=False)  # percentage | fixed_amount
    discount_value = Column(Float, nullable=False)
    minimum_purchase = Column(Float, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    service_types = Column(JSON, nullable=True)
    applicable_days = Column(JSON, nullable=True)
    time_restrictions = Column(JSON, nullable=True)
    first_order_only = Column(Boolean, default=False, nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    terms_conditions = Column(Text, nullable=True)
    max_uses_per_user = Column(Integer, nullable=True)
    max_total_uses = Column(Integer, nullable=True)
    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class PromotionalCoupon(Base):
    __tablename__ = "promotional_coupons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=True, index=True)
    code = Column(String(50), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    discount_type = Column(String(20), nullable=False)  # percentage | fixed | item | delivery
    discount_amount = Column(Float, nullable=False, default=0.0)
    minimum_purchase = Column(Float, nullable=True)
    max_redemptions = Column(Integer, nullable=True)
    redemption_count = Column(Integer, default=0, nullable=False)
    availability_types = Column(JSON, nullable=True)  # e.g. ["delivery", "takeout"]
    first_order_only = Column(Boolean, default=False, nullable=False)
    valid_from_at = Column(DateTime(timezone=True), nullable=True)
    valid_until_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)


# =============================================================================
# ADMINISTRATION
# =============================================================================

class AdminRole(Base):
    __tablename__ = "admin_roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    permissions = Column(JSON, nullable=False, default=dict)
    is_system_role = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<AdminRole(id={self.id}, name={self.name!r})>"


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    auth_user_id = Column(String(64), nullable=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role_id = Column(Integer, ForeignKey("admin_roles.id"), nullable=True)
    status = Column(String(20), default="active", nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    role = relationship("AdminRole", lazy="joined")

    def __repr__(self):
        return f"<AdminUser(id={self.id}, email={self.email!r}, role_id={self.role_id})>"


class AdminUserRestaurant(Base):
    __tablename__ = "admin_user_restaurants"
    __table_args__ = (UniqueConstraint("admin_user_id", "restaurant_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    admin_user_id = Column(Integer, ForeignKey("admin_users.id"), nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# =============================================================================
# TABLET DEVICES
# =============================================================================

class Device(Base):
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True)
    device_name = Column(String(100), nullable=False)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=True, index=True)
    device_key_hash = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    has_printing_support = Column(Boolean, default=True, nullable=False)
    firmware_version = Column(Integer, default=1, nullable=False)
    software_version = Column(Integer, default=1, nullable=False)

    # Heartbeat
    last_boot_at = Column(DateTime(timezone=True), nullable=True)
    last_check_at = Column(DateTime(timezone=True), nullable=True)
    battery_level = Column(Integer, nullable=True)
    printer_status = Column(String(20), nullable=True)
    app_version = Column(String(50), nullable=True)
    last_print_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    restaurant = relationship("Restaurant", lazy="joined")

    def __repr__(self):
        return f"<Device(id={self.id}, uuid={self.uuid}, restaurant_id={self.restaurant_id})>"


class DeviceSession(Base):
    __tablename__ = "device_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=False, index=True)
    session_token = Column(String(128), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    last_activity_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DeviceConfig(Base):
    __tablename__ = "device_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=False, unique=True)
    poll_interval_ms = Column(Integer, default=5000, nullable=False)
    auto_print = Column(Boolean, default=True, nullable=False)
    sound_enabled = Column(Boolean, default=True, nullable=False)
    notification_tone = Column(String(50), default="default", nullable=False)
    print_customer_copy = Column(Boolean, default=True, nullable=False)
    print_kitchen_copy = Column(Boolean, default=True, nullable=False)

    def to_dict(self) -> dict:
        return {
            "poll_interval_ms": self.poll_interval_ms,
            "auto_print": self.auto_print,
            "sound_enabled": self.sound_enabled,
            "notification_tone": self.notification_tone,
            "print_customer_copy": self.print_customer_copy,
            "print_kitchen_copy": self.print_kitchen_copy,
        }


# =============================================================================
# CUSTOMERS
# =============================================================================

class User(Base):
    """Customer account (distinct from admin users)."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    auth_user_id = Column(String(64), nullable=True, unique=True, index=True)
    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)
    stripe_customer_id = Column(String(100), nullable=True)
    marketing_opt_in = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class UserAddress(Base):
    __tablename__ = "user_delivery_addresses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    street_address = Column(String(255), nullable=False)
    unit = Column(String(50), nullable=True)
    city = Column(String(100), nullable=False)
    province = Column(String(100), nullable=False, default="ON")
    postal_code = Column(String(20), nullable=False)
    delivery_instructions = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserFavoriteRestaurant(Base):
    __tablename__ = "user_favorite_restaurants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    restaurant = relationship("Restaurant", lazy="joined")


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Guest checkout
    guest_name = Column(String(200), nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(30), nullable=True)

    order_type = Column(String(20), default=OrderType.DELIVERY.value, nullable=False)
    status = Column(String(30), default=OrderStatus.PENDING.value, nullable=False, index=True)

    # =========================================================================
    # PAYMENT
    # =========================================================================
    payment_status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False)
    payment_method = Column(String(30), nullable=True)
    stripe_payment_intent_id = Column(String(100), nullable=True, index=True)

    # =========================================================================
    # TOTALS
    # =========================================================================
    subtotal = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False, default=0.0)
    delivery_fee = Column(Float, nullable=False, default=0.0)
    tip = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False, default=0.0)

    delivery_address = Column(JSON, nullable=True)
    special_instructions = Column(Text, nullable=True)
    scheduled_time = Column(DateTime(timezone=True), nullable=True)
    coupon_code = Column(String(50), nullable=True)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    estimated_ready_time = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "OrderItem", order_by="OrderItem.id", lazy="selectin",
        cascade="all, delete-orphan",
    )
    restaurant = relationship("Restaurant", lazy="joined")

    def __repr__(self):
        return f"<Order(id={self.id}, restaurant_id={self.restaurant_id}, status={self.status})>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    dish_id = Column(Integer, ForeignKey("dishes.id"), nullable=True)
    dish_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    size_variant = Column(String(50), nullable=True)
    unit_price = Column(Float, nullable=False)
    special_instructions = Column(Text, nullable=True)
    modifiers = Column(JSON, nullable=True)  # [{modifier_id, modifier_name, modifier_price}]


class OrderStatusHistory(Base):
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    previous_status = Column(String(30), nullable=True)
    status = Column(String(30), nullable=False)
    notes = Column(Text, nullable=True)
    changed_by_device_id = Column(Integer, ForeignKey("devices.id"), nullable=True)
    changed_by_admin_id = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
