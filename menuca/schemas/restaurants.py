"""
Restaurant and restaurant sub-resource schemas.

Create and update bodies are strict: unknown fields are rejected.
"""

import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from menuca.services.geo_zones import is_valid_geometry

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")
TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


# =============================================================================
# RESTAURANTS
# =============================================================================

class RestaurantCreate(StrictModel):
    name: str = Field(..., min_length=1, max_length=255)
    status: Literal["active", "inactive", "suspended"] = "active"
    timezone: str = Field(default="America/Toronto", max_length=64)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None


class RestaurantUpdate(StrictModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[Literal["active", "inactive", "suspended"]] = None
    timezone: Optional[str] = Field(None, max_length=64)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None

    logo_url: Optional[str] = None
    banner_image_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    checkout_button_color: Optional[str] = None
    price_color: Optional[str] = None
    font_family: Optional[str] = Field(None, max_length=100)
    button_style: Optional[Literal["rounded", "square", "pill"]] = None
    menu_layout: Optional[Literal["grid", "list"]] = None
    logo_display_mode: Optional[Literal["logo_only", "name_only", "logo_and_name"]] = None
    show_order_online_badge: Optional[bool] = None
    is_verified: Optional[bool] = None

    @field_validator("primary_color", "secondary_color", "checkout_button_color", "price_color")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not HEX_COLOR.match(v):
            raise ValueError("Color must be a hex value like #1A2B3C")
        return v


class ToggleOnlineOrdering(BaseModel):
    enabled: bool
    reason: Optional[str] = Field(None, max_length=500)


# =============================================================================
# SUB-RESOURCES
# =============================================================================

class LocationCreate(StrictModel):
    street_address: str = Field(..., min_length=1, max_length=255)
    unit: Optional[str] = Field(None, max_length=50)
    city: str = Field(..., min_length=1, max_length=100)
    province: str = Field(..., min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    phone: Optional[str] = Field(None, max_length=30)
    is_primary: bool = False


class LocationUpdate(StrictModel):
    street_address: Optional[str] = Field(None, min_length=1, max_length=255)
    unit: Optional[str] = Field(None, max_length=50)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    province: Optional[str] = Field(None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    phone: Optional[str] = Field(None, max_length=30)
    is_primary: Optional[bool] = None


class ContactCreate(StrictModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    title: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    contact_priority: int = Field(default=1, ge=1)
    receives_orders: bool = False


class ContactUpdate(StrictModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    title: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    contact_priority: Optional[int] = Field(None, ge=1)
    receives_orders: Optional[bool] = None


class ScheduleCreate(StrictModel):
    type: Literal["delivery", "takeout"]
    day_start: int = Field(..., ge=1, le=7)
    day_stop: int = Field(..., ge=1, le=7)
    time_start: str
    time_stop: str
    is_enabled: bool = True

    @field_validator("time_start", "time_stop")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not TIME_OF_DAY.match(v):
            raise ValueError("Time must be HH:MM")
        return v


class ScheduleUpdate(StrictModel):
    type: Optional[Literal["delivery", "takeout"]] = None
    day_start: Optional[int] = Field(None, ge=1, le=7)
    day_stop: Optional[int] = Field(None, ge=1, le=7)
    time_start: Optional[str] = None
    time_stop: Optional[str] = None
    is_enabled: Optional[bool] = None

    @field_validator("time_start", "time_stop")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not TIME_OF_DAY.match(v):
            raise ValueError("Time must be HH:MM")
        return v


class ApplyScheduleTemplate(BaseModel):
    template: str = Field(..., min_length=1)
    service_type: Literal["delivery", "takeout", "both"] = "both"
    replace_existing: bool = False


class DeliveryAreaCreate(StrictModel):
    area_name: Optional[str] = Field(None, max_length=255)
    display_name: Optional[str] = Field(None, max_length=255)
    area_number: Optional[int] = None
    delivery_fee: float = Field(default=0.0, ge=0)
    min_order_value: Optional[float] = Field(None, ge=0)
    estimated_delivery_minutes: Optional[int] = Field(None, gt=0)
    geometry: dict[str, Any]
    is_active: bool = True

    @field_validator("geometry")
    @classmethod
    def validate_geometry(cls, v: dict) -> dict:
        if not is_valid_geometry(v):
            raise ValueError("Geometry must be a GeoJSON Polygon or MultiPolygon")
        return v


class DeliveryAreaUpdate(StrictModel):
    area_name: Optional[str] = Field(None, max_length=255)
    display_name: Optional[str] = Field(None, max_length=255)
    area_number: Optional[int] = None
    delivery_fee: Optional[float] = Field(None, ge=0)
    min_order_value: Optional[float] = Field(None, ge=0)
    estimated_delivery_minutes: Optional[int] = Field(None, gt=0)
    geometry: Optional[dict[str, Any]] = None
    is_active: Optional[bool] = None

    @field_validator("geometry")
    @classmethod
    def validate_geometry(cls, v: Optional[dict]) -> Optional[dict]:
        if v is not None and not is_valid_geometry(v):
            raise ValueError("Geometry must be a GeoJSON Polygon or MultiPolygon")
        return v


DOMAIN_PATTERN = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)(\.(?!-)[a-z0-9-]{1,63}(?<!-))+$")


class DomainCreate(StrictModel):
    domain: str = Field(..., min_length=3, max_length=255)
    domain_type: Literal["main", "alias", "subdomain"] = "main"
    is_enabled: bool = True

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        v = v.strip().lower()
        if not DOMAIN_PATTERN.match(v):
            raise ValueError("Invalid domain name")
        return v


class DomainUpdate(StrictModel):
    domain_type: Optional[Literal["main", "alias", "subdomain"]] = None
    is_enabled: Optional[bool] = None


class ImageCreate(StrictModel):
    image_url: str = Field(..., min_length=1)
    storage_path: Optional[str] = None
    alt_text: Optional[str] = Field(None, max_length=255)
    display_order: Optional[int] = Field(None, ge=0)


class ImageUpdate(StrictModel):
    alt_text: Optional[str] = Field(None, max_length=255)
    display_order: Optional[int] = Field(None, ge=0)


class ImageReorder(BaseModel):
    image_ids: list[int] = Field(..., min_length=1)


class OnboardingStepUpdate(StrictModel):
    is_completed: bool
    notes: Optional[str] = None

