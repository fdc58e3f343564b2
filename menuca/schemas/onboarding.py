"""
Onboarding wizard and franchise management schemas.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from menuca.services.geo_zones import is_valid_geometry

ONBOARDING_STEPS = [
    "basic_info",
    "location",
    "contact",
    "schedule",
    "menu",
    "payment",
    "delivery",
    "testing",
]

FRANCHISE_FEATURES = Literal[
    "online_ordering",
    "delivery",
    "pickup",
    "loyalty_program",
    "reservations",
    "gift_cards",
    "catering",
    "table_booking",
]


class CreateRestaurantOnboarding(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    timezone: str = "America/Toronto"
    parent_restaurant_id: Optional[int] = Field(None, gt=0)
    is_franchise_parent: bool = False
    franchise_brand_name: Optional[str] = Field(None, max_length=255)


class AddLocation(BaseModel):
    restaurant_id: int = Field(..., gt=0)
    street_address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    province: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    phone: Optional[str] = Field(None, max_length=30)


class AddContact(BaseModel):
    restaurant_id: int = Field(..., gt=0)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=30)
    title: str = Field(default="Owner", max_length=100)


class AddMenuItem(BaseModel):
    restaurant_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    category: Optional[str] = Field(None, max_length=255)
    image_url: Optional[str] = None


class OnboardingScheduleTemplate(BaseModel):
    restaurant_id: int = Field(..., gt=0)
    template: str = Field(..., min_length=1)
    service_type: Literal["delivery", "takeout", "both"] = "both"
    replace_existing: bool = False


class CreateDeliveryZone(BaseModel):
    """Either a GeoJSON geometry or a center point with a radius."""
    restaurant_id: int = Field(..., gt=0)
    zone_name: Optional[str] = Field(None, max_length=255)
    geometry: Optional[dict[str, Any]] = None
    center_latitude: Optional[float] = Field(None, ge=-90, le=90)
    center_longitude: Optional[float] = Field(None, ge=-180, le=180)
    radius_meters: Optional[float] = Field(None, ge=500, le=50000)
    delivery_fee: float = Field(default=2.99, ge=0)
    min_order_value: float = Field(default=15.0, ge=0)
    estimated_delivery_minutes: int = Field(default=45, gt=0)

    @model_validator(mode="after")
    def check_shape(self) -> "CreateDeliveryZone":
        if self.geometry is not None:
            if not is_valid_geometry(self.geometry):
                raise ValueError("Geometry must be a GeoJSON Polygon or MultiPolygon")
        elif self.center_latitude is None or self.center_longitude is None:
            raise ValueError("Provide geometry or center_latitude and center_longitude")
        return self


class CopyFranchiseMenu(BaseModel):
    source_restaurant_id: int = Field(..., gt=0)
    target_restaurant_id: int = Field(..., gt=0)


class CompleteOnboarding(BaseModel):
    restaurant_id: int = Field(..., gt=0)
    notes: Optional[str] = None


class CreateFranchiseParent(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    franchise_brand_name: str = Field(..., min_length=2, max_length=255)
    timezone: str = "America/Toronto"


class LinkFranchiseChildren(BaseModel):
    parent_restaurant_id: int = Field(..., gt=0)
    restaurant_id: Optional[int] = Field(None, gt=0)
    child_restaurant_ids: Optional[list[int]] = None

    @field_validator("child_restaurant_ids")
    @classmethod
    def positive_ids(cls, v: Optional[list[int]]) -> Optional[list[int]]:
        if v is not None and any(i <= 0 for i in v):
            raise ValueError("Restaurant ids must be positive")
        return v

    @model_validator(mode="after")
    def check_target(self) -> "LinkFranchiseChildren":
        if self.restaurant_id is None and self.child_restaurant_ids is None:
            raise ValueError("Either restaurant_id or child_restaurant_ids must be provided")
        return self


class BulkFranchiseFeature(BaseModel):
    parent_restaurant_id: int = Field(..., gt=0)
    feature_key: FRANCHISE_FEATURES
    is_enabled: bool
