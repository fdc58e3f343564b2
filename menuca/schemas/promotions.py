"""
Promotional deal and coupon schemas.
"""

import re
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TIME_OF_DAY = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

ServiceType = Literal["delivery", "pickup", "dine_in"]


class TimeRestriction(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not TIME_OF_DAY.match(v):
            raise ValueError("Time must be HH:MM")
        return v


class DealFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def check_rules(self):
        if (
            getattr(self, "discount_type", None) == "percentage"
            and getattr(self, "discount_value", None) is not None
            and self.discount_value > 100
        ):
            raise ValueError("Percentage discount cannot exceed 100")
        start, end = getattr(self, "start_date", None), getattr(self, "end_date", None)
        if start and end and end < start:
            raise ValueError("end_date must be on or after start_date")
        return self


class DealCreate(DealFields):
    restaurant_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    promo_code: Optional[str] = Field(None, min_length=3, max_length=50)
    discount_type: Literal["percentage", "fixed_amount"]
    discount_value: float = Field(..., gt=0)
    minimum_purchase: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    service_types: list[ServiceType] = Field(default_factory=lambda: ["delivery", "pickup"], min_length=1)
    applicable_days: Optional[list[int]] = None
    time_restrictions: Optional[TimeRestriction] = None
    first_order_only: bool = False
    is_enabled: bool = True
    terms_conditions: Optional[str] = None
    max_uses_per_user: Optional[int] = Field(None, gt=0)
    max_total_uses: Optional[int] = Field(None, gt=0)

    @field_validator("applicable_days")
    @classmethod
    def validate_days(cls, v: Optional[list[int]]) -> Optional[list[int]]:
        if v is not None and any(d < 0 or d > 6 for d in v):
            raise ValueError("Days must be between 0 (Sunday) and 6 (Saturday)")
        return v

    @field_validator("service_types")
    @classmethod
    def unique_service_types(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))


class DealUpdate(DealFields):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    promo_code: Optional[str] = Field(None, min_length=3, max_length=50)
    discount_type: Optional[Literal["percentage", "fixed_amount"]] = None
    discount_value: Optional[float] = Field(None, gt=0)
    minimum_purchase: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    service_types: Optional[list[ServiceType]] = Field(None, min_length=1)
    applicable_days: Optional[list[int]] = None
    time_restrictions: Optional[TimeRestriction] = None
    first_order_only: Optional[bool] = None
    terms_conditions: Optional[str] = None
    max_uses_per_user: Optional[int] = Field(None, gt=0)
    max_total_uses: Optional[int] = Field(None, gt=0)

    @field_validator("applicable_days")
    @classmethod
    def validate_days(cls, v: Optional[list[int]]) -> Optional[list[int]]:
        if v is not None and any(d < 0 or d > 6 for d in v):
            raise ValueError("Days must be between 0 (Sunday) and 6 (Saturday)")
        return v


class DealToggle(BaseModel):
    is_enabled: bool


class CouponCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    restaurant_id: int = Field(..., gt=0)
    code: str = Field(..., min_length=3, max_length=50)
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    discount_type: Literal["percentage", "fixed"]
    discount_amount: float = Field(..., gt=0)
    minimum_purchase: Optional[float] = Field(None, ge=0)
    max_redemptions: Optional[int] = Field(None, gt=0)
    availability_types: Optional[list[ServiceType]] = None
    first_order_only: bool = False
    valid_from_at: Optional[datetime] = None
    valid_until_at: Optional[datetime] = None
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def check_rules(self) -> "CouponCreate":
        if self.discount_type == "percentage" and self.discount_amount > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        if self.valid_from_at and self.valid_until_at and self.valid_until_at < self.valid_from_at:
            raise ValueError("valid_until_at must be after valid_from_at")
        return self


class CouponUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    discount_type: Optional[Literal["percentage", "fixed"]] = None
    discount_amount: Optional[float] = Field(None, gt=0)
    minimum_purchase: Optional[float] = Field(None, ge=0)
    max_redemptions: Optional[int] = Field(None, gt=0)
    availability_types: Optional[list[ServiceType]] = None
    first_order_only: Optional[bool] = None
    valid_from_at: Optional[datetime] = None
    valid_until_at: Optional[datetime] = None
    is_active: Optional[bool] = None


class PromoValidateRequest(BaseModel):
    code: str = Field(..., min_length=1)
    restaurant_slug: str = Field(..., min_length=1)
    subtotal: float = Field(default=0.0, ge=0)
    order_type: Optional[str] = None
    user_id: Optional[int] = None
