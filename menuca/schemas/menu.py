"""
Menu builder schemas: courses, dishes, prices, modifier groups and modifiers.
"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class CourseCreate(StrictModel):
    restaurant_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    display_order: Optional[int] = Field(None, ge=0)
    is_active: bool = True


class CourseUpdate(StrictModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    display_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class CourseReorder(BaseModel):
    restaurant_id: int = Field(..., gt=0)
    course_ids: list[int] = Field(..., min_length=1)


class DishPriceIn(StrictModel):
    size_variant: str = Field(default="default", min_length=1, max_length=50)
    size_label: Optional[str] = Field(None, max_length=100)
    price: float = Field(..., ge=0)
    display_order: int = Field(default=0, ge=0)


def _unique_sizes(prices: list[DishPriceIn]) -> list[DishPriceIn]:
    sizes = [p.size_variant for p in prices]
    if len(sizes) != len(set(sizes)):
        raise ValueError("Each size_variant may appear only once")
    return prices


PriceList = Annotated[list[DishPriceIn], AfterValidator(_unique_sizes)]


class DishCreate(StrictModel):
    restaurant_id: int = Field(..., gt=0)
    course_id: Optional[int] = Field(None, gt=0)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = None
    display_order: Optional[int] = Field(None, ge=0)
    is_active: bool = True
    prices: PriceList = Field(default_factory=list)


class DishUpdate(StrictModel):
    course_id: Optional[int] = Field(None, gt=0)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = None
    display_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class DishPricesReplace(BaseModel):
    prices: PriceList = Field(..., min_length=1)


class InventoryUpdate(StrictModel):
    is_available: bool
    unavailable_until: Optional[datetime] = None


class DishReorder(BaseModel):
    course_id: int = Field(..., gt=0)
    dish_ids: list[int] = Field(..., min_length=1)


class ModifierGroupCreate(StrictModel):
    name: str = Field(..., min_length=1, max_length=255)
    is_required: bool = False
    min_selections: int = Field(default=0, ge=0)
    max_selections: Optional[int] = Field(None, ge=1)
    display_order: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "ModifierGroupCreate":
        if self.max_selections is not None and self.max_selections < self.min_selections:
            raise ValueError("max_selections must be at least min_selections")
        return self


class ModifierGroupUpdate(StrictModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    is_required: Optional[bool] = None
    min_selections: Optional[int] = Field(None, ge=0)
    max_selections: Optional[int] = Field(None, ge=1)
    display_order: Optional[int] = Field(None, ge=0)


class ModifierCreate(StrictModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: float = Field(default=0.0, ge=0)
    is_default: bool = False
    is_active: bool = True
    display_order: Optional[int] = Field(None, ge=0)


class ModifierUpdate(StrictModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[float] = Field(None, ge=0)
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)


class IdsReorder(BaseModel):
    ids: list[int] = Field(..., min_length=1)


class PriceModifier(BaseModel):
    modifier_id: int
    quantity: int = Field(default=1, ge=1)


class CalculatePriceRequest(BaseModel):
    dish_id: int = Field(..., gt=0)
    size_code: str = "default"
    modifiers: list[PriceModifier] = Field(default_factory=list)


class SelectedModifierIn(BaseModel):
    group_id: int
    modifier_id: int


class ValidateCustomizationRequest(BaseModel):
    dish_id: int = Field(..., gt=0)
    size: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    selected_modifiers: list[SelectedModifierIn] = Field(default_factory=list)
