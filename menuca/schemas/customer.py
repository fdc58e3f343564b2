"""
Storefront (customer) schemas: checkout, profile and saved addresses.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, EmailStr, Field

CASH_PAYMENT_TYPES = ("cash", "interac", "credit_at_door", "debit_at_door", "credit_debit_at_door")


class CartModifier(BaseModel):
    id: int


class CartItem(BaseModel):
    dish_id: int = Field(..., validation_alias=AliasChoices("dish_id", "dishId"))
    quantity: int
    size: str = "default"
    modifiers: list[CartModifier] = Field(default_factory=list)
    special_instructions: Optional[str] = Field(None, max_length=500)


class DeliveryAddress(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    street_address: Optional[str] = None
    unit: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    delivery_instructions: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ServiceTime(BaseModel):
    type: Literal["asap", "scheduled"] = "asap"
    scheduledTime: Optional[datetime] = None


class PaymentIntentRequest(BaseModel):
    amount: float
    guest_email: Optional[EmailStr] = None
    user_id: Optional[int] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    shipping_address: Optional[DeliveryAddress] = None


class CardOrderRequest(BaseModel):
    payment_intent_id: Optional[str] = None
    cart_items: list[CartItem] = Field(default_factory=list)
    delivery_address: Optional[DeliveryAddress] = None
    guest_email: Optional[EmailStr] = None
    user_id: Optional[int] = None
    order_type: Optional[str] = "delivery"
    tip: float = Field(default=0.0, ge=0)
    service_time: Optional[ServiceTime] = None


class CashOrderRequest(BaseModel):
    payment_type: Optional[str] = None
    restaurant_slug: Optional[str] = None
    cart_items: list[CartItem] = Field(default_factory=list)
    delivery_address: Optional[DeliveryAddress] = None
    guest_email: Optional[EmailStr] = None
    user_id: Optional[int] = None
    order_type: Optional[str] = "delivery"
    service_time: Optional[ServiceTime] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    marketing_opt_in: Optional[bool] = None


class AddressCreate(BaseModel):
    street_address: str = Field(..., min_length=1, max_length=255)
    unit: Optional[str] = Field(None, max_length=50)
    city: str = Field(..., min_length=1, max_length=100)
    province: str = Field(default="ON", max_length=100)
    postal_code: str = Field(..., min_length=3, max_length=20)
    delivery_instructions: Optional[str] = None
    is_default: bool = False


class WelcomeEmailRequest(BaseModel):
    email: EmailStr
    first_name: Optional[str] = None


class SignupRequest(BaseModel):
    auth_user_id: str = Field(..., min_length=1, max_length=64)
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
