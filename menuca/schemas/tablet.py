"""
Tablet device schemas (device login, heartbeat, order status) and the
admin-side device management bodies.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class DeviceLogin(BaseModel):
    device_uuid: str = Field(..., min_length=1)
    device_key: str = Field(..., min_length=1)


class DeviceRefresh(BaseModel):
    session_token: str = Field(..., min_length=1)


class Heartbeat(BaseModel):
    battery_level: Optional[int] = Field(None, ge=0, le=100)
    printer_status: Optional[Literal["online", "offline", "paper_low", "error"]] = None
    app_version: str = Field(..., min_length=1, max_length=50)
    last_print_at: Optional[datetime] = None


class OrderStatusUpdate(BaseModel):
    status: Literal[
        "pending", "confirmed", "preparing", "ready",
        "out_for_delivery", "delivered", "completed", "cancelled",
    ]
    notes: Optional[str] = Field(None, max_length=500)
    estimated_ready_minutes: Optional[int] = Field(None, gt=0, le=240)


class DeviceRegister(BaseModel):
    device_name: str = Field(..., min_length=1, max_length=100)
    restaurant_id: int = Field(..., gt=0)
    has_printing_support: bool = True


class DeviceUpdate(BaseModel):
    device_name: Optional[str] = Field(None, min_length=1, max_length=100)
    restaurant_id: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None
    has_printing_support: Optional[bool] = None
