"""
Admin user and role request schemas.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AdminUserCreate(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    role_id: int = Field(..., gt=0)
    restaurant_ids: list[int] = Field(default_factory=list)


class AdminUserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    role_id: Optional[int] = Field(None, gt=0)
    status: Optional[Literal["active", "inactive", "suspended"]] = None


class AssignmentRequest(BaseModel):
    """Add, remove or replace an admin's restaurant assignments."""
    admin_user_id: Optional[int] = None
    restaurant_ids: Optional[list[int]] = None
    action: Optional[str] = None


class RoleCreate(BaseModel):
    # fields are checked in the route
    name: Optional[str] = None
    description: Optional[str] = None
    permissions: Optional[Any] = None


class RoleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    permissions: Optional[Any] = None
