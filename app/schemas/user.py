"""
Pydantic schemas for User.
"""

from datetime import datetime

from pydantic import Field, field_validator

from app.schemas.common import BaseSchema
from app.schemas.tenant import TenantRead


def check_password_strength(v: str) -> str:
    """
    Validate password strength.

    Requirements:
    - At least 8 characters
    - Contains uppercase and lowercase
    - Contains at least one digit
    """
    if len(v) < 8:
        raise ValueError('Password must be at least 8 characters')
    if not any(char.isupper() for char in v):
        raise ValueError('Password must contain at least one uppercase letter')
    if not any(char.islower() for char in v):
        raise ValueError('Password must contain at least one lowercase letter')
    if not any(char.isdigit() for char in v):
        raise ValueError('Password must contain at least one digit')
    return v


class UserBase(BaseSchema):
    """Base user schema."""

    # Format is checked by the service so a bad address maps to InvalidEmail
    email: str = Field(..., max_length=255, description="User email address")
    username: str = Field(..., min_length=3, max_length=100, description="Login name")
    full_name: str | None = Field(None, max_length=255, description="User's full name")


class UserCreate(UserBase):
    """Schema for user registration."""

    password: str = Field(..., min_length=8, max_length=100, description="User password")

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class AdminUserCreate(UserCreate):
    """User created by a superadmin; verified unless stated otherwise."""

    role_id: str | None = Field(None, description="Defaults to the USER role")
    is_verified: bool = True


class UserDataUpdate(BaseSchema):
    """Superadmin edit of another user's data (all optional)."""

    email: str | None = Field(None, max_length=255)
    username: str | None = Field(None, min_length=3, max_length=100)
    full_name: str | None = Field(None, max_length=255)


class ProfileUpdate(BaseSchema):
    """Self-service profile edit."""

    full_name: str = Field(..., min_length=1, max_length=255)


class ChangeRoleRequest(BaseSchema):
    role_id: str


class EmailUpdateRequest(BaseSchema):
    new_email: str = Field(..., max_length=255)


class EmailUpdateVerifyRequest(BaseSchema):
    otp: str = Field(..., min_length=4, max_length=10)


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: str
    email: str
    username: str
    full_name: str | None = None
    profile_image_url: str | None = None
    role_id: str | None = None
    role_name: str | None = None
    status: str
    is_verified: bool
    pending_email: str | None = None
    created_at: datetime
    updated_at: datetime


class UserProfile(UserRead):
    """Authenticated user with their current tenant, if any."""

    tenant: TenantRead | None = None
