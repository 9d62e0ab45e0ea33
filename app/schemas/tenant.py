"""
Pydantic schemas for Tenant.
"""

from datetime import datetime

from pydantic import EmailStr, Field

from app.schemas.common import BaseSchema


class TenantBase(BaseSchema):
    """Base tenant schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255, description="Organization name")
    description: str | None = Field(None, max_length=2000)


class TenantCreate(TenantBase):
    """Schema for creating a new tenant."""

    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=50)


class TenantUpdate(BaseSchema):
    """Schema for updating a tenant profile (all fields optional)."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)


class TenantContactUpdate(BaseSchema):
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=50)


class SubscriptionUpdate(BaseSchema):
    """Plan change. Dates are YYYY-MM-DD; max_users overrides the plan ceiling when positive."""

    plan: str = Field(..., description="Basic, Premium or Enterprise")
    start_date: str | None = None
    end_date: str | None = None
    max_users: int | None = Field(None, ge=0)


class InviteByEmail(BaseSchema):
    email: EmailStr


class InviteByUserId(BaseSchema):
    user_id: str


class TenantRead(TenantBase):
    """Schema for reading tenant data."""

    id: str
    logo_url: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    max_users: int
    subscription_plan: str
    subscription_start: datetime | None = None
    subscription_end: datetime | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TenantReadWithStats(TenantRead):
    """Tenant with membership count."""

    user_count: int = 0
