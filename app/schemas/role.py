"""
Pydantic schemas for Role.
"""

from datetime import datetime

from pydantic import Field

from app.schemas.common import BaseSchema


class RoleCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class RoleUpdate(BaseSchema):
    """Description may always change; system role names may not."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None


class RoleRead(BaseSchema):
    id: str
    name: str
    description: str | None = None
    is_system: bool
    created_at: datetime
    updated_at: datetime


class BulkDeleteRequest(BaseSchema):
    role_ids: list[str] = Field(..., min_length=1)


class BulkDeleteResponse(BaseSchema):
    deleted: int
