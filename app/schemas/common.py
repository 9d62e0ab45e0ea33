"""
Common/shared Pydantic schemas.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    Request and response schemas inherit from this so ORM rows can be
    validated directly.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


T = TypeVar('T')


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Offset page of results.

    Usage:
        PaginatedResponse[UserRead](items=users, total=100, skip=0, limit=10)
    """

    items: list[T]
    total: int = Field(..., description="Total number of matching items")
    skip: int = Field(..., description="Number of items skipped")
    limit: int = Field(..., description="Maximum items per page")


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Body of every rejected request."""

    detail: str | list[dict[str, Any]]
    error: str = Field(..., description="Error code, e.g. UserNotFound")
    details: dict[str, Any] | None = None
