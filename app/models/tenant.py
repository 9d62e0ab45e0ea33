"""
Tenant model for multi-tenancy.

Each tenant represents an organization using the platform.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

DEFAULT_MAX_USERS = 15


class Tenant(BaseModel):
    """
    Tenant (organization) model.

    Provides:
    - Organization profile and contact details
    - Subscription plan and the user ceiling derived from it
    """

    __tablename__ = "tenants"

    # Basic info
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Organization name"
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Organization description"
    )

    logo_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="URL returned by the file store"
    )

    # Contact
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Subscription
    max_users: Mapped[int] = mapped_column(
        Integer,
        default=DEFAULT_MAX_USERS,
        nullable=False,
        comment="Maximum active members"
    )

    subscription_plan: Mapped[str] = mapped_column(
        String(50),
        default="",
        nullable=False,
        comment="'', Basic, Premium or Enterprise"
    )

    subscription_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    subscription_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Status
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="False once soft-deleted"
    )

    memberships: Mapped[list["UserTenant"]] = relationship(
        "UserTenant",
        back_populates="tenant",
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name})>"
