"""
Membership of a user in a tenant.

There is at most one row per (user, tenant). Rows are never deleted;
removal flips is_active and a later invite flips it back, so the
original join date survives.
"""

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel


class UserTenant(BaseModel):
    """User <-> Tenant membership."""

    __tablename__ = "user_tenants"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="False after removal or suspension"
    )

    user: Mapped["User"] = relationship("User", back_populates="memberships")
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("user_id", "tenant_id", name="uq_user_tenant"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserTenant(user_id={self.user_id}, tenant_id={self.tenant_id}, "
            f"is_active={self.is_active})>"
        )
