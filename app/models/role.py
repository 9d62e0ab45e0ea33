"""
Role model for the fixed role hierarchy.
"""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel


class RoleName:
    """System role names, highest privilege first."""

    SUPERADMIN = "SUPERADMIN"
    ADMIN = "ADMIN"
    USER = "USER"

    ALL = (SUPERADMIN, ADMIN, USER)


class Role(BaseModel):
    """
    Role model.

    System roles (SUPERADMIN, ADMIN, USER) are seeded at startup; their
    names are immutable and they cannot be deleted.
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        comment="Role name (e.g., 'ADMIN')"
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Role description"
    )

    is_system: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="System-defined role (cannot be renamed or deleted)"
    )

    users: Mapped[list["User"]] = relationship(
        "User",
        back_populates="role",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Role(name={self.name}, is_system={self.is_system})>"
