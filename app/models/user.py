"""
User model for authentication, verification and session state.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel


class UserStatus:
    """Account status values stored in users.status."""

    PENDING = "pending"
    ACTIVE = "active"


class User(BaseModel):
    """User account model."""

    __tablename__ = "users"

    # Identity
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address (unique)"
    )

    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        comment="Login name (unique)"
    )

    hashed_password: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Bcrypt hashed password"
    )

    full_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="User's full name"
    )

    profile_image_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="URL returned by the file store"
    )

    # Authorization
    role_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("roles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Role assigned to the user"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=UserStatus.PENDING,
        nullable=False,
        comment="pending until the email is verified, then active"
    )

    # Email verification
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Email verification status"
    )

    otp_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    otp_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    otp_attempt_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    verification_token: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    verification_token_created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    pending_email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="New address awaiting OTP confirmation"
    )

    # Session
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    token_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    token_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Verification resend throttling
    resend_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_resend_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cooldown_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Soft delete
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
        comment="Set on soft delete"
    )

    # Relationships
    role: Mapped["Role"] = relationship(
        "Role",
        back_populates="users",
        lazy="selectin"
    )

    memberships: Mapped[list["UserTenant"]] = relationship(
        "UserTenant",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def role_name(self) -> str | None:
        """Name of the loaded role, if any."""
        return self.role.name if self.role else None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def has_role(self, role_name: str) -> bool:
        """
        Check if user has a specific role.

        Args:
            role_name: Role name (e.g., "ADMIN")

        Returns:
            True if the user's role matches
        """
        return self.role_name == role_name

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
