"""
Authentication-specific schemas.
"""

from pydantic import Field, field_validator

from app.schemas.common import BaseSchema
from app.schemas.user import UserRead, check_password_strength


class LoginRequest(BaseSchema):
    """Login request schema."""

    identifier: str = Field(..., description="Email or username")
    password: str = Field(..., description="User password")


class TokenResponse(BaseSchema):
    """Token response schema."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration in seconds")


class LoginResponse(BaseSchema):
    """
    Login result.

    An unverified account gets is_verified=false and no tokens.
    """

    is_verified: bool
    access_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None
    user: UserRead | None = None
    message: str | None = None


class RefreshTokenRequest(BaseSchema):
    """Refresh token request."""

    refresh_token: str = Field(..., description="Valid refresh token")


class RegisterResponse(BaseSchema):
    """User registration response."""

    user: UserRead
    message: str = "User registered, check your email for the verification code"


class VerifyEmailRequest(BaseSchema):
    email: str
    otp: str = Field(..., min_length=4, max_length=10)


class ResendVerificationRequest(BaseSchema):
    email: str


class ForgotPasswordRequest(BaseSchema):
    email: str


class ResetPasswordRequest(BaseSchema):
    token: str
    new_password: str = Field(..., min_length=8, max_length=100)

    @field_validator('new_password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)
