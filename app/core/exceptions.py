"""
Custom exception hierarchy for the application.

Every expected failure of the identity core is a distinct exception type.
Category base classes carry the HTTP status the API layer maps them to.
"""

from typing import Any

from fastapi import HTTPException, status


class TenantGuardException(Exception):
    """Base exception for all application exceptions."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def error_code(self) -> str:
        """Stable machine-readable name (class name without the Error suffix)."""
        name = type(self).__name__
        return name[:-5] if name.endswith("Error") else name


# Categories

class ConfigurationError(TenantGuardException):
    """Raised at startup when configuration is unusable."""
    default_message = "Invalid configuration"


class ValidationError(TenantGuardException):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class AuthenticationError(TenantGuardException):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication failed"


class TokenError(AuthenticationError):
    """Base for token parsing failures."""
    default_message = "Invalid token"


class AuthorizationError(TenantGuardException):
    """Raised when user lacks permissions."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class ResourceNotFoundError(TenantGuardException):
    """Raised when a requested resource doesn't exist."""
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(TenantGuardException):
    """Raised when a request conflicts with existing state."""
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class QuotaExceededError(TenantGuardException):
    """Raised when tenant exceeds resource quota."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Quota exceeded"


class RateLimitError(TenantGuardException):
    """Raised when a caller has to back off."""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests"


class OperationFailedError(TenantGuardException):
    """Raised when a write could not be confirmed."""
    default_message = "Operation failed"


# Tokens

class TokenExpiredError(TokenError):
    default_message = "Token has expired"


class TokenInvalidError(TokenError):
    default_message = "Token is invalid"


# Validation

class InvalidEmailError(ValidationError):
    default_message = "Invalid email format"


class InvalidSubscriptionPlanError(ValidationError):
    default_message = "Invalid subscription plan"


class InvalidDateError(ValidationError):
    default_message = "Invalid date format, expected YYYY-MM-DD"


class SamePasswordError(ValidationError):
    default_message = "New password must differ from the current password"


class SameEmailError(ValidationError):
    default_message = "New email must differ from the current email"


class OTPExpiredError(ValidationError):
    default_message = "OTP code has expired"


class OTPNotMatchError(ValidationError):
    default_message = "OTP code does not match"


class NoPendingEmailError(ValidationError):
    default_message = "No pending email change"


class VerificationTokenInvalidError(ValidationError):
    default_message = "Verification link is invalid"


class VerificationTokenExpiredError(ValidationError):
    default_message = "Verification link has expired"


# Authentication

class PasswordNotMatchError(AuthenticationError):
    default_message = "Incorrect password"


class UserNotVerifiedError(AuthenticationError):
    """Login of an unverified account; the API reports it as a flag, not a failure."""
    default_message = "Email address has not been verified"


# Authorization

class NotAuthorizedError(AuthorizationError):
    default_message = "Not authorized to perform this action"


class UserNotInTenantError(AuthorizationError):
    default_message = "User is not a member of this tenant"


class SuperadminCannotJoinTenantError(AuthorizationError):
    default_message = "Superadmin cannot be managed through a tenant"


class CannotInviteSuperadminError(AuthorizationError):
    default_message = "Cannot invite a superadmin to a tenant"


class CannotRemoveSelfError(AuthorizationError):
    default_message = "Cannot remove yourself from the tenant"


class CannotRemoveSuperadminError(AuthorizationError):
    default_message = "Cannot remove a superadmin from a tenant"


class CannotRenameSystemRoleError(AuthorizationError):
    default_message = "System roles cannot be renamed"


class CannotDeleteSystemRoleError(AuthorizationError):
    default_message = "System roles cannot be deleted"


class CannotDeleteSystemRolesError(AuthorizationError):
    default_message = "Batch contains system roles; nothing was deleted"


# Not found

class UserNotFoundError(ResourceNotFoundError):
    default_message = "User not found"


class TenantNotFoundError(ResourceNotFoundError):
    default_message = "Tenant not found"


class RoleNotFoundError(ResourceNotFoundError):
    default_message = "Role not found"


# Conflicts

class UserAlreadyExistError(ConflictError):
    default_message = "A user with this email or username already exists"


class EmailAlreadyInUseError(ConflictError):
    default_message = "Email is already used by another user"


class UsernameAlreadyInUseError(ConflictError):
    default_message = "Username is already used by another user"


class UserAlreadyVerifiedError(ConflictError):
    default_message = "User is already verified"


class UserInSameTenantError(ConflictError):
    default_message = "User is already a member of this tenant"


class UserInOtherTenantError(ConflictError):
    default_message = "User is already a member of another tenant"


class UserAlreadyInTenantError(ConflictError):
    default_message = "User already belongs to a tenant"


# Quota

class MaxUserLimitReachedError(QuotaExceededError):
    default_message = "Tenant has reached its maximum number of users"


class TenantMaxUsersReachedError(QuotaExceededError):
    default_message = "Tenant has reached its maximum number of users"


# Rate limiting

class TooManyAttemptsError(RateLimitError):
    default_message = "Too many OTP attempts, request a new code"


class TooManyResendAttemptsError(RateLimitError):
    default_message = "Too many resend attempts, try again later"


class InCooldownPeriodError(RateLimitError):
    default_message = "Resend is in cooldown"


# Writes

class UpdateUserFailedError(OperationFailedError):
    default_message = "Failed to update user"


# HTTP Exception helpers
def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    """Return 401 Unauthorized exception."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def forbidden(detail: str = "Insufficient permissions") -> HTTPException:
    """Return 403 Forbidden exception."""
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail,
    )
