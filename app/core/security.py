"""
Security utilities for authentication.

Provides:
- Password hashing and verification (bcrypt)
- TokenService: access, refresh, email-verification and password-reset
  JWTs, each signed with its own secret
- Best-effort token revocation backed by the Redis cache
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.config import MIN_SECRET_LENGTH, Settings
from app.core.exceptions import ConfigurationError, TokenExpiredError, TokenInvalidError
from app.core.timeutils import utc_now

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

REVOCATION_NAMESPACE = "revoked_users"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _microseconds(moment: datetime) -> int:
    return (moment - _EPOCH) // timedelta(microseconds=1)


def _issued_at_us(payload: dict[str, Any]) -> int:
    # Tokens minted without iat_us only carry whole seconds.
    if "iat_us" in payload:
        return int(payload["iat_us"])
    return int(payload["iat"]) * 1_000_000


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Bcrypt hash to verify against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


class TokenType:
    """Values of the `type` claim."""

    ACCESS = "access"
    REFRESH = "refresh"
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True)
class TokenConfig:
    """Signing material for the four token kinds."""

    access_secret: str
    refresh_secret: str
    email_secret: str
    password_reset_secret: str
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            email_secret=settings.email_token_secret,
            password_reset_secret=settings.password_reset_token_secret,
            algorithm=settings.algorithm,
        )


@dataclass(frozen=True)
class AccessClaims:
    """Decoded access token."""

    user_id: str
    role_id: str | None
    role: str | None
    issued_at: int
    issued_at_us: int
    expires_at: int


@dataclass(frozen=True)
class RefreshClaims:
    """Decoded refresh token."""

    user_id: str
    issued_at: int
    issued_at_us: int
    expires_at: int


class TokenService:
    """
    Mints and validates session tokens.

    Every token kind is signed with its own secret and carries a `type`
    claim, so a token of one kind is never accepted by another parser.
    Expired tokens raise TokenExpiredError; anything else that fails to
    verify raises TokenInvalidError.
    """

    def __init__(self, config: TokenConfig, revocation_store: Any | None = None):
        secrets = {
            "access": config.access_secret,
            "refresh": config.refresh_secret,
            "email": config.email_secret,
            "password_reset": config.password_reset_secret,
        }
        for kind, secret in secrets.items():
            if not secret or len(secret) < MIN_SECRET_LENGTH:
                raise ConfigurationError(
                    f"{kind} token secret must be at least {MIN_SECRET_LENGTH} characters",
                    details={"token_kind": kind},
                )

        self._config = config
        self._revocation_store = revocation_store

    # Encoding / decoding

    def _encode(self, claims: dict[str, Any], secret: str, token_type: str, ttl: timedelta) -> str:
        now = utc_now()
        to_encode = claims.copy()
        to_encode.update({
            "iat": now,
            "iat_us": _microseconds(now),
            "exp": now + ttl,
            "type": token_type,
        })
        return jwt.encode(to_encode, secret, algorithm=self._config.algorithm)

    def _decode(self, token: str, secret: str, expected_type: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self._config.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            logger.warning(f"JWT decode error ({expected_type}): {e}")
            raise TokenInvalidError()

        if payload.get("type") != expected_type:
            logger.warning(
                f"Token type mismatch: expected {expected_type}, got {payload.get('type')}"
            )
            raise TokenInvalidError("Token is not of the expected kind")

        return payload

    # Access tokens

    def create_access_token(
        self,
        user_id: str,
        role_id: str | None,
        role_name: str | None,
        ttl: timedelta,
    ) -> str:
        """
        Create an access token.

        Args:
            user_id: Subject of the token
            role_id: Role id at issue time
            role_name: Role name at issue time (SUPERADMIN, ADMIN, USER)
            ttl: Lifetime of the token

        Returns:
            Encoded JWT
        """
        claims = {
            "sub": str(user_id),
            "role_id": str(role_id) if role_id else None,
            "role": role_name,
        }
        return self._encode(claims, self._config.access_secret, TokenType.ACCESS, ttl)

    def parse_access_token(self, token: str) -> AccessClaims:
        """
        Validate an access token.

        Raises:
            TokenExpiredError: token was valid but has expired
            TokenInvalidError: bad signature, malformed, or wrong kind
        """
        payload = self._decode(token, self._config.access_secret, TokenType.ACCESS)
        user_id = payload.get("sub")
        if not user_id:
            raise TokenInvalidError("Token has no subject")
        return AccessClaims(
            user_id=user_id,
            role_id=payload.get("role_id"),
            role=payload.get("role"),
            issued_at=int(payload["iat"]),
            issued_at_us=_issued_at_us(payload),
            expires_at=int(payload["exp"]),
        )

    # Refresh tokens

    def create_refresh_token(self, user_id: str, ttl: timedelta) -> str:
        """Create a refresh token carrying only the user id."""
        return self._encode(
            {"sub": str(user_id)}, self._config.refresh_secret, TokenType.REFRESH, ttl
        )

    def parse_refresh_token(self, token: str) -> RefreshClaims:
        payload = self._decode(token, self._config.refresh_secret, TokenType.REFRESH)
        user_id = payload.get("sub")
        if not user_id:
            raise TokenInvalidError("Token has no subject")
        return RefreshClaims(
            user_id=user_id,
            issued_at=int(payload["iat"]),
            issued_at_us=_issued_at_us(payload),
            expires_at=int(payload["exp"]),
        )

    # Email verification tokens

    def create_email_token(self, email: str, ttl: timedelta) -> str:
        return self._encode(
            {"email": email}, self._config.email_secret, TokenType.EMAIL_VERIFICATION, ttl
        )

    def parse_email_token(self, token: str) -> str:
        """Return the email an email-verification token was issued for."""
        payload = self._decode(token, self._config.email_secret, TokenType.EMAIL_VERIFICATION)
        email = payload.get("email")
        if not email:
            raise TokenInvalidError("Token has no email claim")
        return email

    def validate_email_token(self, token: str, expected_email: str) -> bool:
        """True only if the token parses and was issued for expected_email."""
        try:
            return self.parse_email_token(token) == expected_email
        except (TokenExpiredError, TokenInvalidError):
            return False

    # Password reset tokens

    def create_password_reset_token(self, email: str, ttl: timedelta) -> str:
        return self._encode(
            {"email": email},
            self._config.password_reset_secret,
            TokenType.PASSWORD_RESET,
            ttl,
        )

    def parse_password_reset_token(self, token: str) -> str:
        """Return the email a password-reset token was issued for."""
        payload = self._decode(
            token, self._config.password_reset_secret, TokenType.PASSWORD_RESET
        )
        email = payload.get("email")
        if not email:
            raise TokenInvalidError("Token has no email claim")
        return email

    # Revocation

    async def blacklist_user_tokens(self, user_id: str, ttl: timedelta | None = None) -> None:
        """
        Revoke every token issued to a user up to now.

        Best effort: without a reachable revocation store the call only
        logs, and previously issued tokens stay valid until they expire.
        """
        if self._revocation_store is None:
            logger.warning(
                f"No token revocation store configured; tokens for user {user_id} remain valid"
            )
            return

        ttl = ttl or timedelta(days=7)
        stored = await self._revocation_store.set(
            REVOCATION_NAMESPACE,
            user_id,
            _microseconds(utc_now()),
            ttl=int(ttl.total_seconds()),
        )
        if stored:
            logger.info(f"Tokens revoked for user {user_id}")
        else:
            logger.warning(
                f"Token revocation store unavailable; tokens for user {user_id} remain valid"
            )

    async def is_token_revoked(self, user_id: str, issued_at_us: int) -> bool:
        """
        True if the user's tokens were revoked at or after issued_at_us.

        Both sides are microsecond timestamps, so a session minted right
        after a logout is not caught by it.
        """
        if self._revocation_store is None:
            return False
        revoked_at = await self._revocation_store.get(REVOCATION_NAMESPACE, user_id)
        if revoked_at is None:
            return False
        return issued_at_us <= int(revoked_at)


def token_expiry(ttl: timedelta) -> datetime:
    """Absolute expiry for a token minted now."""
    return utc_now() + ttl
