"""
Helpers for email verification: address validation, OTP codes and
link tokens.
"""

import re
import secrets
from datetime import datetime, timedelta
from urllib.parse import urlencode

from app.core.timeutils import ensure_utc, utc_now

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# No 0/O, 1/I to keep codes readable when typed by hand
OTP_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
OTP_LENGTH = 6


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def generate_otp(length: int = OTP_LENGTH) -> str:
    """Random code drawn from OTP_ALPHABET."""
    return "".join(secrets.choice(OTP_ALPHABET) for _ in range(length))


def generate_verification_token() -> str:
    """64 hex characters for the verification link."""
    return secrets.token_hex(32)


def is_expired(created_at: datetime | None, lifetime: timedelta) -> bool:
    """True when created_at is unset or older than lifetime."""
    created_at = ensure_utc(created_at)
    if created_at is None:
        return True
    return utc_now() - created_at > lifetime


def build_verification_link(base_url: str, token: str, email: str) -> str:
    query = urlencode({"token": token, "email": email})
    return f"{base_url.rstrip('/')}/verify-email?{query}"


def build_password_reset_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/reset-password?{urlencode({'token': token})}"
