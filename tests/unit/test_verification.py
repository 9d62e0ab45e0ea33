"""
Unit tests for email verification helpers.
"""

from datetime import timedelta

import pytest

from app.core.timeutils import utc_now
from app.core.verification import (
    OTP_ALPHABET,
    OTP_LENGTH,
    build_password_reset_link,
    build_verification_link,
    generate_otp,
    generate_verification_token,
    is_expired,
    is_valid_email,
)


@pytest.mark.unit
class TestEmailFormat:

    @pytest.mark.parametrize("email", [
        "user@example.com",
        "first.last+tag@sub.example.org",
        "USER_1%x@domain.io",
    ])
    def test_valid(self, email):
        assert is_valid_email(email) is True

    @pytest.mark.parametrize("email", [
        "",
        "no-at-sign.com",
        "user@nodot",
        "user@example.c",
        "user name@example.com",
    ])
    def test_invalid(self, email):
        assert is_valid_email(email) is False


@pytest.mark.unit
class TestCodes:

    def test_otp_shape(self):
        otp = generate_otp()

        assert len(otp) == OTP_LENGTH
        assert set(otp) <= set(OTP_ALPHABET)

    def test_otp_alphabet_avoids_ambiguous_characters(self):
        assert not set("0O1I") & set(OTP_ALPHABET)

    def test_verification_token_is_hex(self):
        token = generate_verification_token()

        assert len(token) == 64
        int(token, 16)


@pytest.mark.unit
class TestExpiry:

    def test_fresh(self):
        assert is_expired(utc_now(), timedelta(minutes=10)) is False

    def test_stale(self):
        assert is_expired(utc_now() - timedelta(minutes=11), timedelta(minutes=10)) is True

    def test_unset_counts_as_expired(self):
        assert is_expired(None, timedelta(minutes=10)) is True

    def test_naive_timestamp_treated_as_utc(self):
        naive = utc_now().replace(tzinfo=None)

        assert is_expired(naive, timedelta(minutes=10)) is False


@pytest.mark.unit
class TestLinks:

    def test_verification_link(self):
        link = build_verification_link("https://app.example.com/", "abc", "a+b@example.com")

        assert link == "https://app.example.com/verify-email?token=abc&email=a%2Bb%40example.com"

    def test_password_reset_link(self):
        link = build_password_reset_link("https://app.example.com", "tok")

        assert link == "https://app.example.com/reset-password?token=tok"
