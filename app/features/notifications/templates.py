"""
HTML bodies for outbound email.
"""

from html import escape


def _layout(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif;\">"
        f"<h2>{escape(title)}</h2>{body}"
        "<p style=\"color:#888;font-size:12px;\">If you did not request this, ignore this email.</p>"
        "</body></html>"
    )


def verification_email(full_name: str | None, otp: str, link: str) -> str:
    """OTP plus a one-click verification link."""
    name = escape(full_name or "there")
    body = (
        f"<p>Hello {name},</p>"
        "<p>Use this code to verify your email address. It expires in 15 minutes.</p>"
        f"<p style=\"font-size:24px;letter-spacing:4px;\"><strong>{escape(otp)}</strong></p>"
        f"<p>Or open this link within 24 hours: <a href=\"{escape(link)}\">Verify email</a></p>"
    )
    return _layout("Verify your email", body)


def email_change_otp_email(full_name: str | None, otp: str) -> str:
    name = escape(full_name or "there")
    body = (
        f"<p>Hello {name},</p>"
        "<p>Confirm your new email address with this code (valid 15 minutes):</p>"
        f"<p style=\"font-size:24px;letter-spacing:4px;\"><strong>{escape(otp)}</strong></p>"
    )
    return _layout("Confirm your new email", body)


def password_reset_email(full_name: str | None, link: str) -> str:
    name = escape(full_name or "there")
    body = (
        f"<p>Hello {name},</p>"
        f"<p>Reset your password within one hour: <a href=\"{escape(link)}\">Reset password</a></p>"
    )
    return _layout("Reset your password", body)


def tenant_invitation_email(full_name: str | None, tenant_name: str) -> str:
    name = escape(full_name or "there")
    body = (
        f"<p>Hello {name},</p>"
        f"<p>You have been added to <strong>{escape(tenant_name)}</strong>.</p>"
    )
    return _layout("Tenant invitation", body)
