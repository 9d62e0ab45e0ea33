"""
Celery tasks for email delivery.

Used when settings.email_backend == "celery"; the worker delivers over
SMTP with Celery's retry policy.
"""

import logging
import smtplib

from app.core.celery_app import celery_app
from app.features.notifications.email import deliver_smtp

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="app.features.notifications.tasks.send_email",
    autoretry_for=(smtplib.SMTPException, OSError),
    retry_backoff=True,
    max_retries=3,
)
def send_email(self, to: str, subject: str, html: str) -> dict:
    """
    Deliver one email over SMTP.

    Args:
        to: Recipient address
        subject: Subject line
        html: HTML body

    Returns:
        Delivery summary
    """
    logger.info(f"Sending email to {to} (attempt {self.request.retries + 1})")
    deliver_smtp(to, subject, html)
    return {"to": to, "subject": subject, "status": "sent"}
