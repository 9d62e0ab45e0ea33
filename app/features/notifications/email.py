"""
Outbound email.

EmailSender is the delivery interface; EmailDispatcher hands each send to
the background queue so a slow or failing mail server never fails the
request that triggered it.
"""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import formataddr

from app.config import settings
from app.core.background import BackgroundQueue

logger = logging.getLogger(__name__)


class EmailSender(ABC):
    """Email delivery interface."""

    @abstractmethod
    async def send(self, to: str, subject: str, html: str) -> None:
        """
        Deliver one HTML email.

        Raises:
            Any delivery error; callers decide whether it is fatal.
        """
        pass


def build_message(to: str, subject: str, html: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = formataddr((settings.email_sender_name, settings.email_sender_address))
    message["To"] = to
    message["Subject"] = subject
    message.set_content("This message requires an HTML capable mail client.")
    message.add_alternative(html, subtype="html")
    return message


def deliver_smtp(to: str, subject: str, html: str) -> None:
    """Blocking SMTP delivery (used from a thread or a Celery worker)."""
    message = build_message(to, subject, html)
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        if settings.smtp_username:
            smtp.login(settings.smtp_username, settings.smtp_password or "")
        smtp.send_message(message)


class SMTPEmailSender(EmailSender):
    """Sends through the configured SMTP server."""

    async def send(self, to: str, subject: str, html: str) -> None:
        await asyncio.to_thread(deliver_smtp, to, subject, html)
        logger.info(f"Email sent to {to}: {subject}")


class CeleryEmailSender(EmailSender):
    """Enqueues delivery on the Celery `emails` queue."""

    async def send(self, to: str, subject: str, html: str) -> None:
        from app.features.notifications.tasks import send_email

        send_email.delay(to, subject, html)
        logger.info(f"Email queued for {to}: {subject}")


class LogOnlyEmailSender(EmailSender):
    """Logs instead of sending. Default for development."""

    async def send(self, to: str, subject: str, html: str) -> None:
        logger.info(f"Email (not sent) to {to}: {subject}")
        logger.debug(f"Email body (first 500 chars): {html[:500]}")


def get_email_sender() -> EmailSender:
    """Sender selected by settings.email_backend."""
    if settings.email_backend == "smtp":
        return SMTPEmailSender()
    if settings.email_backend == "celery":
        return CeleryEmailSender()
    return LogOnlyEmailSender()


class EmailDispatcher:
    """Fire-and-forget wrapper around an EmailSender."""

    def __init__(self, sender: EmailSender, queue: BackgroundQueue):
        self.sender = sender
        self.queue = queue

    def dispatch(self, to: str, subject: str, html: str) -> bool:
        """
        Queue an email.

        Returns:
            False if the queue dropped it
        """
        async def job() -> None:
            await self.sender.send(to, subject, html)

        return self.queue.submit(job, name="send_email")
