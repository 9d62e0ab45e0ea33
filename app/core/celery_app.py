"""
Celery application for out-of-process email delivery.

Only used when settings.email_backend is "celery"; the default backend
sends from the in-process background queue instead.
"""

import logging

from celery import Celery
from celery.signals import task_failure

from app.config import settings

logger = logging.getLogger(__name__)

EMAIL_QUEUE = "emails"

celery_app = Celery(
    "tenantguard",
    broker=str(settings.redis_url),
    include=["app.features.notifications.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_routes={"app.features.notifications.tasks.*": {"queue": EMAIL_QUEUE}},
    # Emails are fire-and-forget; nothing reads results
    task_ignore_result=True,
    # A message is only dropped once SMTP accepted it
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=60,
    task_soft_time_limit=45,
    worker_prefetch_multiplier=1,
)


@task_failure.connect
def log_task_failure(sender=None, exception=None, **kwargs):
    logger.error(f"Email task failed: {sender.name if sender else 'unknown'} - {exception}")
