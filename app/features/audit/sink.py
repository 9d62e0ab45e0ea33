"""
Audit sink.

Activity records are written by the background queue in their own
session, so an audit failure can never roll back or fail the operation
being audited.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.background import BackgroundQueue
from app.core.context import get_request_context
from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


class AuditAction:
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ROLE_CHANGE = "ROLE_CHANGE"
    INVITE = "INVITE"
    REMOVE = "REMOVE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


def _jsonable(values: dict[str, Any] | None) -> dict[str, Any] | None:
    if values is None:
        return None
    return {
        key: value.isoformat() if isinstance(value, (datetime, date)) else value
        for key, value in values.items()
    }


class AuditSink:
    """
    Write-only activity log.

    log_activity never blocks and never raises; records may be lost if the
    queue is full or the process dies.
    """

    def __init__(self, queue: BackgroundQueue, session_factory: SessionFactory):
        self.queue = queue
        self.session_factory = session_factory

    def log_activity(
        self,
        user_id: str | None,
        tenant_id: str | None,
        entity_type: str,
        entity_id: str,
        action: str,
        old_value: dict[str, Any] | None = None,
        new_value: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> bool:
        """
        Queue one audit record.

        Returns:
            False if the record was dropped
        """
        record = {
            "user_id": user_id,
            "tenant_id": tenant_id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "action": action,
            "old_values": _jsonable(old_value),
            "new_values": _jsonable(new_value),
            "ip_address": ip_address,
            "user_agent": user_agent,
        }
        request_id = get_request_context().get("request_id")

        async def job() -> None:
            async with self.session_factory() as session:
                session.add(AuditLog(**record))
                await session.commit()
            logger.debug(
                f"Audit {action} {entity_type}:{entity_id} by {user_id} (request {request_id})"
            )

        return self.queue.submit(job, name="audit_log")
