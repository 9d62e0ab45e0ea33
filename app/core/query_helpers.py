"""
Query helpers for paginated listings.
"""

import logging
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def paginate(
    db: AsyncSession,
    query: Select,
    skip: int = 0,
    limit: int = 10,
) -> tuple[list[Any], int]:
    """
    Execute query and return one page with the total count.

    Runs two queries:
    1. Count query (filters applied, no pagination)
    2. Data query (with offset/limit)

    Usage:
        items, total = await paginate(
            db,
            select(Tenant).where(Tenant.is_active.is_(True)).order_by(Tenant.created_at.desc()),
            skip=0,
            limit=10,
        )
    """
    count_query = select(func.count()).select_from(
        query.order_by(None).subquery()
    )
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(query.offset(skip).limit(limit))
    items = list(result.scalars().all())

    logger.debug(f"Paginated query returned {len(items)}/{total} rows")
    return items, total
