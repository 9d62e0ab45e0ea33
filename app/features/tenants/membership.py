"""
Tenant membership persistence.

A thin store over user_tenants, one row per (user, tenant). It never
enforces the single-active-tenant or capacity rules; TenantService checks
those before calling in. Writes flush but do not commit so callers can
group them into one transaction.
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.query_helpers import paginate
from app.models.tenant import Tenant
from app.models.user import User
from app.models.user_tenant import UserTenant

logger = logging.getLogger(__name__)


class TenantMembershipStore:
    """Reads and writes UserTenant rows."""

    @staticmethod
    async def is_user_in_tenant(db: AsyncSession, user_id: str, tenant_id: str) -> bool:
        """True if the user has an active membership in the tenant."""
        result = await db.execute(
            select(UserTenant.id).where(
                UserTenant.user_id == user_id,
                UserTenant.tenant_id == tenant_id,
                UserTenant.is_active.is_(True),
            )
        )
        return result.first() is not None

    @staticmethod
    async def get_active_tenants_for_user(db: AsyncSession, user_id: str) -> list[Tenant]:
        result = await db.execute(
            select(Tenant)
            .join(UserTenant, UserTenant.tenant_id == Tenant.id)
            .where(UserTenant.user_id == user_id, UserTenant.is_active.is_(True))
            .order_by(UserTenant.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_active_users(db: AsyncSession, tenant_id: str) -> int:
        result = await db.execute(
            select(func.count(UserTenant.id)).where(
                UserTenant.tenant_id == tenant_id,
                UserTenant.is_active.is_(True),
            )
        )
        return result.scalar() or 0

    @staticmethod
    async def get_memberships_for_user(
        db: AsyncSession,
        user_id: str,
        active_only: bool = True,
    ) -> list[UserTenant]:
        query = select(UserTenant).where(UserTenant.user_id == user_id)
        if active_only:
            query = query.where(UserTenant.is_active.is_(True))
        result = await db.execute(query.order_by(UserTenant.created_at))
        return list(result.scalars().all())

    @staticmethod
    async def add_user_to_tenant(db: AsyncSession, user_id: str, tenant_id: str) -> UserTenant:
        """
        Make the user an active member of the tenant.

        A former membership row is reactivated in place; otherwise a new
        row is inserted.
        """
        result = await db.execute(
            select(UserTenant).where(
                UserTenant.user_id == user_id,
                UserTenant.tenant_id == tenant_id,
            )
        )
        membership = result.scalar_one_or_none()
        if membership is None:
            membership = UserTenant(user_id=user_id, tenant_id=tenant_id, is_active=True)
            db.add(membership)
            logger.info(f"User {user_id} added to tenant {tenant_id}")
        else:
            membership.is_active = True
            logger.info(f"User {user_id} rejoined tenant {tenant_id}")
        await db.flush()
        return membership

    @staticmethod
    async def _set_active(db: AsyncSession, user_id: str, tenant_id: str, is_active: bool) -> int:
        result = await db.execute(
            update(UserTenant)
            .where(
                UserTenant.user_id == user_id,
                UserTenant.tenant_id == tenant_id,
                UserTenant.is_active.is_(not is_active),
            )
            .values(is_active=is_active)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    @staticmethod
    async def remove_user_from_tenant(db: AsyncSession, user_id: str, tenant_id: str) -> int:
        """
        Mark the membership inactive. The row is kept.

        Returns:
            Number of rows changed
        """
        changed = await TenantMembershipStore._set_active(db, user_id, tenant_id, False)
        logger.info(f"User {user_id} removed from tenant {tenant_id} ({changed} rows)")
        return changed

    @staticmethod
    async def deactivate(db: AsyncSession, user_id: str, tenant_id: str) -> int:
        """Suspend a membership without losing its join date."""
        return await TenantMembershipStore._set_active(db, user_id, tenant_id, False)

    @staticmethod
    async def activate(db: AsyncSession, user_id: str, tenant_id: str) -> int:
        """Reinstate a suspended membership."""
        return await TenantMembershipStore._set_active(db, user_id, tenant_id, True)

    @staticmethod
    async def deactivate_all_for_user(db: AsyncSession, user_id: str) -> int:
        """Mark every active membership of the user inactive."""
        result = await db.execute(
            update(UserTenant)
            .where(UserTenant.user_id == user_id, UserTenant.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    @staticmethod
    async def list_tenant_users(
        db: AsyncSession,
        tenant_id: str,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[User], int]:
        """Active members of a tenant, oldest membership first."""
        base = (
            select(User)
            .join(UserTenant, UserTenant.user_id == User.id)
            .where(
                UserTenant.tenant_id == tenant_id,
                UserTenant.is_active.is_(True),
                User.deleted_at.is_(None),
            )
        )
        return await paginate(db, base.order_by(UserTenant.created_at), skip, limit)


# Singleton instance
membership_store = TenantMembershipStore()
