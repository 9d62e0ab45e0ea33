"""
Role registry business logic.
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    CannotDeleteSystemRoleError,
    CannotDeleteSystemRolesError,
    CannotRenameSystemRoleError,
    RoleNotFoundError,
)
from app.models.role import Role, RoleName

logger = logging.getLogger(__name__)

DEFAULT_ROLES = (
    (RoleName.SUPERADMIN, "Platform administrator with access to every tenant"),
    (RoleName.ADMIN, "Tenant administrator"),
    (RoleName.USER, "Regular tenant member"),
)


class RoleRegistry:
    """Manages the SUPERADMIN > ADMIN > USER hierarchy and custom roles."""

    @staticmethod
    async def seed_default_roles(db: AsyncSession) -> list[Role]:
        """
        Create the system roles that are missing.

        Matches on name, so re-seeding a database whose roles were created
        with other ids is a no-op.

        Returns:
            Roles created by this call
        """
        created = []
        for name, description in DEFAULT_ROLES:
            if await RoleRegistry.exists_by_name(db, name):
                continue
            role = Role(name=name, description=description, is_system=True)
            db.add(role)
            created.append(role)

        if created:
            await db.commit()
            logger.info(f"Seeded system roles: {', '.join(r.name for r in created)}")
        return created

    @staticmethod
    async def create(
        db: AsyncSession,
        name: str,
        description: str | None = None,
        is_system: bool = False,
    ) -> Role:
        """
        Create a role.

        No uniqueness check here; call exists_by_name first when duplicates
        must be rejected.
        """
        role = Role(name=name, description=description, is_system=is_system)
        db.add(role)
        await db.commit()
        logger.info(f"Role created: {name} (ID: {role.id})")
        return role

    @staticmethod
    async def exists_by_name(db: AsyncSession, name: str) -> bool:
        result = await db.execute(select(Role.id).where(Role.name == name))
        return result.first() is not None

    @staticmethod
    async def get_by_id(db: AsyncSession, role_id: str) -> Role:
        role = await db.get(Role, role_id)
        if not role:
            raise RoleNotFoundError(details={"role_id": role_id})
        return role

    @staticmethod
    async def get_by_name(db: AsyncSession, name: str) -> Role:
        result = await db.execute(select(Role).where(Role.name == name))
        role = result.scalar_one_or_none()
        if not role:
            raise RoleNotFoundError(f"Role not found: {name}", details={"name": name})
        return role

    @staticmethod
    async def list_roles(db: AsyncSession) -> list[Role]:
        result = await db.execute(select(Role).order_by(Role.created_at))
        return list(result.scalars().all())

    @staticmethod
    async def update(
        db: AsyncSession,
        role_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> Role:
        """
        Update a role.

        Raises:
            RoleNotFoundError: role does not exist
            CannotRenameSystemRoleError: new name for a system role
        """
        role = await RoleRegistry.get_by_id(db, role_id)

        if name is not None and name != role.name:
            if role.is_system:
                raise CannotRenameSystemRoleError(details={"role": role.name})
            role.name = name

        if description is not None:
            role.description = description

        await db.commit()
        logger.info(f"Role updated: {role.name} (ID: {role.id})")
        return role

    @staticmethod
    async def delete_by_id(db: AsyncSession, role_id: str) -> None:
        role = await RoleRegistry.get_by_id(db, role_id)
        if role.is_system:
            raise CannotDeleteSystemRoleError(details={"role": role.name})

        await db.delete(role)
        await db.commit()
        logger.info(f"Role deleted: {role.name} (ID: {role_id})")

    @staticmethod
    async def bulk_delete(db: AsyncSession, role_ids: list[str]) -> int:
        """
        Delete several roles at once.

        All or nothing: if any id names a system role, nothing is deleted.

        Returns:
            Number of roles deleted
        """
        if not role_ids:
            return 0

        result = await db.execute(
            select(Role.name).where(Role.id.in_(role_ids), Role.is_system.is_(True))
        )
        system_names = list(result.scalars().all())
        if system_names:
            raise CannotDeleteSystemRolesError(details={"roles": system_names})

        result = await db.execute(
            delete(Role).where(Role.id.in_(role_ids), Role.is_system.is_(False))
        )
        await db.commit()

        deleted = result.rowcount or 0
        logger.info(f"Bulk deleted {deleted} roles")
        return deleted


# Singleton instance
role_registry = RoleRegistry()
