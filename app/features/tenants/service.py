"""
Tenant business logic.

Tenant lifecycle, subscription ceilings, and the membership rules: a
non-superadmin belongs to at most one tenant at a time, a tenant never
holds more than max_users active members, and superadmins are never
members of any tenant.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import get_current_role
from app.core.exceptions import (
    CannotInviteSuperadminError,
    CannotRemoveSelfError,
    CannotRemoveSuperadminError,
    MaxUserLimitReachedError,
    NotAuthorizedError,
    SuperadminCannotJoinTenantError,
    TenantGuardException,
    TenantMaxUsersReachedError,
    TenantNotFoundError,
    UserAlreadyInTenantError,
    UserInOtherTenantError,
    UserInSameTenantError,
    UserNotFoundError,
    UserNotInTenantError,
)
from app.core.metrics import tenant_invitations_total
from app.core.query_helpers import paginate
from app.features.audit.sink import AuditAction, AuditSink
from app.features.notifications.email import EmailDispatcher
from app.features.notifications.storage import FileStore
from app.features.notifications.templates import tenant_invitation_email
from app.features.roles.service import RoleRegistry
from app.features.tenants.membership import TenantMembershipStore
from app.features.tenants.subscription import resolve_subscription
from app.models.role import RoleName
from app.models.tenant import DEFAULT_MAX_USERS, Tenant
from app.models.user import User
from app.schemas.tenant import (
    SubscriptionUpdate,
    TenantContactUpdate,
    TenantCreate,
    TenantUpdate,
)

logger = logging.getLogger(__name__)

ENTITY_TENANT = "tenant"
ENTITY_MEMBERSHIP = "user_tenant"
ENTITY_USER = "user"


@dataclass(frozen=True)
class InviteErrors:
    """Error raised for each failed invite precondition; the variants differ."""

    superadmin: type[TenantGuardException]
    other_tenant: type[TenantGuardException]
    full: type[TenantGuardException]


TENANT_INVITE = InviteErrors(
    superadmin=SuperadminCannotJoinTenantError,
    other_tenant=UserInOtherTenantError,
    full=MaxUserLimitReachedError,
)
ADMIN_INVITE = InviteErrors(
    superadmin=SuperadminCannotJoinTenantError,
    other_tenant=UserAlreadyInTenantError,
    full=MaxUserLimitReachedError,
)
DIRECT_INVITE = InviteErrors(
    superadmin=CannotInviteSuperadminError,
    other_tenant=UserInOtherTenantError,
    full=TenantMaxUsersReachedError,
)


class TenantService:
    """Tenant operations on top of the membership store and role registry."""

    def __init__(
        self,
        memberships: TenantMembershipStore,
        roles: RoleRegistry,
        email: EmailDispatcher,
        audit: AuditSink,
    ):
        self.memberships = memberships
        self.roles = roles
        self.email = email
        self.audit = audit

    # Lookups

    @staticmethod
    async def get_tenant(db: AsyncSession, tenant_id: str, for_update: bool = False) -> Tenant:
        query = select(Tenant).where(Tenant.id == tenant_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        tenant = result.scalar_one_or_none()
        if not tenant:
            raise TenantNotFoundError(details={"tenant_id": tenant_id})
        return tenant

    @staticmethod
    async def _get_user(db: AsyncSession, user_id: str) -> User:
        result = await db.execute(
            select(User).where(User.id == user_id, User.deleted_at.is_(None))
        )
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFoundError(details={"user_id": user_id})
        return user

    @staticmethod
    async def _get_user_by_email(db: AsyncSession, email: str) -> User:
        result = await db.execute(
            select(User).where(User.email == email, User.deleted_at.is_(None))
        )
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFoundError(details={"email": email})
        return user

    async def _require_tenant_admin(
        self, db: AsyncSession, actor: User, tenant_id: str
    ) -> None:
        """SUPERADMIN may act on any tenant; an ADMIN only on the tenant it belongs to."""
        if actor.has_role(RoleName.SUPERADMIN):
            return
        if not actor.has_role(RoleName.ADMIN):
            raise NotAuthorizedError(details={"user_id": actor.id, "role": actor.role_name})
        if not await self.memberships.is_user_in_tenant(db, actor.id, tenant_id):
            raise UserNotInTenantError(
                details={"user_id": actor.id, "tenant_id": tenant_id}
            )

    # Lifecycle

    async def create_tenant(self, db: AsyncSession, actor_id: str, data: TenantCreate) -> Tenant:
        """
        Create a tenant with the default ceiling and no plan.

        Raises:
            NotAuthorizedError: actor is not SUPERADMIN
        """
        actor = await self._get_user(db, actor_id)
        if not actor.has_role(RoleName.SUPERADMIN):
            raise NotAuthorizedError("Only a superadmin can create tenants")

        tenant = Tenant(
            name=data.name,
            description=data.description,
            contact_email=data.contact_email,
            contact_phone=data.contact_phone,
            max_users=DEFAULT_MAX_USERS,
            subscription_plan="",
            is_active=True,
        )
        db.add(tenant)
        await db.commit()

        logger.info(f"Tenant created: {tenant.name} (ID: {tenant.id})")
        self.audit.log_activity(
            actor.id, tenant.id, ENTITY_TENANT, tenant.id, AuditAction.CREATE,
            new_value={"name": tenant.name},
        )
        return tenant

    async def list_tenants(
        self,
        db: AsyncSession,
        search: str | None = None,
        is_active: bool | None = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[Tenant], int]:
        """Tenants filtered by a case-insensitive name search and status."""
        query = select(Tenant)
        if search:
            query = query.where(Tenant.name.ilike(f"%{search}%"))
        if is_active is not None:
            query = query.where(Tenant.is_active.is_(is_active))
        return await paginate(db, query.order_by(Tenant.created_at.desc()), skip, limit)

    async def get_tenant_details(
        self, db: AsyncSession, tenant_id: str, actor_id: str
    ) -> tuple[Tenant, int]:
        """
        Tenant with its active member count.

        Raises:
            UserNotInTenantError: non-superadmin actor is not a member
        """
        tenant = await self.get_tenant(db, tenant_id)
        actor = await self._get_user(db, actor_id)
        await self._require_tenant_admin(db, actor, tenant_id)
        user_count = await self.memberships.count_active_users(db, tenant_id)
        return tenant, user_count

    async def update_tenant(
        self, db: AsyncSession, tenant_id: str, actor_id: str, data: TenantUpdate
    ) -> Tenant:
        tenant = await self.get_tenant(db, tenant_id)
        actor = await self._get_user(db, actor_id)
        await self._require_tenant_admin(db, actor, tenant_id)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        old = {field: getattr(tenant, field) for field in changes}
        for field, value in changes.items():
            setattr(tenant, field, value)
        await db.commit()

        logger.info(f"Tenant updated: {tenant.id} ({', '.join(changes) or 'no changes'})")
        self.audit.log_activity(
            actor.id, tenant.id, ENTITY_TENANT, tenant.id, AuditAction.UPDATE,
            old_value=old, new_value=changes,
        )
        return tenant

    async def update_tenant_contact(
        self, db: AsyncSession, tenant_id: str, actor_id: str, data: TenantContactUpdate
    ) -> Tenant:
        tenant = await self.get_tenant(db, tenant_id)
        actor = await self._get_user(db, actor_id)
        await self._require_tenant_admin(db, actor, tenant_id)

        old = {"contact_email": tenant.contact_email, "contact_phone": tenant.contact_phone}
        if data.contact_email is not None:
            tenant.contact_email = data.contact_email
        if data.contact_phone is not None:
            tenant.contact_phone = data.contact_phone
        await db.commit()

        self.audit.log_activity(
            actor.id, tenant.id, ENTITY_TENANT, tenant.id, AuditAction.UPDATE,
            old_value=old,
            new_value={"contact_email": tenant.contact_email, "contact_phone": tenant.contact_phone},
        )
        return tenant

    async def update_tenant_logo(
        self,
        db: AsyncSession,
        tenant_id: str,
        actor_id: str,
        content: bytes,
        filename: str,
        store: FileStore,
    ) -> Tenant:
        """Upload a new logo and keep its URL; the previous file is removed best-effort."""
        tenant = await self.get_tenant(db, tenant_id)
        actor = await self._get_user(db, actor_id)
        await self._require_tenant_admin(db, actor, tenant_id)

        previous = tenant.logo_url
        tenant.logo_url = await store.upload(content, "logos", filename)
        await db.commit()

        if previous:
            try:
                await store.delete(previous)
            except OSError as e:
                logger.warning(f"Could not delete previous logo {previous}: {e}")

        self.audit.log_activity(
            actor.id, tenant.id, ENTITY_TENANT, tenant.id, AuditAction.UPDATE,
            old_value={"logo_url": previous}, new_value={"logo_url": tenant.logo_url},
        )
        return tenant

    async def update_subscription(
        self, db: AsyncSession, tenant_id: str, data: SubscriptionUpdate
    ) -> Tenant:
        """
        Change a tenant's plan.

        The caller's role is read from the request context.

        Raises:
            NotAuthorizedError: caller is not SUPERADMIN
            InvalidSubscriptionPlanError: unknown plan
            InvalidDateError: date not in YYYY-MM-DD form
        """
        if get_current_role() != RoleName.SUPERADMIN:
            raise NotAuthorizedError("Only a superadmin can change subscriptions")

        tenant = await self.get_tenant(db, tenant_id)
        terms = resolve_subscription(data.plan, data.max_users, data.start_date, data.end_date)

        old = {
            "subscription_plan": tenant.subscription_plan,
            "max_users": tenant.max_users,
        }
        tenant.subscription_plan = terms.plan
        tenant.max_users = terms.max_users
        tenant.subscription_start = terms.start
        tenant.subscription_end = terms.end
        await db.commit()

        logger.info(
            f"Tenant {tenant.id} subscribed to {terms.plan} (max_users={terms.max_users})"
        )
        self.audit.log_activity(
            None, tenant.id, ENTITY_TENANT, tenant.id, AuditAction.UPDATE,
            old_value=old,
            new_value={
                "subscription_plan": terms.plan,
                "max_users": terms.max_users,
                "subscription_start": terms.start,
                "subscription_end": terms.end,
            },
        )
        return tenant

    async def delete_tenant(self, db: AsyncSession, tenant_id: str, actor_id: str | None = None) -> None:
        """Soft delete. Memberships are left as they are."""
        tenant = await self.get_tenant(db, tenant_id)
        tenant.is_active = False
        await db.commit()

        logger.info(f"Tenant deactivated: {tenant.id}")
        self.audit.log_activity(
            actor_id, tenant.id, ENTITY_TENANT, tenant.id, AuditAction.DELETE,
            old_value={"is_active": True}, new_value={"is_active": False},
        )

    # Membership

    async def _invite(
        self,
        db: AsyncSession,
        tenant_id: str,
        user: User,
        actor_id: str | None,
        errors: InviteErrors,
    ) -> None:
        """
        Add user to tenant once every invariant holds.

        The tenant row is locked so concurrent invites cannot both pass the
        capacity check.
        """
        try:
            tenant = await self.get_tenant(db, tenant_id, for_update=True)
            if not tenant.is_active:
                raise TenantNotFoundError("Tenant is inactive", details={"tenant_id": tenant_id})

            if user.has_role(RoleName.SUPERADMIN):
                raise errors.superadmin(details={"user_id": user.id})

            active = await self.memberships.get_active_tenants_for_user(db, user.id)
            if any(t.id == tenant_id for t in active):
                raise UserInSameTenantError(details={"user_id": user.id, "tenant_id": tenant_id})
            if active:
                raise errors.other_tenant(
                    details={"user_id": user.id, "tenant_id": active[0].id}
                )

            count = await self.memberships.count_active_users(db, tenant_id)
            if count >= tenant.max_users:
                raise errors.full(details={"tenant_id": tenant_id, "max_users": tenant.max_users})

            await self.memberships.add_user_to_tenant(db, user.id, tenant_id)
            await db.commit()
        except TenantGuardException as e:
            tenant_invitations_total.labels(outcome=e.error_code).inc()
            raise

        tenant_invitations_total.labels(outcome="success").inc()
        logger.info(f"User {user.id} invited to tenant {tenant_id}")

        self.email.dispatch(
            user.email,
            f"Invitation to {tenant.name}",
            tenant_invitation_email(user.full_name, tenant.name),
        )
        self.audit.log_activity(
            actor_id, tenant_id, ENTITY_MEMBERSHIP, user.id, AuditAction.INVITE,
            new_value={"user_id": user.id, "tenant_id": tenant_id},
        )

    async def invite_user_to_tenant(
        self, db: AsyncSession, tenant_id: str, email: str, actor_id: str | None = None
    ) -> None:
        """Invite an existing user, looked up by email."""
        user = await self._get_user_by_email(db, email)
        await self._invite(db, tenant_id, user, actor_id, TENANT_INVITE)

    async def admin_invite_user(
        self, db: AsyncSession, admin_id: str, tenant_id: str, email: str
    ) -> None:
        """
        Invite by an ADMIN of the tenant.

        Raises:
            UserNotInTenantError: admin is not an active member of the tenant
        """
        admin = await self._get_user(db, admin_id)
        await self._require_tenant_admin(db, admin, tenant_id)
        user = await self._get_user_by_email(db, email)
        await self._invite(db, tenant_id, user, admin.id, ADMIN_INVITE)

    async def superadmin_invite_user(
        self, db: AsyncSession, tenant_id: str, user_id: str, superadmin_id: str
    ) -> None:
        """Direct invite by user id."""
        user = await self._get_user(db, user_id)
        await self._invite(db, tenant_id, user, superadmin_id, DIRECT_INVITE)

    async def invite_user_to_current_tenant(
        self, db: AsyncSession, actor_id: str, email: str
    ) -> None:
        """Invite into the actor's own tenant."""
        tenant = await self.get_current_tenant(db, actor_id)
        actor = await self._get_user(db, actor_id)
        await self._require_tenant_admin(db, actor, tenant.id)
        user = await self._get_user_by_email(db, email)
        await self._invite(db, tenant.id, user, actor_id, DIRECT_INVITE)

    async def _change_member_role(
        self,
        db: AsyncSession,
        tenant_id: str,
        user_id: str,
        actor_id: str,
        role_name: str,
    ) -> User:
        await self.get_tenant(db, tenant_id)
        actor = await self._get_user(db, actor_id)
        await self._require_tenant_admin(db, actor, tenant_id)

        user = await self._get_user(db, user_id)
        if not await self.memberships.is_user_in_tenant(db, user.id, tenant_id):
            raise UserNotInTenantError(details={"user_id": user.id, "tenant_id": tenant_id})
        if user.has_role(RoleName.SUPERADMIN):
            raise SuperadminCannotJoinTenantError(details={"user_id": user.id})

        old_role = user.role_name
        role = await self.roles.get_by_name(db, role_name)
        user.role = role
        await db.commit()

        logger.info(f"User {user.id} role changed {old_role} -> {role.name} in tenant {tenant_id}")
        self.audit.log_activity(
            actor.id, tenant_id, ENTITY_USER, user.id, AuditAction.ROLE_CHANGE,
            old_value={"role": old_role}, new_value={"role": role.name},
        )
        return user

    async def promote_to_admin(
        self, db: AsyncSession, tenant_id: str, user_id: str, actor_id: str
    ) -> User:
        """
        Give an active member the ADMIN role.

        Raises:
            UserNotInTenantError: target is not an active member
            SuperadminCannotJoinTenantError: target is a superadmin
        """
        return await self._change_member_role(db, tenant_id, user_id, actor_id, RoleName.ADMIN)

    async def demote_from_admin(
        self, db: AsyncSession, tenant_id: str, user_id: str, actor_id: str
    ) -> User:
        """Give an active member the USER role; same checks as promotion."""
        return await self._change_member_role(db, tenant_id, user_id, actor_id, RoleName.USER)

    async def remove_user_from_tenant(
        self, db: AsyncSession, tenant_id: str, user_id: str, actor_id: str
    ) -> None:
        """
        Mark a membership inactive.

        Raises:
            UserNotInTenantError: actor (unless superadmin) or target not a member
            CannotRemoveSelfError: actor and target are the same user
            CannotRemoveSuperadminError: target is a superadmin
        """
        await self.get_tenant(db, tenant_id)
        actor = await self._get_user(db, actor_id)
        await self._require_tenant_admin(db, actor, tenant_id)

        if not await self.memberships.is_user_in_tenant(db, user_id, tenant_id):
            raise UserNotInTenantError(details={"user_id": user_id, "tenant_id": tenant_id})
        if user_id == actor.id:
            raise CannotRemoveSelfError()

        user = await self._get_user(db, user_id)
        if user.has_role(RoleName.SUPERADMIN):
            raise CannotRemoveSuperadminError(details={"user_id": user.id})

        await self.memberships.remove_user_from_tenant(db, user.id, tenant_id)
        await db.commit()

        self.audit.log_activity(
            actor.id, tenant_id, ENTITY_MEMBERSHIP, user.id, AuditAction.REMOVE,
            old_value={"is_active": True}, new_value={"is_active": False},
        )

    async def remove_user_from_all_tenants(
        self, db: AsyncSession, user_id: str, actor_id: str | None = None
    ) -> int:
        """Deactivate every active membership of a user."""
        user = await self._get_user(db, user_id)
        changed = await self.memberships.deactivate_all_for_user(db, user.id)
        await db.commit()

        logger.info(f"User {user.id} removed from {changed} tenants")
        if changed:
            self.audit.log_activity(
                actor_id, None, ENTITY_MEMBERSHIP, user.id, AuditAction.REMOVE,
                new_value={"memberships_deactivated": changed},
            )
        return changed

    async def remove_superadmin_from_all_tenants(self, db: AsyncSession) -> int:
        """
        Repair pass: deactivate any membership held by a SUPERADMIN.

        Returns:
            Number of memberships deactivated
        """
        role = await self.roles.get_by_name(db, RoleName.SUPERADMIN)
        result = await db.execute(select(User.id).where(User.role_id == role.id))
        total = 0
        for superadmin_id in result.scalars().all():
            total += await self.memberships.deactivate_all_for_user(db, superadmin_id)
        await db.commit()

        if total:
            logger.warning(f"Deactivated {total} superadmin tenant memberships")
        return total

    async def get_tenant_users(
        self,
        db: AsyncSession,
        tenant_id: str,
        skip: int = 0,
        limit: int = 10,
        actor_id: str | None = None,
    ) -> tuple[list[User], int]:
        """Active members of a tenant; an actor, when given, must be allowed to manage it."""
        await self.get_tenant(db, tenant_id)
        if actor_id:
            actor = await self._get_user(db, actor_id)
            await self._require_tenant_admin(db, actor, tenant_id)
        return await self.memberships.list_tenant_users(db, tenant_id, skip, limit)

    # Current tenant

    async def get_current_tenant(self, db: AsyncSession, user_id: str) -> Tenant:
        """
        The user's sole active tenant.

        Raises:
            UserNotInTenantError: user has no active membership
        """
        user = await self._get_user(db, user_id)
        tenants = await self.memberships.get_active_tenants_for_user(db, user.id)
        if not tenants:
            raise UserNotInTenantError("User does not belong to any tenant")
        if len(tenants) > 1:
            logger.error(f"User {user.id} holds {len(tenants)} active memberships")
        return tenants[0]

    async def get_current_tenant_users(
        self, db: AsyncSession, user_id: str, skip: int = 0, limit: int = 10
    ) -> tuple[list[User], int]:
        tenant = await self.get_current_tenant(db, user_id)
        return await self.memberships.list_tenant_users(db, tenant.id, skip, limit)

    async def update_current_tenant(
        self, db: AsyncSession, user_id: str, data: TenantUpdate
    ) -> Tenant:
        tenant = await self.get_current_tenant(db, user_id)
        return await self.update_tenant(db, tenant.id, user_id, data)

    async def update_current_tenant_contact(
        self, db: AsyncSession, user_id: str, data: TenantContactUpdate
    ) -> Tenant:
        tenant = await self.get_current_tenant(db, user_id)
        return await self.update_tenant_contact(db, tenant.id, user_id, data)

    async def update_current_tenant_logo(
        self,
        db: AsyncSession,
        user_id: str,
        content: bytes,
        filename: str,
        store: FileStore,
    ) -> Tenant:
        tenant = await self.get_current_tenant(db, user_id)
        return await self.update_tenant_logo(db, tenant.id, user_id, content, filename, store)

    async def remove_user_from_current_tenant(
        self, db: AsyncSession, user_id: str, actor_id: str
    ) -> None:
        """Remove a member from the actor's own tenant; same guards as remove_user_from_tenant."""
        tenant = await self.get_current_tenant(db, actor_id)
        await self.remove_user_from_tenant(db, tenant.id, user_id, actor_id)

    async def update_current_subscription(
        self, db: AsyncSession, user_id: str, data: SubscriptionUpdate
    ) -> Tenant:
        """
        Change the plan of the caller's own tenant.

        The caller must administer the tenant, and update_subscription still
        requires a SUPERADMIN role in the request context.
        """
        tenant = await self.get_current_tenant(db, user_id)
        actor = await self._get_user(db, user_id)
        await self._require_tenant_admin(db, actor, tenant.id)
        return await self.update_subscription(db, tenant.id, data)
