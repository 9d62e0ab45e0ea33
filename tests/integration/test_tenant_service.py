"""
Integration tests for tenant service.

Covers tenant lifecycle, the membership invariants enforced on invite,
member role changes, removal guards and subscription changes.
"""

import pytest
import pytest_asyncio
from sqlalchemy import select

from app.core.context import clear_request_context, set_request_context
from app.core.exceptions import (
    CannotInviteSuperadminError,
    CannotRemoveSelfError,
    CannotRemoveSuperadminError,
    InvalidSubscriptionPlanError,
    MaxUserLimitReachedError,
    NotAuthorizedError,
    SuperadminCannotJoinTenantError,
    TenantMaxUsersReachedError,
    TenantNotFoundError,
    UserAlreadyInTenantError,
    UserInOtherTenantError,
    UserInSameTenantError,
    UserNotFoundError,
    UserNotInTenantError,
    ValidationError,
)
from app.core.timeutils import utc_now
from app.features.audit.sink import AuditAction
from app.models import RoleName, Tenant, User
from app.schemas.tenant import SubscriptionUpdate, TenantContactUpdate, TenantCreate, TenantUpdate
from tests.factories import MembershipFactory, TenantFactory, UserFactory


@pytest.fixture
def user_role(roles):
    return roles[RoleName.USER]


@pytest_asyncio.fixture
async def tenant_admin(db_session, roles, test_tenant):
    """ADMIN with an active membership in test_tenant."""
    admin = await UserFactory.create(db_session, roles[RoleName.ADMIN])
    await MembershipFactory.create(db_session, admin, test_tenant)
    return admin


@pytest.mark.integration
class TestTenantLifecycle:

    async def test_create_tenant(self, tenant_service, db_session, superadmin, audit):
        tenant = await tenant_service.create_tenant(
            db_session,
            superadmin.id,
            TenantCreate(name="Acme", description="Widgets", contact_email="ops@acme.io"),
        )

        assert tenant.id is not None
        assert tenant.max_users == 15
        assert tenant.subscription_plan == ""
        assert tenant.is_active is True
        assert audit.actions() == [AuditAction.CREATE]

    async def test_only_superadmin_creates(self, tenant_service, db_session, admin):
        with pytest.raises(NotAuthorizedError):
            await tenant_service.create_tenant(db_session, admin.id, TenantCreate(name="Acme"))

    async def test_list_tenants_filters(self, tenant_service, db_session):
        await TenantFactory.create(db_session, name="Alpha Labs")
        await TenantFactory.create(db_session, name="Beta Labs", is_active=False)
        await TenantFactory.create(db_session, name="Gamma Corp")

        labs, total = await tenant_service.list_tenants(db_session, search="labs")
        active_labs, _ = await tenant_service.list_tenants(db_session, search="LABS", is_active=True)

        assert total == 2
        assert {t.name for t in labs} == {"Alpha Labs", "Beta Labs"}
        assert [t.name for t in active_labs] == ["Alpha Labs"]

    async def test_get_missing_tenant(self, tenant_service, db_session):
        with pytest.raises(TenantNotFoundError):
            await tenant_service.get_tenant(db_session, "00000000-0000-0000-0000-000000000000")

    async def test_details_for_admin_member(self, tenant_service, db_session, test_tenant, tenant_admin):
        tenant, count = await tenant_service.get_tenant_details(db_session, test_tenant.id, tenant_admin.id)

        assert tenant.id == test_tenant.id
        assert count == 1

    async def test_details_refused_to_outside_admin(self, tenant_service, db_session, test_tenant, admin):
        with pytest.raises(UserNotInTenantError):
            await tenant_service.get_tenant_details(db_session, test_tenant.id, admin.id)

    async def test_update_tenant(self, tenant_service, db_session, test_tenant, tenant_admin, audit):
        tenant = await tenant_service.update_tenant(
            db_session, test_tenant.id, tenant_admin.id, TenantUpdate(name="Renamed")
        )

        assert tenant.name == "Renamed"
        assert tenant.description == test_tenant.description
        assert audit.records[-1]["new_value"] == {"name": "Renamed"}

    async def test_plain_user_cannot_update(self, tenant_service, db_session, test_tenant, test_user):
        await MembershipFactory.create(db_session, test_user, test_tenant)

        with pytest.raises(NotAuthorizedError):
            await tenant_service.update_tenant(
                db_session, test_tenant.id, test_user.id, TenantUpdate(name="Mine")
            )

    async def test_update_contact(self, tenant_service, db_session, test_tenant, superadmin):
        tenant = await tenant_service.update_tenant_contact(
            db_session, test_tenant.id, superadmin.id, TenantContactUpdate(contact_phone="+1 555 0100")
        )

        assert tenant.contact_phone == "+1 555 0100"
        assert tenant.contact_email == test_tenant.contact_email

    async def test_update_logo_replaces_file(
        self, tenant_service, db_session, test_tenant, superadmin, file_store
    ):
        first = await tenant_service.update_tenant_logo(
            db_session, test_tenant.id, superadmin.id, b"png-1", "logo.png", file_store
        )
        first_url = first.logo_url
        second = await tenant_service.update_tenant_logo(
            db_session, test_tenant.id, superadmin.id, b"png-2", "logo.PNG", file_store
        )

        assert first_url.startswith("/uploads/logos/")
        assert second.logo_url != first_url
        assert not (file_store.base_path / first_url.removeprefix("/uploads/")).exists()

    async def test_update_logo_rejects_non_image(
        self, tenant_service, db_session, test_tenant, superadmin, file_store
    ):
        with pytest.raises(ValidationError):
            await tenant_service.update_tenant_logo(
                db_session, test_tenant.id, superadmin.id, b"#!", "logo.sh", file_store
            )

    async def test_delete_is_soft(self, tenant_service, db_session, test_tenant):
        await tenant_service.delete_tenant(db_session, test_tenant.id)

        tenant = await tenant_service.get_tenant(db_session, test_tenant.id)
        assert tenant.is_active is False


@pytest.mark.integration
class TestInvitations:
    """A non-superadmin belongs to at most one tenant; tenants never exceed max_users."""

    async def test_invite_by_email(
        self, tenant_service, db_session, test_tenant, test_user, superadmin,
        queue, email_sender, audit,
    ):
        await tenant_service.invite_user_to_tenant(
            db_session, test_tenant.id, test_user.email, superadmin.id
        )
        await queue.drain()

        assert await tenant_service.memberships.is_user_in_tenant(db_session, test_user.id, test_tenant.id)
        [invitation] = email_sender.to(test_user.email)
        assert invitation.subject == "Invitation to Test Corporation"
        assert audit.records[-1]["action"] == AuditAction.INVITE
        assert audit.records[-1]["user_id"] == superadmin.id

    async def test_single_tenant_and_capacity(self, tenant_service, db_session, user_role):
        """Invite to A (max 1), then to B fails, then a second user to A fails."""
        tenant_a = await TenantFactory.create(db_session, name="A", max_users=1)
        tenant_b = await TenantFactory.create(db_session, name="B")
        first = await UserFactory.create(db_session, user_role)
        second = await UserFactory.create(db_session, user_role)

        await tenant_service.invite_user_to_tenant(db_session, tenant_a.id, first.email)

        with pytest.raises(UserInOtherTenantError):
            await tenant_service.invite_user_to_tenant(db_session, tenant_b.id, first.email)
        with pytest.raises(MaxUserLimitReachedError):
            await tenant_service.invite_user_to_tenant(db_session, tenant_a.id, second.email)

        assert await tenant_service.memberships.count_active_users(db_session, tenant_a.id) == 1
        assert await tenant_service.memberships.count_active_users(db_session, tenant_b.id) == 0

    async def test_reinvite_same_tenant(self, tenant_service, db_session, test_tenant, test_user):
        await tenant_service.invite_user_to_tenant(db_session, test_tenant.id, test_user.email)

        with pytest.raises(UserInSameTenantError):
            await tenant_service.invite_user_to_tenant(db_session, test_tenant.id, test_user.email)

    async def test_removed_member_can_join_elsewhere(
        self, tenant_service, db_session, test_tenant, test_user, superadmin
    ):
        other = await TenantFactory.create(db_session)
        await tenant_service.invite_user_to_tenant(db_session, test_tenant.id, test_user.email)
        await tenant_service.remove_user_from_tenant(db_session, test_tenant.id, test_user.id, superadmin.id)

        await tenant_service.invite_user_to_tenant(db_session, other.id, test_user.email)

        current = await tenant_service.get_current_tenant(db_session, test_user.id)
        assert current.id == other.id

    async def test_reinvite_after_removal_keeps_one_membership(
        self, tenant_service, db_session, test_tenant, test_user, superadmin
    ):
        for _ in range(2):
            await tenant_service.invite_user_to_tenant(db_session, test_tenant.id, test_user.email)
            await tenant_service.remove_user_from_tenant(
                db_session, test_tenant.id, test_user.id, superadmin.id
            )

        assert await tenant_service.memberships.activate(db_session, test_user.id, test_tenant.id) == 1
        rows = await tenant_service.memberships.get_memberships_for_user(
            db_session, test_user.id, active_only=False
        )
        assert len(rows) == 1
        assert await tenant_service.memberships.count_active_users(db_session, test_tenant.id) == 1

    async def test_superadmin_cannot_join(self, tenant_service, db_session, test_tenant, superadmin):
        with pytest.raises(SuperadminCannotJoinTenantError):
            await tenant_service.invite_user_to_tenant(db_session, test_tenant.id, superadmin.email)

    async def test_unknown_email(self, tenant_service, db_session, test_tenant):
        with pytest.raises(UserNotFoundError):
            await tenant_service.invite_user_to_tenant(db_session, test_tenant.id, "ghost@example.com")

    async def test_soft_deleted_user_is_unknown(
        self, tenant_service, db_session, test_tenant, user_role
    ):
        gone = await UserFactory.create(db_session, user_role, deleted_at=utc_now())

        with pytest.raises(UserNotFoundError):
            await tenant_service.invite_user_to_tenant(db_session, test_tenant.id, gone.email)

    async def test_inactive_tenant(self, tenant_service, db_session, test_user):
        closed = await TenantFactory.create(db_session, is_active=False)

        with pytest.raises(TenantNotFoundError):
            await tenant_service.invite_user_to_tenant(db_session, closed.id, test_user.email)

    async def test_admin_invite_reports_other_tenant_as_already_in_tenant(
        self, tenant_service, db_session, test_tenant, tenant_admin, test_user
    ):
        other = await TenantFactory.create(db_session)
        await MembershipFactory.create(db_session, test_user, other)

        with pytest.raises(UserAlreadyInTenantError):
            await tenant_service.admin_invite_user(
                db_session, tenant_admin.id, test_tenant.id, test_user.email
            )

    async def test_admin_invite_requires_membership(
        self, tenant_service, db_session, test_tenant, admin, test_user
    ):
        with pytest.raises(UserNotInTenantError):
            await tenant_service.admin_invite_user(db_session, admin.id, test_tenant.id, test_user.email)

    async def test_admin_invite(self, tenant_service, db_session, test_tenant, tenant_admin, test_user):
        await tenant_service.admin_invite_user(db_session, tenant_admin.id, test_tenant.id, test_user.email)

        assert await tenant_service.memberships.count_active_users(db_session, test_tenant.id) == 2

    async def test_direct_invite_errors(self, tenant_service, db_session, roles, superadmin, user_role):
        full = await TenantFactory.create(db_session, max_users=0)
        other_superadmin = await UserFactory.create(db_session, roles[RoleName.SUPERADMIN])
        member = await UserFactory.create(db_session, user_role)

        with pytest.raises(CannotInviteSuperadminError):
            await tenant_service.superadmin_invite_user(db_session, full.id, other_superadmin.id, superadmin.id)
        with pytest.raises(TenantMaxUsersReachedError):
            await tenant_service.superadmin_invite_user(db_session, full.id, member.id, superadmin.id)

    async def test_invite_to_current_tenant(
        self, tenant_service, db_session, test_tenant, tenant_admin, test_user
    ):
        await tenant_service.invite_user_to_current_tenant(db_session, tenant_admin.id, test_user.email)

        users, total = await tenant_service.get_current_tenant_users(db_session, tenant_admin.id)
        assert total == 2
        assert test_user.id in {u.id for u in users}

    async def test_plain_member_cannot_invite_to_current_tenant(
        self, tenant_service, db_session, test_tenant, test_user, user_role
    ):
        await MembershipFactory.create(db_session, test_user, test_tenant)
        outsider = await UserFactory.create(db_session, user_role)

        with pytest.raises(NotAuthorizedError):
            await tenant_service.invite_user_to_current_tenant(db_session, test_user.id, outsider.email)


@pytest.mark.integration
class TestMemberRoles:

    async def test_promote_and_demote(
        self, tenant_service, db_session, test_tenant, tenant_admin, test_user, audit
    ):
        await MembershipFactory.create(db_session, test_user, test_tenant)

        promoted = await tenant_service.promote_to_admin(db_session, test_tenant.id, test_user.id, tenant_admin.id)
        assert promoted.role_name == RoleName.ADMIN

        demoted = await tenant_service.demote_from_admin(db_session, test_tenant.id, test_user.id, tenant_admin.id)
        assert demoted.role_name == RoleName.USER

        assert audit.actions() == [AuditAction.ROLE_CHANGE, AuditAction.ROLE_CHANGE]
        assert audit.records[0]["new_value"] == {"role": RoleName.ADMIN}

    async def test_target_must_be_member(self, tenant_service, db_session, test_tenant, tenant_admin, test_user):
        with pytest.raises(UserNotInTenantError):
            await tenant_service.promote_to_admin(db_session, test_tenant.id, test_user.id, tenant_admin.id)

    async def test_superadmin_member_cannot_be_demoted(
        self, tenant_service, db_session, test_tenant, tenant_admin, superadmin
    ):
        """A superadmin membership inserted directly is still refused."""
        await tenant_service.memberships.add_user_to_tenant(db_session, superadmin.id, test_tenant.id)
        await db_session.commit()

        with pytest.raises(SuperadminCannotJoinTenantError):
            await tenant_service.demote_from_admin(db_session, test_tenant.id, superadmin.id, tenant_admin.id)

    async def test_outside_admin_cannot_promote(
        self, tenant_service, db_session, test_tenant, admin, test_user
    ):
        await MembershipFactory.create(db_session, test_user, test_tenant)

        with pytest.raises(UserNotInTenantError):
            await tenant_service.promote_to_admin(db_session, test_tenant.id, test_user.id, admin.id)

    async def test_member_cannot_promote(self, tenant_service, db_session, test_tenant, test_user, user_role):
        peer = await UserFactory.create(db_session, user_role)
        await MembershipFactory.create(db_session, test_user, test_tenant)
        await MembershipFactory.create(db_session, peer, test_tenant)

        with pytest.raises(NotAuthorizedError):
            await tenant_service.promote_to_admin(db_session, test_tenant.id, peer.id, test_user.id)


@pytest.mark.integration
class TestRemoval:

    async def test_remove_member(self, tenant_service, db_session, test_tenant, tenant_admin, test_user, audit):
        await MembershipFactory.create(db_session, test_user, test_tenant)

        await tenant_service.remove_user_from_tenant(db_session, test_tenant.id, test_user.id, tenant_admin.id)

        assert not await tenant_service.memberships.is_user_in_tenant(db_session, test_user.id, test_tenant.id)
        assert audit.actions() == [AuditAction.REMOVE]

    async def test_cannot_remove_self(self, tenant_service, db_session, test_tenant, tenant_admin):
        with pytest.raises(CannotRemoveSelfError):
            await tenant_service.remove_user_from_tenant(
                db_session, test_tenant.id, tenant_admin.id, tenant_admin.id
            )

    async def test_cannot_remove_superadmin(
        self, tenant_service, db_session, test_tenant, tenant_admin, superadmin
    ):
        await MembershipFactory.create(db_session, superadmin, test_tenant)

        with pytest.raises(CannotRemoveSuperadminError):
            await tenant_service.remove_user_from_tenant(
                db_session, test_tenant.id, superadmin.id, tenant_admin.id
            )

    async def test_cannot_remove_non_member(
        self, tenant_service, db_session, test_tenant, tenant_admin, test_user
    ):
        with pytest.raises(UserNotInTenantError):
            await tenant_service.remove_user_from_tenant(
                db_session, test_tenant.id, test_user.id, tenant_admin.id
            )

    async def test_remove_from_all_tenants(self, tenant_service, db_session, test_user):
        for _ in range(2):
            await MembershipFactory.create(db_session, test_user, await TenantFactory.create(db_session))

        assert await tenant_service.remove_user_from_all_tenants(db_session, test_user.id) == 2
        with pytest.raises(UserNotInTenantError):
            await tenant_service.get_current_tenant(db_session, test_user.id)

    async def test_remove_superadmins_repair_pass(
        self, tenant_service, db_session, test_tenant, superadmin, test_user
    ):
        await MembershipFactory.create(db_session, superadmin, test_tenant)
        await MembershipFactory.create(db_session, test_user, test_tenant)

        assert await tenant_service.remove_superadmin_from_all_tenants(db_session) == 1
        assert await tenant_service.memberships.count_active_users(db_session, test_tenant.id) == 1


@pytest.mark.integration
class TestSubscription:

    async def test_superadmin_changes_plan(self, tenant_service, db_session, test_tenant, audit):
        set_request_context(role=RoleName.SUPERADMIN)

        tenant = await tenant_service.update_subscription(
            db_session, test_tenant.id, SubscriptionUpdate(plan="Basic", start_date="2025-01-01")
        )

        assert tenant.subscription_plan == "Basic"
        assert tenant.max_users == 50
        assert tenant.subscription_end.year == 2026
        assert audit.records[-1]["old_value"] == {"subscription_plan": "", "max_users": 15}

    async def test_explicit_max_users(self, tenant_service, db_session, test_tenant):
        set_request_context(role=RoleName.SUPERADMIN)

        tenant = await tenant_service.update_subscription(
            db_session, test_tenant.id, SubscriptionUpdate(plan="Enterprise", max_users=20)
        )

        assert tenant.max_users == 20

    @pytest.mark.parametrize("role", [None, RoleName.ADMIN, RoleName.USER])
    async def test_other_roles_refused(self, tenant_service, db_session, test_tenant, role):
        clear_request_context()
        set_request_context(role=role)

        with pytest.raises(NotAuthorizedError):
            await tenant_service.update_subscription(
                db_session, test_tenant.id, SubscriptionUpdate(plan="Basic")
            )

    async def test_unknown_plan(self, tenant_service, db_session, test_tenant):
        set_request_context(role=RoleName.SUPERADMIN)

        with pytest.raises(InvalidSubscriptionPlanError):
            await tenant_service.update_subscription(
                db_session, test_tenant.id, SubscriptionUpdate(plan="Gold")
            )

        result = await db_session.execute(select(Tenant.subscription_plan).where(Tenant.id == test_tenant.id))
        assert result.scalar_one() == ""


@pytest.mark.integration
class TestCurrentTenant:

    async def test_no_membership(self, tenant_service, db_session, test_user):
        with pytest.raises(UserNotInTenantError):
            await tenant_service.get_current_tenant(db_session, test_user.id)

    async def test_update_current_tenant(self, tenant_service, db_session, test_tenant, tenant_admin):
        tenant = await tenant_service.update_current_tenant(
            db_session, tenant_admin.id, TenantUpdate(description="New description")
        )

        assert tenant.id == test_tenant.id
        assert tenant.description == "New description"

    async def test_tenant_users_listing_requires_admin(
        self, tenant_service, db_session, test_tenant, test_user
    ):
        await MembershipFactory.create(db_session, test_user, test_tenant)

        with pytest.raises(NotAuthorizedError):
            await tenant_service.get_tenant_users(db_session, test_tenant.id, actor_id=test_user.id)

        users, total = await tenant_service.get_tenant_users(db_session, test_tenant.id)
        assert total == 1
        assert isinstance(users[0], User)

    async def test_remove_user_from_current_tenant(
        self, tenant_service, db_session, test_tenant, tenant_admin, test_user, audit
    ):
        await MembershipFactory.create(db_session, test_user, test_tenant)

        await tenant_service.remove_user_from_current_tenant(db_session, test_user.id, tenant_admin.id)

        assert not await tenant_service.memberships.is_user_in_tenant(db_session, test_user.id, test_tenant.id)
        assert audit.records[-1]["tenant_id"] == test_tenant.id

    async def test_remove_from_current_tenant_without_membership(
        self, tenant_service, db_session, admin, test_user
    ):
        with pytest.raises(UserNotInTenantError):
            await tenant_service.remove_user_from_current_tenant(db_session, test_user.id, admin.id)

    async def test_current_subscription_still_needs_superadmin_role(
        self, tenant_service, db_session, tenant_admin
    ):
        clear_request_context()
        set_request_context(role=RoleName.ADMIN)

        with pytest.raises(NotAuthorizedError):
            await tenant_service.update_current_subscription(
                db_session, tenant_admin.id, SubscriptionUpdate(plan="Premium")
            )

    async def test_update_current_subscription(
        self, tenant_service, db_session, test_tenant, tenant_admin
    ):
        set_request_context(role=RoleName.SUPERADMIN)

        tenant = await tenant_service.update_current_subscription(
            db_session, tenant_admin.id, SubscriptionUpdate(plan="Premium")
        )

        assert tenant.id == test_tenant.id
        assert tenant.max_users == 100

    async def test_member_cannot_update_current_subscription(
        self, tenant_service, db_session, test_tenant, test_user
    ):
        await MembershipFactory.create(db_session, test_user, test_tenant)
        set_request_context(role=RoleName.SUPERADMIN)

        with pytest.raises(NotAuthorizedError):
            await tenant_service.update_current_subscription(
                db_session, test_user.id, SubscriptionUpdate(plan="Premium")
            )
