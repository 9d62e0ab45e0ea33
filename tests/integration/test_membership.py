"""
Integration tests for the membership store.
"""

import pytest

from app.features.tenants.membership import membership_store
from app.models import RoleName
from tests.factories import MembershipFactory, TenantFactory, UserFactory


@pytest.mark.integration
class TestMembershipStore:

    async def test_add_and_check(self, db_session, test_user, test_tenant):
        await membership_store.add_user_to_tenant(db_session, test_user.id, test_tenant.id)
        await db_session.commit()

        assert await membership_store.is_user_in_tenant(db_session, test_user.id, test_tenant.id)
        assert await membership_store.count_active_users(db_session, test_tenant.id) == 1

    async def test_add_does_not_commit(self, db_session, test_user, test_tenant):
        user_id, tenant_id = test_user.id, test_tenant.id
        await membership_store.add_user_to_tenant(db_session, user_id, tenant_id)

        await db_session.rollback()
        assert await membership_store.count_active_users(db_session, tenant_id) == 0

    async def test_readding_reactivates_former_row(self, db_session, test_user, test_tenant):
        original = await MembershipFactory.create(db_session, test_user, test_tenant, is_active=False)

        membership = await membership_store.add_user_to_tenant(db_session, test_user.id, test_tenant.id)
        await db_session.commit()

        assert membership.id == original.id
        history = await membership_store.get_memberships_for_user(
            db_session, test_user.id, active_only=False
        )
        assert [m.is_active for m in history] == [True]

    async def test_remove_keeps_row(self, db_session, test_user, test_tenant):
        await MembershipFactory.create(db_session, test_user, test_tenant)

        changed = await membership_store.remove_user_from_tenant(
            db_session, test_user.id, test_tenant.id
        )
        await db_session.commit()

        assert changed == 1
        assert not await membership_store.is_user_in_tenant(db_session, test_user.id, test_tenant.id)
        history = await membership_store.get_memberships_for_user(
            db_session, test_user.id, active_only=False
        )
        assert [m.is_active for m in history] == [False]

    async def test_remove_missing_membership(self, db_session, test_user, test_tenant):
        assert await membership_store.remove_user_from_tenant(
            db_session, test_user.id, test_tenant.id
        ) == 0

    async def test_deactivate_and_activate(self, db_session, test_user, test_tenant):
        await MembershipFactory.create(db_session, test_user, test_tenant)

        assert await membership_store.deactivate(db_session, test_user.id, test_tenant.id) == 1
        assert await membership_store.count_active_users(db_session, test_tenant.id) == 0
        assert await membership_store.activate(db_session, test_user.id, test_tenant.id) == 1
        assert await membership_store.count_active_users(db_session, test_tenant.id) == 1

    async def test_active_tenants_for_user(self, db_session, test_user):
        active = await TenantFactory.create(db_session, name="Active")
        former = await TenantFactory.create(db_session, name="Former")
        await MembershipFactory.create(db_session, test_user, former, is_active=False)
        await MembershipFactory.create(db_session, test_user, active)

        tenants = await membership_store.get_active_tenants_for_user(db_session, test_user.id)

        assert [t.name for t in tenants] == ["Active"]

    async def test_deactivate_all_for_user(self, db_session, test_user):
        first = await TenantFactory.create(db_session)
        second = await TenantFactory.create(db_session)
        await MembershipFactory.create(db_session, test_user, first)
        await MembershipFactory.create(db_session, test_user, second)

        assert await membership_store.deactivate_all_for_user(db_session, test_user.id) == 2
        assert await membership_store.get_active_tenants_for_user(db_session, test_user.id) == []

    async def test_list_tenant_users(self, db_session, roles, test_tenant):
        members = await UserFactory.create_batch(db_session, roles[RoleName.USER], count=3)
        for member in members:
            await MembershipFactory.create(db_session, member, test_tenant)
        await membership_store.remove_user_from_tenant(db_session, members[1].id, test_tenant.id)
        await db_session.commit()

        users, total = await membership_store.list_tenant_users(db_session, test_tenant.id)

        assert total == 2
        assert {u.id for u in users} == {members[0].id, members[2].id}

    async def test_list_tenant_users_paginates(self, db_session, roles, test_tenant):
        members = await UserFactory.create_batch(db_session, roles[RoleName.USER], count=3)
        for member in members:
            await MembershipFactory.create(db_session, member, test_tenant)

        page, total = await membership_store.list_tenant_users(
            db_session, test_tenant.id, skip=2, limit=2
        )

        assert total == 3
        assert len(page) == 1
