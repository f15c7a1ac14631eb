"""Tests for role and permission administration."""

from uuid import uuid4

import pytest

from visitrack.config.constants import SUPER_ADMIN_ROLE
from visitrack.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from visitrack.core.value_objects import AccountId, TenantId
from visitrack.features.auth.entities.auth_context import AuthContext


@pytest.fixture
def actor(tenant_id):
    return AuthContext(account_id=AccountId.generate(), email="admin@example.com", tenant_id=tenant_id)


@pytest.fixture
def super_admin(actor, roles, tenant_id):
    roles.assign(actor.account_id, roles.add_role(tenant_id, SUPER_ADMIN_ROLE, is_system_role=True))
    return actor


class TestRoles:

    @pytest.mark.asyncio
    async def test_create_role_with_permissions(self, role_admin, actor, roles, audit_service,
                                                audit_repository):
        read = roles.add_permission("visitors:read")

        role = await role_admin.create_role(
            actor, name="Guard", slug="guard", permission_ids=[read.id, uuid4()]
        )
        await audit_service.drain()

        assert role.tenant_id == actor.tenant_id
        detail = await role_admin.get_role(actor, role.id)
        assert [p["slug"] for p in detail["permissions"]] == ["visitors:read"]
        assert "role_created" in audit_repository.events()

    @pytest.mark.asyncio
    async def test_duplicate_slug_conflicts(self, role_admin, actor):
        await role_admin.create_role(actor, name="Guard", slug="guard")

        with pytest.raises(ConflictError):
            await role_admin.create_role(actor, name="Guard 2", slug="guard")

    @pytest.mark.asyncio
    async def test_other_tenant_role_is_not_found(self, role_admin, actor, roles):
        foreign = roles.add_role(TenantId(uuid4()), "guard")

        with pytest.raises(NotFoundError):
            await role_admin.get_role(actor, foreign.id)

    @pytest.mark.asyncio
    async def test_list_roles_is_tenant_scoped(self, role_admin, actor, roles, tenant_id):
        roles.add_role(tenant_id, "host")
        roles.add_role(TenantId(uuid4()), "guard")

        listed = await role_admin.list_roles(actor)

        assert [role.name for role in listed] == ["host"]

    @pytest.mark.asyncio
    async def test_system_role_needs_super_admin(self, role_admin, actor, roles, tenant_id):
        system = roles.add_role(tenant_id, "admin", is_system_role=True)

        with pytest.raises(ForbiddenError):
            await role_admin.update_role(actor, system.id, description="changed")

    @pytest.mark.asyncio
    async def test_super_admin_can_update_system_role(self, role_admin, super_admin, roles, tenant_id):
        system = roles.add_role(tenant_id, "admin", is_system_role=True)

        updated = await role_admin.update_role(super_admin, system.id, description="changed")

        assert updated.description == "changed"

    @pytest.mark.asyncio
    async def test_system_role_cannot_be_deleted(self, role_admin, super_admin, roles, tenant_id):
        system = roles.add_role(tenant_id, "admin", is_system_role=True)

        with pytest.raises(ForbiddenError):
            await role_admin.delete_role(super_admin, system.id)

    @pytest.mark.asyncio
    async def test_assigned_role_cannot_be_deleted(self, role_admin, actor, roles, tenant_id):
        role = roles.add_role(tenant_id, "guard")
        roles.assign(AccountId.generate(), role)

        with pytest.raises(ValidationError) as exc_info:
            await role_admin.delete_role(actor, role.id)

        assert exc_info.value.details == {"userCount": 1}

    @pytest.mark.asyncio
    async def test_delete_is_soft(self, role_admin, actor, roles, tenant_id):
        role = roles.add_role(tenant_id, "guard")

        await role_admin.delete_role(actor, role.id)

        assert roles.roles[role.id].is_active is False


class TestCacheInvalidation:
    """Mutations clear cached permission sets before returning."""

    @pytest.fixture
    def member(self, roles, tenant_id, make_account):
        account = make_account(email="member@example.com", role_names=["guard"])
        guard = next(r for r in roles.roles.values() if r.name == "guard")
        return account, guard

    @pytest.mark.asyncio
    async def test_assign_permissions_is_visible_immediately(self, role_admin, actor, roles, member,
                                                             permission_cache):
        account, guard = member
        read = roles.add_permission("visitors:read")
        assert await permission_cache.get(account.id) == frozenset()

        added = await role_admin.assign_permissions(actor, guard.id, [read.id])

        assert added == 1
        assert await permission_cache.get(account.id) == frozenset({"visitors:read"})

    @pytest.mark.asyncio
    async def test_remove_permission_is_visible_immediately(self, role_admin, actor, roles, member,
                                                            permission_cache):
        account, guard = member
        read = roles.add_permission("visitors:read")
        roles.grant(guard, read)
        assert await permission_cache.get(account.id) == frozenset({"visitors:read"})

        await role_admin.remove_permission(actor, guard.id, read.id)

        assert await permission_cache.get(account.id) == frozenset()

    @pytest.mark.asyncio
    async def test_remove_unassigned_permission(self, role_admin, actor, roles, member):
        _, guard = member

        with pytest.raises(NotFoundError):
            await role_admin.remove_permission(actor, guard.id, roles.add_permission("visitors:read").id)

    @pytest.mark.asyncio
    async def test_deactivating_role_is_visible_immediately(self, role_admin, actor, roles, member,
                                                            permission_cache):
        account, guard = member
        roles.grant(guard, roles.add_permission("visitors:read"))
        await permission_cache.get(account.id)

        await role_admin.update_role(actor, guard.id, is_active=False)

        assert await permission_cache.get(account.id) == frozenset()

    @pytest.mark.asyncio
    async def test_assign_and_remove_roles(self, role_admin, actor, roles, tenant_id, member,
                                           permission_cache):
        account, _ = member
        host = roles.add_role(tenant_id, "host")
        roles.grant(host, roles.add_permission("visits:create"))
        await permission_cache.get(account.id)

        assigned = await role_admin.assign_roles(actor, account.id, [host.id, host.id])

        assert sorted(role.name for role in assigned) == ["guard", "host"]
        assert "visits:create" in await permission_cache.get(account.id)

        remaining = await role_admin.remove_role(actor, account.id, host.id)

        assert [role.name for role in remaining] == ["guard"]
        assert "visits:create" not in await permission_cache.get(account.id)

    @pytest.mark.asyncio
    async def test_assign_skips_foreign_and_held_roles(self, role_admin, actor, roles, member):
        account, guard = member
        foreign = roles.add_role(TenantId(uuid4()), "intruder")

        assigned = await role_admin.assign_roles(actor, account.id, [guard.id, foreign.id])

        assert [role.name for role in assigned] == ["guard"]
        assert sum(1 for a in roles.assignments.values() if a.account_id == account.id) == 1

    @pytest.mark.asyncio
    async def test_assign_to_account_of_other_tenant(self, role_admin, roles, member):
        account, guard = member
        stranger = AuthContext(account_id=AccountId.generate(), email="x@example.com", tenant_id=TenantId(uuid4()))

        with pytest.raises(NotFoundError):
            await role_admin.assign_roles(stranger, account.id, [guard.id])


class TestPermissions:

    @pytest.mark.asyncio
    async def test_create_permission(self, role_admin, actor):
        permission = await role_admin.create_permission(actor, "Read visitors", "visitors", "read")

        assert permission.slug == "visitors:read"
        assert permission.is_system_permission is False

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, role_admin, actor, roles):
        roles.add_permission("visitors:read")

        with pytest.raises(ConflictError):
            await role_admin.create_permission(actor, "Read visitors", "visitors", "read")

    @pytest.mark.asyncio
    async def test_invalid_parts(self, role_admin, actor):
        with pytest.raises(ValidationError):
            await role_admin.create_permission(actor, "Bad", "Visitors Read", "read")

    @pytest.mark.asyncio
    async def test_system_permission_rules(self, role_admin, actor, super_admin, roles):
        system = roles.add_permission("roles:read", is_system_permission=True)

        with pytest.raises(ForbiddenError):
            await role_admin.delete_permission(super_admin, system.id)

        updated = await role_admin.update_permission(super_admin, system.id, description="Read roles")
        assert updated.description == "Read roles"

    @pytest.mark.asyncio
    async def test_system_permission_update_needs_super_admin(self, role_admin, actor, roles):
        system = roles.add_permission("roles:read", is_system_permission=True)

        with pytest.raises(ForbiddenError):
            await role_admin.update_permission(actor, system.id, name="Renamed")

    @pytest.mark.asyncio
    async def test_referenced_permission_cannot_be_deleted(self, role_admin, actor, roles, tenant_id):
        permission = roles.add_permission("visitors:read")
        roles.grant(roles.add_role(tenant_id, "guard"), permission)

        with pytest.raises(ValidationError) as exc_info:
            await role_admin.delete_permission(actor, permission.id)

        assert exc_info.value.details == {"roleCount": 1}

    @pytest.mark.asyncio
    async def test_delete_unreferenced_permission(self, role_admin, actor, roles):
        permission = roles.add_permission("visitors:read")

        await role_admin.delete_permission(actor, permission.id)

        assert permission.id not in roles.permissions

    @pytest.mark.asyncio
    async def test_unknown_permission(self, role_admin):
        with pytest.raises(NotFoundError):
            await role_admin.get_permission(uuid4())
