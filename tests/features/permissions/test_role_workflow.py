"""End-to-end role lifecycle through the services.

An administrator creates a role, grants it a permission, assigns it to an
employee's account, and the employee's access follows every change.
"""

import pytest

from visitrack.features.auth.entities.auth_context import AuthContext

from fakes import STRONG_PASSWORD


class TestRoleWorkflow:

    @pytest.mark.asyncio
    async def test_access_follows_role_changes(self, auth_service, role_admin, authorization, roles,
                                               make_account, audit_service, audit_repository):
        admin_account = make_account(email="admin@example.com")
        employee = make_account(email="guard@example.com")
        admin = AuthContext(
            account_id=admin_account.id, email=admin_account.email, tenant_id=admin_account.tenant_id
        )
        read = roles.add_permission("visitors:read")
        gate = authorization.require_all("visitors:read")

        session = (await auth_service.login("guard@example.com", STRONG_PASSWORD)).value
        caller = AuthContext(
            account_id=employee.id, email=employee.email, tenant_id=employee.tenant_id
        )
        assert session.permissions == frozenset()
        assert not (await gate.check(caller)).granted

        guard = await role_admin.create_role(admin, name="Guard", slug="guard")
        await role_admin.assign_permissions(admin, guard.id, [read.id])
        await role_admin.assign_roles(admin, employee.id, [guard.id])

        assert (await gate.check(caller)).granted
        assert (await authorization.require_role("guard").check(caller)).granted

        profile = (await auth_service.get_profile(employee.id)).value
        assert profile.roles == ["Guard"]
        assert profile.permissions == frozenset({"visitors:read"})

        await role_admin.remove_permission(admin, guard.id, read.id)
        result = await gate.check(caller)
        assert result.details == {"missing": ["visitors:read"]}

        await role_admin.remove_role(admin, employee.id, guard.id)
        assert not (await authorization.require_role("guard").check(caller)).granted

        await audit_service.drain()
        events = audit_repository.events()
        for event in ("role_created", "role_permissions_assigned", "roles_assigned",
                      "role_permission_removed", "role_removed"):
            assert event in events
