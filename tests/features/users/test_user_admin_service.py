"""Tests for account administration."""

from uuid import uuid4

import pytest

from visitrack.config.constants import TokenKind
from visitrack.core.exceptions import ConflictError, ErrorKind, NotFoundError, ValidationError
from visitrack.core.value_objects import AccountId, TenantId
from visitrack.features.auth.entities.account import AccountFilter
from visitrack.features.auth.entities.auth_context import AuthContext

from fakes import STRONG_PASSWORD, RecordingTransactions

NEW_PASSWORD = "N3w!Secret"


@pytest.fixture
def actor(make_account):
    admin = make_account(email="admin@example.com")
    return AuthContext(account_id=admin.id, email=admin.email, tenant_id=admin.tenant_id)


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_creates_account_with_roles(self, user_admin, actor, accounts, roles, tenant_id,
                                              credential_service, audit_service, audit_repository):
        employee = accounts.add_employee(tenant_id, code="EMP-300")
        guard = roles.add_role(tenant_id, "Guard", "guard")

        user = await user_admin.create_user(
            actor, employee.id, " Grace@Example.com ", STRONG_PASSWORD, role_ids=[guard.id], mfa_enabled=True
        )
        await audit_service.drain()

        stored = accounts.accounts[AccountId(user["id"])]
        assert user["email"] == "grace@example.com"
        assert user["mfaEnabled"] is True
        assert [role["slug"] for role in user["roles"]] == ["guard"]
        assert stored.employee_id == employee.id
        assert credential_service.verify(STRONG_PASSWORD, stored.password_hash)
        assert {"user_created", "roles_assigned"} <= set(audit_repository.events())

    @pytest.mark.asyncio
    async def test_employee_of_another_organization(self, user_admin, actor, accounts):
        foreign = accounts.add_employee(TenantId(uuid4()), code="EMP-301")

        with pytest.raises(ValidationError) as exc_info:
            await user_admin.create_user(actor, foreign.id, "x@example.com", STRONG_PASSWORD)

        assert exc_info.value.message == "Employee does not exist"

    @pytest.mark.asyncio
    async def test_email_in_use(self, user_admin, actor, accounts, tenant_id):
        employee = accounts.add_employee(tenant_id, code="EMP-302")

        with pytest.raises(ConflictError) as exc_info:
            await user_admin.create_user(actor, employee.id, "ADMIN@example.com", STRONG_PASSWORD)

        assert exc_info.value.message == "Email already in use"

    @pytest.mark.asyncio
    async def test_unusable_roles_create_nothing(self, user_admin, actor, accounts, roles, tenant_id):
        employee = accounts.add_employee(tenant_id, code="EMP-303")
        foreign = roles.add_role(TenantId(uuid4()), "Guard", "guard")
        retired = roles.add_role(tenant_id, "Retired", "retired", is_active=False)
        before = len(accounts.accounts)

        with pytest.raises(ValidationError) as exc_info:
            await user_admin.create_user(
                actor, employee.id, "new@example.com", STRONG_PASSWORD, role_ids=[foreign.id, retired.id]
            )

        assert exc_info.value.details["invalidRoleIds"] == [str(foreign.id), str(retired.id)]
        assert len(accounts.accounts) == before

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", ["weak", "Aa1!" + "x" * 80])
    async def test_password_policy(self, user_admin, actor, accounts, tenant_id, password):
        employee = accounts.add_employee(tenant_id, code="EMP-304")

        with pytest.raises(ValidationError) as exc_info:
            await user_admin.create_user(actor, employee.id, "new@example.com", password)

        assert exc_info.value.details == {"field": "password"}


class TestListAndGet:

    @pytest.mark.asyncio
    async def test_list_is_scoped_filtered_and_paged(self, user_admin, actor, make_account):
        make_account(email="guard.one@example.com", role_names=["guard"])
        make_account(email="guard.two@example.com", role_names=["guard"])
        make_account(email="host@example.com", role_names=["host"], is_active=False)
        make_account(email="elsewhere@example.com", role_names=["guard"], tenant=TenantId(uuid4()))

        everyone = await user_admin.list_users(actor)
        guards = await user_admin.list_users(actor, AccountFilter(role="guard"), limit=1, offset=1)
        inactive = await user_admin.list_users(actor, AccountFilter(is_active=False))

        assert everyone["pagination"]["total"] == 4
        assert "elsewhere@example.com" not in [u["email"] for u in everyone["users"]]
        assert guards["pagination"] == {"total": 2, "count": 1, "limit": 1, "offset": 1}
        assert [u["email"] for u in guards["users"]] == ["guard.two@example.com"]
        assert [u["email"] for u in inactive["users"]] == ["host@example.com"]

    @pytest.mark.asyncio
    async def test_search_matches_email_and_employee(self, user_admin, actor, make_account):
        make_account(email="grace@example.com")

        by_email = await user_admin.list_users(actor, AccountFilter(search="GRACE"))
        by_name = await user_admin.list_users(actor, AccountFilter(search="lovelace"))

        assert [u["email"] for u in by_email["users"]] == ["grace@example.com"]
        assert by_name["pagination"]["total"] == 2

    @pytest.mark.asyncio
    async def test_get_other_organization_user(self, user_admin, actor, make_account):
        foreign = make_account(email="elsewhere@example.com", tenant=TenantId(uuid4()))

        with pytest.raises(NotFoundError):
            await user_admin.get_user(actor, foreign.id)
        with pytest.raises(NotFoundError):
            await user_admin.get_user(actor, AccountId.generate())


class TestUpdateUser:

    @pytest.mark.asyncio
    async def test_updates_only_given_fields(self, user_admin, actor, make_account):
        account = make_account(email="grace@example.com")

        user = await user_admin.update_user(actor, account.id, email="G.Hopper@example.com", mfa_enabled=True)

        assert user["email"] == "g.hopper@example.com"
        assert user["mfaEnabled"] is True
        assert user["isActive"] is True

    @pytest.mark.asyncio
    async def test_email_taken_by_another_account(self, user_admin, actor, make_account):
        account = make_account(email="grace@example.com")

        with pytest.raises(ConflictError):
            await user_admin.update_user(actor, account.id, email="admin@example.com")
        # Keeping one's own email is not a conflict
        await user_admin.update_user(actor, account.id, email="grace@example.com")

    @pytest.mark.asyncio
    async def test_new_password_ends_sessions(self, user_admin, actor, make_account, auth_service, tokens):
        account = make_account(email="grace@example.com")
        session = (await auth_service.login("grace@example.com", STRONG_PASSWORD)).value

        await user_admin.update_user(actor, account.id, password=NEW_PASSWORD)

        refreshed = await auth_service.refresh(session.tokens.refresh_token)
        assert refreshed.error_kind is ErrorKind.INVALID_TOKEN
        assert (await auth_service.login("grace@example.com", NEW_PASSWORD)).ok
        assert [r.revocation_reason for r in tokens.of_kind(TokenKind.REFRESH)][0] == "password_changed"

    @pytest.mark.asyncio
    async def test_cannot_deactivate_self_through_update(self, user_admin, actor):
        with pytest.raises(ValidationError):
            await user_admin.update_user(actor, actor.account_id, is_active=False)


class TestDeactivateUser:

    @pytest.mark.asyncio
    async def test_deactivation_ends_sessions_and_clears_permissions(
        self, user_admin, actor, make_account, auth_service, accounts, tokens, permission_cache,
        audit_service, audit_repository, mocker,
    ):
        account = make_account(email="grace@example.com", role_names=["guard"])
        session = (await auth_service.login("grace@example.com", STRONG_PASSWORD)).value
        invalidate = mocker.spy(permission_cache, "invalidate")

        await user_admin.deactivate_user(actor, account.id)
        await audit_service.drain()

        assert accounts.accounts[account.id].is_active is False
        invalidate.assert_called_once_with(account.id)
        record = tokens.of_kind(TokenKind.REFRESH)[0]
        assert (record.is_active, record.revocation_reason) == (False, "deactivated")
        assert (await auth_service.refresh(session.tokens.refresh_token)).error_kind is ErrorKind.INVALID_TOKEN
        assert "user_deactivated" in audit_repository.events()

    @pytest.mark.asyncio
    async def test_writes_commit_together(self, user_admin, actor, make_account):
        account = make_account(email="grace@example.com")
        user_admin.transactions = RecordingTransactions()

        await user_admin.deactivate_user(actor, account.id)

        assert user_admin.transactions.outcomes == ["committed"]

    @pytest.mark.asyncio
    async def test_cannot_deactivate_self(self, user_admin, actor, accounts):
        with pytest.raises(ValidationError):
            await user_admin.deactivate_user(actor, actor.account_id)

        assert accounts.accounts[actor.account_id].is_active is True

    @pytest.mark.asyncio
    async def test_unknown_user(self, user_admin, actor):
        with pytest.raises(NotFoundError):
            await user_admin.deactivate_user(actor, AccountId.generate())
