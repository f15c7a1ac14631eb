"""Pytest configuration and fixtures for visitrack tests."""

from datetime import timedelta
from typing import Iterable, Optional
from uuid import uuid4

import pytest
import pytest_asyncio

from visitrack.api.factory import ServiceFactory
from visitrack.config.settings import Settings
from visitrack.core.value_objects import AccountId, TenantId
from visitrack.features.auth.entities.account import Account
from visitrack.utils.datetime import utc_now

from fakes import (
    STRONG_PASSWORD,
    TEST_JWT_SECRET,
    FakeClock,
    InMemoryAccountRepository,
    InMemoryAuditRepository,
    InMemoryRoleRepository,
    InMemoryTokenRepository,
    RecordingNotifier,
)


@pytest.fixture
def clock():
    """Clock ten minutes behind real time.

    PyJWT checks ``exp`` and ``iat`` against the real clock, so tokens
    issued by this clock verify as long as it is advanced by less than that.
    """
    return FakeClock(utc_now() - timedelta(minutes=10))


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="testing",
        jwt_secret=TEST_JWT_SECRET,
        bcrypt_rounds=4,
        permission_cache_ttl_seconds=60,
        lockout_max_attempts=5,
        lockout_duration_minutes=30,
    )


@pytest.fixture
def tenant_id():
    """Sample organization ID for testing."""
    return TenantId(uuid4())


@pytest.fixture
def accounts(roles):
    return InMemoryAccountRepository(roles)


@pytest.fixture
def tokens():
    return InMemoryTokenRepository()


@pytest.fixture
def roles():
    return InMemoryRoleRepository()


@pytest.fixture
def audit_repository():
    return InMemoryAuditRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def factory(settings, accounts, tokens, roles, audit_repository, notifier, clock):
    """Service factory over the in-memory repositories."""
    return ServiceFactory(
        settings,
        accounts=accounts,
        tokens=tokens,
        roles=roles,
        audit_repository=audit_repository,
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def credential_service(factory):
    return factory.get_credential_service()


@pytest.fixture
def token_service(factory):
    return factory.get_token_service()


@pytest.fixture
def permission_cache(factory):
    return factory.get_permission_cache()


@pytest.fixture
def resolver(factory):
    return factory.get_permission_resolver()


@pytest.fixture
def audit_service(factory):
    return factory.get_audit_service()


@pytest.fixture
def auth_service(factory):
    return factory.get_auth_service()


@pytest.fixture
def role_admin(factory):
    return factory.get_role_admin_service()


@pytest.fixture
def user_admin(factory):
    return factory.get_user_admin_service()


@pytest.fixture
def authorization(factory):
    return factory.get_authorization_service()


@pytest.fixture
def make_account(accounts, roles, credential_service, tenant_id):
    """Create an account with a password and optional role names.

    Role names that do not exist yet are created in the account's tenant.
    """
    def _make(
        email: str = "ada@example.com",
        password: str = STRONG_PASSWORD,
        role_names: Iterable[str] = (),
        tenant: Optional[TenantId] = None,
        **fields,
    ) -> Account:
        tenant = tenant or tenant_id
        employee = accounts.add_employee(tenant, code=f"EMP-{uuid4().hex[:6]}")
        account = accounts.add_account(Account(
            id=AccountId.generate(),
            employee_id=employee.id,
            tenant_id=tenant,
            email=email,
            password_hash=credential_service.hash(password),
            **fields,
        ))
        for name in role_names:
            role = next(
                (r for r in roles.roles.values() if r.name == name and r.tenant_id == tenant),
                None,
            ) or roles.add_role(tenant, name)
            roles.assign(account.id, role)
        return account

    return _make


@pytest_asyncio.fixture
async def drain_audit(audit_service):
    """Wait for scheduled audit writes after the test body."""
    yield audit_service
    await audit_service.drain()
