"""Tests for the asyncpg repositories against a mocked DatabaseManager."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import asyncpg
import pytest

from visitrack.config.constants import AuditEvent, TokenKind
from visitrack.core.exceptions import ConflictError, StoreError
from visitrack.core.value_objects import AccountId, TenantId
from visitrack.database.connection import DatabaseManager
from visitrack.features.audit.entities.audit_entry import AuditEntry
from visitrack.features.audit.repositories.audit_repository import AsyncPGAuditRepository
from visitrack.features.auth.entities.account import AccountFilter, LockoutUpdate, NewAccount
from visitrack.features.auth.entities.token_record import TokenRecord
from visitrack.features.auth.repositories.account_repository import AsyncPGAccountRepository
from visitrack.features.auth.repositories.token_repository import AsyncPGTokenRepository

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    return AsyncMock()


def _account_row(**overrides):
    row = {
        'id': uuid4(),
        'employee_id': uuid4(),
        'organization_id': uuid4(),
        'email': "ada@example.com",
        'password_hash': "$2b$04$hash",
        'is_active': True,
        'is_locked': None,
        'lock_reason': None,
        'locked_at': None,
        'locked_until': None,
        'failed_login_attempts': None,
        'last_failed_login_at': None,
        'last_successful_login_at': None,
        'last_password_change_at': None,
        'last_activity_at': None,
        'must_change_password': False,
        'email_verified_at': None,
        'mfa_enabled': False,
        'mfa_secret': None,
        'created_at': datetime(2026, 1, 1, 9, 0),
    }
    row.update(overrides)
    return row


def _token_row(**overrides):
    row = {
        'id': uuid4(),
        'user_id': uuid4(),
        'token_type': "refresh",
        'token_hash': "digest",
        'token_hint': "abcd",
        'is_active': True,
        'is_used': False,
        'used_at': None,
        'expires_at': datetime(2026, 3, 8, 12, 0),
        'ip_address': "10.0.0.7",
        'user_agent': "pytest",
        'device_name': None,
        'metadata': '{"source": "login"}',
        'revoked_at': None,
        'revocation_reason': None,
        'created_at': datetime(2026, 3, 1, 12, 0),
    }
    row.update(overrides)
    return row


class TestAccountRepository:

    @pytest.mark.asyncio
    async def test_find_by_email_maps_row(self, db):
        row = _account_row()
        db.fetchrow.return_value = row
        repository = AsyncPGAccountRepository(db)

        account = await repository.find_by_email("ADA@example.com")

        assert account.id == AccountId(row['id'])
        assert account.tenant_id == TenantId(row['organization_id'])
        assert account.is_locked is False
        assert account.failed_login_attempts == 0
        assert account.created_at.tzinfo is timezone.utc
        query, email = db.fetchrow.await_args.args
        assert "lower(email) = lower($1)" in query
        assert email == "ADA@example.com"

    @pytest.mark.asyncio
    async def test_missing_account_is_none(self, db):
        db.fetchrow.return_value = None
        repository = AsyncPGAccountRepository(db)

        assert await repository.find_by_id(AccountId.generate()) is None
        assert await repository.find_employee("EMP-404") is None

    @pytest.mark.asyncio
    async def test_failed_login_is_incremented_in_one_statement(self, db):
        db.fetchval.return_value = 3
        repository = AsyncPGAccountRepository(db)
        account_id = AccountId.generate()

        attempts = await repository.record_failed_login(account_id, NOW)

        assert attempts == 3
        query, *args = db.fetchval.await_args.args
        assert "failed_login_attempts = COALESCE(failed_login_attempts, 0) + 1" in query
        assert "RETURNING failed_login_attempts" in query
        assert args == [account_id.value, NOW]

    @pytest.mark.asyncio
    async def test_failed_login_for_vanished_account(self, db):
        db.fetchval.return_value = None
        repository = AsyncPGAccountRepository(db)

        assert await repository.record_failed_login(AccountId.generate(), NOW) == 0

    @pytest.mark.asyncio
    async def test_lockout_state_is_written_together(self, db):
        repository = AsyncPGAccountRepository(db)
        account_id = AccountId.generate()
        update = LockoutUpdate(
            is_locked=True,
            failed_login_attempts=5,
            lock_reason="Too many failed login attempts",
            locked_at=NOW,
            locked_until=NOW + timedelta(minutes=30),
        )

        await repository.update_lockout_state(account_id, update)

        _, *args = db.execute.await_args.args
        assert args == [
            account_id.value, True, 5, "Too many failed login attempts", NOW, NOW + timedelta(minutes=30)
        ]

    @pytest.mark.asyncio
    async def test_activity_with_successful_login(self, db):
        repository = AsyncPGAccountRepository(db)

        await repository.update_activity(AccountId.generate(), NOW, successful_login=True)

        assert "last_successful_login_at" in db.execute.await_args.args[0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("constraint, message", [
        ("system_users_email_key", "User with this email already exists"),
        ("system_users_employee_id_key", "Employee already has an account"),
    ])
    async def test_create_maps_unique_violation(self, db, constraint, message):
        db.fetchrow.side_effect = ConflictError(
            "Duplicate value violates a unique constraint", details={"constraint": constraint}
        )
        repository = AsyncPGAccountRepository(db)
        new_account = NewAccount(
            employee_id=uuid4(),
            tenant_id=TenantId(uuid4()),
            email="ada@example.com",
            password_hash="$2b$04$hash",
        )

        with pytest.raises(ConflictError) as exc_info:
            await repository.create(new_account)

        assert exc_info.value.message == message

    @pytest.mark.asyncio
    async def test_list_accounts_builds_filters(self, db):
        db.fetchval.return_value = 41
        db.fetch.return_value = [_account_row()]
        repository = AsyncPGAccountRepository(db)
        tenant = TenantId(uuid4())

        accounts, total = await repository.list_accounts(
            tenant, AccountFilter(search="ada", role="security", is_active=True), limit=10, offset=20
        )

        assert total == 41
        assert [account.email for account in accounts] == ["ada@example.com"]
        count_query, *count_args = db.fetchval.await_args.args
        assert count_args == [tenant.value, "%ada%", True, "security"]
        assert "u.email ILIKE $2" in count_query
        assert "ur.is_active = true" in count_query
        list_query, *list_args = db.fetch.await_args.args
        assert "LIMIT $5 OFFSET $6" in list_query
        assert list_args[-2:] == [10, 20]

    @pytest.mark.asyncio
    async def test_list_accounts_without_filters(self, db):
        db.fetchval.return_value = 0
        db.fetch.return_value = []
        repository = AsyncPGAccountRepository(db)

        accounts, total = await repository.list_accounts(TenantId(uuid4()))

        assert (accounts, total) == ([], 0)
        assert "LIMIT $2 OFFSET $3" in db.fetch.await_args.args[0]

    @pytest.mark.asyncio
    async def test_update_account_leaves_missing_fields(self, db):
        db.fetchrow.return_value = _account_row(is_active=False)
        repository = AsyncPGAccountRepository(db)
        account_id = AccountId.generate()

        account = await repository.update_account(account_id, is_active=False)

        assert account.is_active is False
        query, *args = db.fetchrow.await_args.args
        assert "COALESCE($2, email)" in query
        assert args == [account_id.value, None, False, None]


class TestTokenRepository:

    @pytest.mark.asyncio
    async def test_insert_serializes_metadata(self, db):
        db.fetchrow.side_effect = lambda query, *args: _token_row(
            id=args[0], user_id=args[1], metadata={"source": "login"}
        )
        repository = AsyncPGTokenRepository(db)
        record = TokenRecord(
            account_id=AccountId.generate(),
            kind=TokenKind.REFRESH,
            token_hash="digest",
            expires_at=NOW + timedelta(days=7),
            metadata={"source": "login"},
        )

        stored = await repository.insert(record)

        args = db.fetchrow.await_args.args
        assert "$3::token_type" in args[0]
        assert args[3] == "refresh"
        assert json.loads(args[10]) == {"source": "login"}
        assert stored.id == record.id
        assert stored.metadata == {"source": "login"}

    @pytest.mark.asyncio
    async def test_find_active_by_hash_decodes_row(self, db):
        db.fetchrow.return_value = _token_row(token_type="password_reset")
        repository = AsyncPGTokenRepository(db)

        record = await repository.find_active_by_hash("digest", TokenKind.PASSWORD_RESET, NOW)

        assert record.kind is TokenKind.PASSWORD_RESET
        assert record.metadata == {"source": "login"}
        assert record.expires_at.tzinfo is timezone.utc
        _, token_hash, kind, now = db.fetchrow.await_args.args
        assert (token_hash, kind, now) == ("digest", "password_reset", NOW)

    @pytest.mark.asyncio
    async def test_find_active_by_hash_missing(self, db):
        db.fetchrow.return_value = None
        repository = AsyncPGTokenRepository(db)

        assert await repository.find_active_by_hash("digest", TokenKind.REFRESH, NOW) is None

    @pytest.mark.asyncio
    async def test_mark_used_only_consumes_unused_tokens(self, db):
        repository = AsyncPGTokenRepository(db)
        record_id = uuid4()

        db.fetchval.return_value = record_id
        assert await repository.mark_used(record_id, NOW) is True

        db.fetchval.return_value = None
        assert await repository.mark_used(record_id, NOW) is False

        query, *args = db.fetchval.await_args.args
        assert "WHERE id = $1 AND is_used = false AND is_active = true" in query
        assert "RETURNING id" in query
        assert args == [record_id, NOW]

    @pytest.mark.asyncio
    async def test_revoke_all_reads_command_tag(self, db):
        db.execute.return_value = "UPDATE 3"
        repository = AsyncPGTokenRepository(db)
        keep = uuid4()

        revoked = await repository.revoke_all_for_account(
            AccountId.generate(), TokenKind.REFRESH, NOW, "password_changed", except_id=keep
        )

        assert revoked == 3
        args = db.execute.await_args.args
        assert args[2] == "refresh"
        assert args[5] == keep

    @pytest.mark.asyncio
    async def test_revoke_all_kinds(self, db):
        db.execute.return_value = "UPDATE 0"
        repository = AsyncPGTokenRepository(db)

        revoked = await repository.revoke_all_for_account(AccountId.generate(), None, NOW, "logout_all")

        assert revoked == 0
        assert db.execute.await_args.args[2] is None


class TestDatabaseManager:

    @pytest.fixture
    def pool(self, mocker):
        connection = AsyncMock()
        connection.fetchval.return_value = 1
        pool = mocker.MagicMock()
        pool.acquire.return_value.__aenter__.return_value = connection
        pool.acquire.return_value.__aexit__.return_value = False
        pool.close = AsyncMock()
        mocker.patch(
            "visitrack.database.connection.asyncpg.create_pool", new=AsyncMock(return_value=pool)
        )
        return pool

    @pytest.mark.asyncio
    async def test_pool_opens_lazily_once(self, pool):
        manager = DatabaseManager("postgresql+asyncpg://localhost/visitrack", max_size=4)

        assert manager.dsn == "postgresql://localhost/visitrack"
        assert await manager.ping() is True
        assert await manager.connect() is pool
        assert manager.pool_config["max_size"] == 4

        await manager.disconnect()

        assert manager.connected is False
        pool.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_driver_errors_become_store_errors(self, pool):
        connection = pool.acquire.return_value.__aenter__.return_value
        connection.execute.side_effect = asyncpg.InterfaceError("connection closed")
        manager = DatabaseManager("postgresql://localhost/visitrack")

        with pytest.raises(StoreError):
            await manager.execute("SELECT 1")

    @pytest.mark.asyncio
    async def test_unique_violation_becomes_conflict(self, pool):
        connection = pool.acquire.return_value.__aenter__.return_value
        connection.fetchrow.side_effect = asyncpg.UniqueViolationError("duplicate key value")
        manager = DatabaseManager("postgresql://localhost/visitrack")

        with pytest.raises(ConflictError):
            await manager.fetchrow("INSERT INTO system_users ...")

    @pytest.mark.asyncio
    async def test_transaction_shares_one_connection(self, pool, mocker):
        connection = pool.acquire.return_value.__aenter__.return_value
        connection.transaction = mocker.MagicMock()
        connection.transaction.return_value.__aexit__.return_value = False
        manager = DatabaseManager("postgresql://localhost/visitrack")

        async with manager.transaction() as bound:
            assert manager.in_transaction is True
            await manager.execute("UPDATE authentication_tokens SET is_used = true")
            async with manager.transaction() as nested:
                assert nested is bound
                await manager.fetchval("SELECT 1")

        assert manager.in_transaction is False
        assert pool.acquire.call_count == 1
        connection.transaction.assert_called_once_with()
        connection.transaction.return_value.__aexit__.assert_awaited_once()
        assert connection.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_statement_rolls_transaction_back(self, pool, mocker):
        connection = pool.acquire.return_value.__aenter__.return_value
        connection.transaction = mocker.MagicMock()
        connection.transaction.return_value.__aexit__.return_value = False
        connection.execute.side_effect = asyncpg.InterfaceError("connection closed")
        manager = DatabaseManager("postgresql://localhost/visitrack")

        with pytest.raises(StoreError):
            async with manager.transaction():
                await manager.execute("UPDATE system_users SET password_hash = $2")

        exc_type = connection.transaction.return_value.__aexit__.await_args.args[0]
        assert exc_type is StoreError
        assert manager.in_transaction is False

    @pytest.mark.asyncio
    async def test_ping_reports_failure(self, pool):
        connection = pool.acquire.return_value.__aenter__.return_value
        connection.fetchval.side_effect = OSError("unreachable")

        assert await DatabaseManager("postgresql://localhost/visitrack").ping() is False


class TestAuditRepository:

    @pytest.mark.asyncio
    async def test_insert(self, db):
        repository = AsyncPGAuditRepository(db)
        actor = AccountId.generate()
        entry = AuditEntry(
            event=AuditEvent.LOGIN,
            actor_id=actor,
            resource="auth",
            metadata={"at": NOW},
        )

        await repository.insert(entry)

        args = db.execute.await_args.args
        assert args[1] is None
        assert args[2] == actor.value
        assert args[3] == "login"
        assert json.loads(args[10]) == {"at": str(NOW)}
