"""AsyncPG-based account repository."""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

import asyncpg

from ....core.exceptions import ConflictError
from ....core.value_objects import AccountId, TenantId
from ....database.connection import DatabaseManager
from ....utils.datetime import ensure_utc
from ..entities.account import Account, AccountFilter, Employee, LockoutUpdate, NewAccount

logger = logging.getLogger(__name__)

_ACCOUNT_COLUMNS = """
    id, employee_id, organization_id, email, password_hash, is_active,
    is_locked, lock_reason, locked_at, locked_until, failed_login_attempts,
    last_failed_login_at, last_successful_login_at, last_password_change_at,
    last_activity_at, must_change_password, email_verified_at,
    mfa_enabled, mfa_secret, created_at
"""


def _account_conflict(error: ConflictError) -> ConflictError:
    constraint = error.details.get("constraint") or ""
    if "employee" in constraint:
        return ConflictError("Employee already has an account", details=error.details)
    return ConflictError("User with this email already exists", details=error.details)


class AsyncPGAccountRepository:
    """AccountRepository backed by ``system_users`` and ``employees``."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def _build_account_from_row(self, row: asyncpg.Record) -> Account:
        return Account(
            id=AccountId(row['id']),
            employee_id=row['employee_id'],
            tenant_id=TenantId(row['organization_id']),
            email=row['email'],
            password_hash=row['password_hash'],
            is_active=bool(row['is_active']),
            is_locked=bool(row['is_locked']),
            lock_reason=row['lock_reason'],
            locked_at=ensure_utc(row['locked_at']),
            locked_until=ensure_utc(row['locked_until']),
            failed_login_attempts=row['failed_login_attempts'] or 0,
            last_failed_login_at=ensure_utc(row['last_failed_login_at']),
            last_successful_login_at=ensure_utc(row['last_successful_login_at']),
            last_password_change_at=ensure_utc(row['last_password_change_at']),
            last_activity_at=ensure_utc(row['last_activity_at']),
            must_change_password=bool(row['must_change_password']),
            email_verified_at=ensure_utc(row['email_verified_at']),
            mfa_enabled=bool(row['mfa_enabled']),
            mfa_secret=row['mfa_secret'],
            created_at=ensure_utc(row['created_at']),
        )

    def _build_employee_from_row(self, row: asyncpg.Record) -> Employee:
        return Employee(
            id=row['id'],
            tenant_id=TenantId(row['organization_id']),
            first_name=row['first_name'],
            last_name=row['last_name'],
            employee_code=row['employee_id'],
            email=row['email'],
        )

    async def find_by_email(self, email: str) -> Optional[Account]:
        row = await self.db.fetchrow(
            f"SELECT {_ACCOUNT_COLUMNS} FROM system_users WHERE lower(email) = lower($1)",
            email,
        )
        return self._build_account_from_row(row) if row else None

    async def find_by_id(self, account_id: AccountId) -> Optional[Account]:
        row = await self.db.fetchrow(
            f"SELECT {_ACCOUNT_COLUMNS} FROM system_users WHERE id = $1",
            account_id.value,
        )
        return self._build_account_from_row(row) if row else None

    async def create(self, new_account: NewAccount) -> Account:
        try:
            row = await self.db.fetchrow(
                f"""
                INSERT INTO system_users (
                    employee_id, organization_id, email, password_hash,
                    is_active, mfa_enabled, must_change_password
                )
                VALUES ($1, $2, $3, $4, true, $5, $6)
                RETURNING {_ACCOUNT_COLUMNS}
                """,
                new_account.employee_id,
                new_account.tenant_id.value,
                new_account.email,
                new_account.password_hash,
                new_account.mfa_enabled,
                new_account.must_change_password,
            )
        except ConflictError as e:
            raise _account_conflict(e) from e
        logger.info(f"Created account {row['id']} for employee {new_account.employee_id}")
        return self._build_account_from_row(row)

    async def list_accounts(
        self,
        tenant_id: TenantId,
        filters: Optional[AccountFilter] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> Tuple[List[Account], int]:
        where_conditions = ["u.organization_id = $1"]
        params: list = [tenant_id.value]
        param_counter = 2

        if filters:
            if filters.search:
                where_conditions.append(f"""(
                    u.email ILIKE ${param_counter} OR
                    e.employee_id ILIKE ${param_counter} OR
                    e.first_name ILIKE ${param_counter} OR
                    e.last_name ILIKE ${param_counter}
                )""")
                params.append(f"%{filters.search}%")
                param_counter += 1

            if filters.is_active is not None:
                where_conditions.append(f"u.is_active = ${param_counter}")
                params.append(filters.is_active)
                param_counter += 1

            if filters.role:
                where_conditions.append(f"""EXISTS (
                    SELECT 1 FROM user_roles ur
                    JOIN roles r ON r.id = ur.role_id
                    WHERE ur.user_id = u.id AND ur.is_active = true
                      AND (r.name = ${param_counter} OR r.slug = ${param_counter})
                )""")
                params.append(filters.role)
                param_counter += 1

        where_clause = " AND ".join(where_conditions)
        from_clause = "system_users u LEFT JOIN employees e ON e.id = u.employee_id"

        total_count = await self.db.fetchval(
            f"SELECT COUNT(*) FROM {from_clause} WHERE {where_clause}", *params
        )
        columns = ", ".join(f"u.{column.strip()}" for column in _ACCOUNT_COLUMNS.split(","))
        rows = await self.db.fetch(
            f"""
            SELECT {columns} FROM {from_clause}
            WHERE {where_clause}
            ORDER BY u.created_at DESC, u.email ASC
            LIMIT ${param_counter} OFFSET ${param_counter + 1}
            """,
            *params,
            limit,
            offset,
        )
        return [self._build_account_from_row(row) for row in rows], total_count or 0

    async def update_account(
        self,
        account_id: AccountId,
        email: Optional[str] = None,
        is_active: Optional[bool] = None,
        mfa_enabled: Optional[bool] = None,
    ) -> Optional[Account]:
        try:
            row = await self.db.fetchrow(
                f"""
                UPDATE system_users
                SET email = COALESCE($2, email),
                    is_active = COALESCE($3, is_active),
                    mfa_enabled = COALESCE($4, mfa_enabled),
                    updated_at = now()
                WHERE id = $1
                RETURNING {_ACCOUNT_COLUMNS}
                """,
                account_id.value,
                email,
                is_active,
                mfa_enabled,
            )
        except ConflictError as e:
            raise _account_conflict(e) from e
        return self._build_account_from_row(row) if row else None

    async def find_employee(self, employee_code: str) -> Optional[Employee]:
        row = await self.db.fetchrow(
            """
            SELECT id, organization_id, employee_id, email, first_name, last_name
            FROM employees
            WHERE employee_id = $1
            """,
            employee_code,
        )
        return self._build_employee_from_row(row) if row else None

    async def find_employee_by_id(self, employee_id: UUID) -> Optional[Employee]:
        row = await self.db.fetchrow(
            """
            SELECT id, organization_id, employee_id, email, first_name, last_name
            FROM employees
            WHERE id = $1
            """,
            employee_id,
        )
        return self._build_employee_from_row(row) if row else None

    async def update_credential(
        self,
        account_id: AccountId,
        password_hash: str,
        changed_at: datetime,
        must_change_password: bool = False,
    ) -> None:
        await self.db.execute(
            """
            UPDATE system_users
            SET password_hash = $2,
                last_password_change_at = $3,
                must_change_password = $4,
                updated_at = $3
            WHERE id = $1
            """,
            account_id.value,
            password_hash,
            changed_at,
            must_change_password,
        )

    async def update_lockout_state(self, account_id: AccountId, update: LockoutUpdate) -> None:
        await self.db.execute(
            """
            UPDATE system_users
            SET is_locked = $2,
                failed_login_attempts = $3,
                lock_reason = $4,
                locked_at = $5,
                locked_until = $6,
                updated_at = now()
            WHERE id = $1
            """,
            account_id.value,
            update.is_locked,
            update.failed_login_attempts,
            update.lock_reason,
            update.locked_at,
            update.locked_until,
        )

    async def record_failed_login(self, account_id: AccountId, at: datetime) -> int:
        # Single-row UPDATE so concurrent failures never lose an increment
        attempts = await self.db.fetchval(
            """
            UPDATE system_users
            SET failed_login_attempts = COALESCE(failed_login_attempts, 0) + 1,
                last_failed_login_at = $2,
                updated_at = $2
            WHERE id = $1
            RETURNING failed_login_attempts
            """,
            account_id.value,
            at,
        )
        return attempts or 0

    async def update_activity(
        self, account_id: AccountId, at: datetime, successful_login: bool = False
    ) -> None:
        if successful_login:
            query = """
                UPDATE system_users
                SET last_activity_at = $2, last_successful_login_at = $2
                WHERE id = $1
            """
        else:
            query = "UPDATE system_users SET last_activity_at = $2 WHERE id = $1"
        await self.db.execute(query, account_id.value, at)

    async def mark_email_verified(self, account_id: AccountId, at: datetime) -> None:
        await self.db.execute(
            "UPDATE system_users SET email_verified_at = $2, updated_at = $2 WHERE id = $1",
            account_id.value,
            at,
        )
