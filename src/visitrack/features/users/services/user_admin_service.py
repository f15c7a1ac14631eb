"""Account administration for an organization's admins.

Every operation is scoped to the caller's organization: accounts of other
organizations are reported as not found. Deactivating an account, or
setting a new password for it, ends its sessions and clears its cached
permissions before returning.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence
from uuid import UUID

from ....config.constants import AuditEvent, TokenKind
from ....core.exceptions import ConflictError, NotFoundError, ValidationError
from ....core.value_objects import AccountId
from ....utils.datetime import utc_now
from ...audit.services.audit_service import AuditService
from ...auth.entities.account import Account, AccountFilter, NewAccount
from ...auth.entities.auth_context import AuthContext, ClientInfo
from ...auth.entities.protocols import AccountRepository, TokenRepository, TransactionManager
from ...auth.services.credential_service import CredentialService, password_policy_violation
from ...permissions.entities.protocols import PermissionCacheProtocol, RoleRepository
from ...permissions.services.permission_resolver import PermissionResolver
from ...permissions.services.role_admin_service import RoleAdminService

logger = logging.getLogger(__name__)

EMAIL_IN_USE_MESSAGE = "Email already in use"


@asynccontextmanager
async def _no_transaction():
    yield None


class UserAdminService:
    """List, create, inspect, update and deactivate accounts."""

    def __init__(
        self,
        accounts: AccountRepository,
        tokens: TokenRepository,
        roles: RoleRepository,
        credentials: CredentialService,
        role_admin: RoleAdminService,
        resolver: PermissionResolver,
        cache: PermissionCacheProtocol,
        audit: AuditService,
        clock: Callable[[], datetime] = utc_now,
        transactions: Optional[TransactionManager] = None,
    ):
        self.accounts = accounts
        self.tokens = tokens
        self.roles = roles
        self.credentials = credentials
        self.role_admin = role_admin
        self.resolver = resolver
        self.cache = cache
        self.audit = audit
        self._clock = clock
        self.transactions = transactions

    def _transaction(self):
        if self.transactions is None:
            return _no_transaction()
        return self.transactions.transaction()

    def _client(self, actor: AuthContext) -> ClientInfo:
        return ClientInfo(ip_address=actor.ip_address, user_agent=actor.user_agent)

    def _record(self, event: AuditEvent, actor: AuthContext, account_id: AccountId, metadata: dict) -> None:
        self.audit.record(
            event,
            actor.account_id,
            metadata,
            resource="user",
            resource_id=str(account_id),
            tenant_id=actor.tenant_id,
            client=self._client(actor),
        )

    async def _get_tenant_account(self, actor: AuthContext, account_id: AccountId) -> Account:
        account = await self.accounts.find_by_id(account_id)
        if account is None or account.tenant_id != actor.tenant_id:
            raise NotFoundError("User not found")
        return account

    async def _with_roles(self, account: Account) -> Dict[str, Any]:
        roles = await self.resolver.resolve_roles(account.id)
        return {**account.to_public_dict(), "roles": [role.to_dict() for role in roles]}

    async def _ensure_email_free(self, email: str, account_id: Optional[AccountId] = None) -> None:
        existing = await self.accounts.find_by_email(email)
        if existing is not None and existing.id != account_id:
            raise ConflictError(EMAIL_IN_USE_MESSAGE)

    def _check_password(self, password: str) -> None:
        violation = password_policy_violation(password)
        if violation:
            raise ValidationError(violation, details={"field": "password"})

    async def _end_sessions(self, account_id: AccountId, now: datetime, reason: str) -> int:
        return await self.tokens.revoke_all_for_account(account_id, TokenKind.REFRESH, now, reason)

    async def list_users(
        self,
        actor: AuthContext,
        filters: Optional[AccountFilter] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> Dict[str, Any]:
        accounts, total = await self.accounts.list_accounts(actor.tenant_id, filters, limit, offset)
        users = [await self._with_roles(account) for account in accounts]
        return {
            "users": users,
            "pagination": {"total": total, "count": len(users), "limit": limit, "offset": offset},
        }

    async def get_user(self, actor: AuthContext, account_id: AccountId) -> Dict[str, Any]:
        return await self._with_roles(await self._get_tenant_account(actor, account_id))

    async def create_user(
        self,
        actor: AuthContext,
        employee_id: UUID,
        email: str,
        password: str,
        role_ids: Sequence[UUID] = (),
        mfa_enabled: bool = False,
    ) -> Dict[str, Any]:
        """Create an account for an employee of the caller's organization.

        Raises:
            ValidationError: Weak password, unknown employee or unusable role IDs
            ConflictError: Email or employee already has an account
        """
        self._check_password(password)

        employee = await self.accounts.find_employee_by_id(employee_id)
        if employee is None or employee.tenant_id != actor.tenant_id:
            raise ValidationError("Employee does not exist", details={"field": "employeeId"})

        email = email.strip().lower()
        await self._ensure_email_free(email)

        role_ids = list(dict.fromkeys(role_ids))
        if role_ids:
            found = await self.roles.list_roles_by_ids(role_ids)
            usable = {role.id for role in found if role.is_active and role.tenant_id == actor.tenant_id}
            invalid = [str(role_id) for role_id in role_ids if role_id not in usable]
            if invalid:
                raise ValidationError("Invalid role IDs", details={"invalidRoleIds": invalid})

        password_hash = await self.credentials.hash_async(password)
        account = await self.accounts.create(NewAccount(
            employee_id=employee.id,
            tenant_id=employee.tenant_id,
            email=email,
            password_hash=password_hash,
            mfa_enabled=mfa_enabled,
        ))
        if role_ids:
            await self.role_admin.assign_roles(actor, account.id, role_ids)

        self._record(
            AuditEvent.USER_CREATED,
            actor,
            account.id,
            {"email": email, "employeeId": str(employee.id), "roleIds": [str(r) for r in role_ids]},
        )
        logger.info(f"Account {account.id} created by {actor.account_id}")
        return await self._with_roles(account)

    async def update_user(
        self,
        actor: AuthContext,
        account_id: AccountId,
        email: Optional[str] = None,
        password: Optional[str] = None,
        mfa_enabled: Optional[bool] = None,
        is_active: Optional[bool] = None,
    ) -> Dict[str, Any]:
        account = await self._get_tenant_account(actor, account_id)
        if is_active is False and account_id == actor.account_id:
            raise ValidationError("You cannot deactivate your own account")
        if password is not None:
            self._check_password(password)
        if email is not None:
            email = email.strip().lower()
            await self._ensure_email_free(email, account_id)

        password_hash = await self.credentials.hash_async(password) if password is not None else None
        ends_sessions = password_hash is not None or (is_active is False and account.is_active)
        now = self._clock()

        async with self._transaction():
            if ends_sessions:
                await self._end_sessions(
                    account_id, now, "deactivated" if is_active is False else "password_changed"
                )
            if password_hash is not None:
                await self.accounts.update_credential(account_id, password_hash, now)
            updated = await self.accounts.update_account(
                account_id, email=email, is_active=is_active, mfa_enabled=mfa_enabled
            )
        if updated is None:
            raise NotFoundError("User not found")

        if is_active is not None:
            self.cache.invalidate(account_id)
        changed = [
            name for name, value in (
                ("email", email), ("password", password), ("mfaEnabled", mfa_enabled), ("isActive", is_active)
            )
            if value is not None
        ]
        self._record(AuditEvent.USER_UPDATED, actor, account_id, {"fields": changed})
        return await self._with_roles(updated)

    async def deactivate_user(self, actor: AuthContext, account_id: AccountId) -> None:
        """Deactivate the account, end its sessions and drop its cached permissions."""
        await self._get_tenant_account(actor, account_id)
        if account_id == actor.account_id:
            raise ValidationError("You cannot deactivate your own account")

        now = self._clock()
        async with self._transaction():
            revoked = await self._end_sessions(account_id, now, "deactivated")
            await self.accounts.update_account(account_id, is_active=False)

        self.cache.invalidate(account_id)
        self._record(AuditEvent.USER_DEACTIVATED, actor, account_id, {"revokedSessions": revoked})
        logger.info(f"Account {account_id} deactivated by {actor.account_id}; {revoked} sessions revoked")
