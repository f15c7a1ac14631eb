"""Authentication flows: register, login, refresh, logout and password reset.

Flow methods return a ``Result``. Expected failures are values, and every
login failure carries the same generic message; the audit trail records
which check actually failed.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, List, Optional

from ....config.constants import (
    INTERNAL_ERROR_MESSAGE,
    INVALID_CREDENTIALS_MESSAGE,
    INVALID_TOKEN_MESSAGE,
    AuditEvent,
    LockState,
    TokenKind,
)
from ....core.exceptions import (
    ConflictError,
    CredentialFormatError,
    ErrorKind,
    InvalidTokenError,
    StoreError,
)
from ....core.shared.result import Result
from ....core.value_objects import AccountId
from ....utils.datetime import utc_now
from ...audit.services.audit_service import AuditService
from ...permissions.entities.protocols import PermissionCacheProtocol
from ...permissions.services.permission_resolver import PermissionResolver
from ..entities.account import Account, NewAccount
from ..entities.auth_context import ClientInfo
from ..entities.protocols import (
    AccountRepository,
    PasswordResetNotifier,
    TokenRepository,
    TransactionManager,
)
from ..entities.session import (
    AuthSession,
    Profile,
    RefreshedAccess,
    RegistrationInput,
    TokenPair,
)
from ..entities.token_record import TokenRecord
from .credential_service import CredentialService, password_policy_violation
from .lockout_service import LockoutService
from .notifier import LoggingNotifier
from .token_service import TokenService

logger = logging.getLogger(__name__)

INVALID_RESET_TOKEN_MESSAGE = "Invalid or expired reset token"
INVALID_VERIFICATION_TOKEN_MESSAGE = "Invalid or expired verification token"


def _invalid_credentials() -> Result:
    return Result.failure(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)


def _invalid_token() -> Result:
    return Result.failure(ErrorKind.INVALID_TOKEN, INVALID_TOKEN_MESSAGE)


def _internal_failure(operation: str, error: Exception) -> Result:
    logger.error(f"{operation} failed: {error}", exc_info=True)
    return Result.failure(ErrorKind.INTERNAL, INTERNAL_ERROR_MESSAGE)


@asynccontextmanager
async def _no_transaction():
    yield None


class AuthService:
    """Orchestrates credentials, tokens, lockout and permission resolution."""

    def __init__(
        self,
        accounts: AccountRepository,
        tokens: TokenRepository,
        credentials: CredentialService,
        token_service: TokenService,
        lockout: LockoutService,
        resolver: PermissionResolver,
        cache: PermissionCacheProtocol,
        audit: AuditService,
        notifier: Optional[PasswordResetNotifier] = None,
        clock: Callable[[], datetime] = utc_now,
        transactions: Optional[TransactionManager] = None,
    ):
        self.accounts = accounts
        self.tokens = tokens
        self.credentials = credentials
        self.token_service = token_service
        self.lockout = lockout
        self.resolver = resolver
        self.cache = cache
        self.audit = audit
        self.notifier = notifier or LoggingNotifier()
        self._clock = clock
        self.transactions = transactions

    def _transaction(self):
        if self.transactions is None:
            return _no_transaction()
        return self.transactions.transaction()

    async def _role_names(self, account_id: AccountId) -> List[str]:
        return [role.name for role in await self.resolver.resolve_roles(account_id)]

    async def _persist_token(
        self,
        account_id: AccountId,
        kind: TokenKind,
        token: str,
        client: Optional[ClientInfo] = None,
        metadata: Optional[dict] = None,
    ) -> TokenRecord:
        client = client or ClientInfo()
        record = TokenRecord(
            account_id=account_id,
            kind=kind,
            token_hash=self.credentials.hash_opaque_token(token),
            token_hint=self.credentials.token_hint(token),
            expires_at=self._clock() + self.token_service.expiry_for(kind),
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            device_name=client.device_name,
            metadata=metadata or {},
        )
        return await self.tokens.insert(record)

    async def _find_token_record(self, token: str, kind: TokenKind) -> Optional[TokenRecord]:
        return await self.tokens.find_active_by_hash(
            self.credentials.hash_opaque_token(token), kind, self._clock()
        )

    async def _open_session(self, account: Account, client: Optional[ClientInfo]) -> AuthSession:
        """Resolve roles and permissions, then issue and persist a token pair."""
        roles = await self._role_names(account.id)
        self.cache.invalidate(account.id)
        permissions = await self.cache.get(account.id)

        access_token = self.token_service.issue_access(account, roles)
        refresh_token = self.token_service.issue_refresh(account)
        await self._persist_token(account.id, TokenKind.REFRESH, refresh_token, client)

        tokens = TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.token_service.access_ttl.total_seconds()),
        )
        return AuthSession(account=account, roles=roles, permissions=permissions, tokens=tokens)

    async def register(
        self, data: RegistrationInput, client: Optional[ClientInfo] = None
    ) -> Result[AuthSession]:
        """Create an account for an existing employee and sign it in."""
        violation = password_policy_violation(data.password)
        if violation:
            return Result.failure(ErrorKind.VALIDATION, violation)

        email = data.email.strip().lower()
        try:
            if await self.accounts.find_by_email(email) is not None:
                self.audit.security_event(
                    AuditEvent.REGISTRATION_EXISTING_EMAIL, {"email": email}, client
                )
                return Result.failure(ErrorKind.CONFLICT, "User with this email already exists")

            employee = await self.accounts.find_employee(data.employee_code)
            if employee is None:
                return Result.failure(ErrorKind.NOT_FOUND, "Employee not found")

            password_hash = await self.credentials.hash_async(data.password)
            account = await self.accounts.create(NewAccount(
                employee_id=employee.id,
                tenant_id=employee.tenant_id,
                email=email,
                password_hash=password_hash,
            ))
            session = await self._open_session(account, client)
        except ConflictError as e:
            # Lost a race with a concurrent registration
            self.audit.security_event(
                AuditEvent.REGISTRATION_EXISTING_EMAIL, {"email": email}, client
            )
            return Result.failure(ErrorKind.CONFLICT, e.message)
        except StoreError as e:
            return _internal_failure("Registration", e)

        self.audit.record(
            AuditEvent.REGISTRATION,
            account.id,
            {"email": email, "employeeId": str(employee.id)},
            resource="user",
            resource_id=str(account.id),
            tenant_id=account.tenant_id,
            client=client,
        )
        logger.info(f"Account {account.id} registered for employee {employee.id}")
        return Result.success(session)

    async def login(
        self, email: str, password: str, client: Optional[ClientInfo] = None
    ) -> Result[AuthSession]:
        email = email.strip().lower()
        now = self._clock()
        try:
            account = await self.accounts.find_by_email(email)
            if account is None:
                self.audit.security_event(AuditEvent.LOGIN_INVALID_EMAIL, {"email": email}, client)
                return _invalid_credentials()

            if not account.is_active:
                self.audit.security_event(
                    AuditEvent.LOGIN_INACTIVE_USER, {"email": email}, client, actor_id=account.id
                )
                return _invalid_credentials()

            if await self.lockout.release_if_expired(account, now) is LockState.LOCKED:
                self.audit.security_event(
                    AuditEvent.LOGIN_LOCKED_USER,
                    {"email": email, "lockedUntil": account.locked_until},
                    client,
                    actor_id=account.id,
                )
                return _invalid_credentials()

            try:
                verified = await self.credentials.verify_async(password, account.password_hash)
            except CredentialFormatError:
                logger.error(f"Account {account.id} has an unreadable password hash")
                return _invalid_credentials()

            if not verified:
                state = await self.lockout.register_failure(account, now)
                self.audit.security_event(
                    AuditEvent.LOGIN_INVALID_PASSWORD,
                    {"email": email, "failedAttempts": account.failed_login_attempts},
                    client,
                    actor_id=account.id,
                )
                if state is LockState.LOCKED:
                    self.audit.security_event(
                        AuditEvent.ACCOUNT_LOCKED,
                        {"email": email, "lockedUntil": account.locked_until},
                        client,
                        actor_id=account.id,
                    )
                return _invalid_credentials()

            await self.lockout.register_success(account, now)
            session = await self._open_session(account, client)
        except StoreError as e:
            return _internal_failure("Login", e)

        self.audit.record(
            AuditEvent.LOGIN,
            account.id,
            {"email": email},
            tenant_id=account.tenant_id,
            client=client,
        )
        logger.info(f"Account {account.id} logged in")
        return Result.success(session)

    async def refresh(
        self, refresh_token: str, client: Optional[ClientInfo] = None
    ) -> Result[RefreshedAccess]:
        """Issue a new access token. The refresh token itself is not rotated."""
        try:
            claims = self.token_service.verify(refresh_token, TokenKind.REFRESH)
        except InvalidTokenError:
            self.audit.security_event(AuditEvent.REFRESH_TOKEN_INVALID, {}, client)
            return _invalid_token()

        try:
            record = await self._find_token_record(refresh_token, TokenKind.REFRESH)
            if record is None or record.account_id != claims.account_id:
                self.audit.security_event(
                    AuditEvent.REFRESH_TOKEN_NOT_FOUND, {}, client, actor_id=claims.account_id
                )
                return _invalid_token()

            account = await self.accounts.find_by_id(record.account_id)
            if account is None or not account.is_active:
                return _invalid_token()

            access_token = self.token_service.issue_access(
                account, await self._role_names(account.id)
            )
            await self.accounts.update_activity(account.id, self._clock())
        except StoreError as e:
            return _internal_failure("Token refresh", e)

        return Result.success(RefreshedAccess(
            access_token=access_token,
            expires_in=int(self.token_service.access_ttl.total_seconds()),
        ))

    async def logout(
        self,
        refresh_token: Optional[str] = None,
        account_id: Optional[AccountId] = None,
        client: Optional[ClientInfo] = None,
    ) -> Result[None]:
        """Revoke the refresh record when given. Always succeeds."""
        now = self._clock()
        if refresh_token:
            try:
                record = await self._find_token_record(refresh_token, TokenKind.REFRESH)
                if record is not None:
                    await self.tokens.mark_revoked(record.id, now, "logout")
                    account_id = account_id or record.account_id
            except StoreError as e:
                logger.warning(f"Could not revoke refresh token on logout: {e}")

        if account_id is not None:
            try:
                await self.accounts.update_activity(account_id, now)
            except StoreError as e:
                logger.warning(f"Could not update activity for {account_id} on logout: {e}")
            self.audit.record(AuditEvent.LOGOUT, account_id, {}, client=client)

        return Result.success(None)

    async def forgot_password(self, email: str, client: Optional[ClientInfo] = None) -> Result[None]:
        """Issue a reset token when the account exists; the outcome looks the same either way."""
        email = email.strip().lower()
        try:
            account = await self.accounts.find_by_email(email)
            if account is None:
                self.audit.security_event(
                    AuditEvent.PASSWORD_RESET_INVALID_EMAIL, {"email": email}, client
                )
                return Result.success(None)

            now = self._clock()
            await self.tokens.revoke_all_for_account(
                account.id, TokenKind.PASSWORD_RESET, now, "superseded"
            )
            token = self.token_service.issue_single_use(TokenKind.PASSWORD_RESET, account.id)
            await self._persist_token(
                account.id,
                TokenKind.PASSWORD_RESET,
                token,
                client,
                metadata={"requestedAt": now.isoformat()},
            )
            await self.notifier.send_password_reset(account, token)
        except StoreError as e:
            return _internal_failure("Password reset request", e)

        self.audit.security_event(
            AuditEvent.PASSWORD_RESET_REQUEST, {"email": email}, client, actor_id=account.id, success=True
        )
        return Result.success(None)

    async def reset_password(
        self, token: str, new_password: str, client: Optional[ClientInfo] = None
    ) -> Result[None]:
        """Set a new password, unlock the account and end every session."""
        violation = password_policy_violation(new_password)
        if violation:
            return Result.failure(ErrorKind.VALIDATION, violation)

        try:
            claims = self.token_service.verify(token, TokenKind.PASSWORD_RESET)
        except InvalidTokenError:
            self.audit.security_event(AuditEvent.PASSWORD_RESET_INVALID_TOKEN, {}, client)
            return Result.failure(ErrorKind.VALIDATION, INVALID_RESET_TOKEN_MESSAGE)

        try:
            record = await self._find_token_record(token, TokenKind.PASSWORD_RESET)
            if record is None or (claims.account_id and record.account_id != claims.account_id):
                self.audit.security_event(AuditEvent.PASSWORD_RESET_INVALID_TOKEN, {}, client)
                return Result.failure(ErrorKind.VALIDATION, INVALID_RESET_TOKEN_MESSAGE)

            account_id = record.account_id
            password_hash = await self.credentials.hash_async(new_password)
            now = self._clock()
            async with self._transaction():
                # Consuming the token first lets exactly one concurrent redemption through
                if not await self.tokens.mark_used(record.id, now):
                    self.audit.security_event(AuditEvent.PASSWORD_RESET_INVALID_TOKEN, {}, client)
                    return Result.failure(ErrorKind.VALIDATION, INVALID_RESET_TOKEN_MESSAGE)
                await self.tokens.mark_revoked(record.id, now, "password_reset")
                revoked = await self.tokens.revoke_all_for_account(
                    account_id, TokenKind.REFRESH, now, "password_reset"
                )
                await self.accounts.update_credential(
                    account_id, password_hash, now, must_change_password=False
                )
                await self.lockout.reset(account_id)
        except StoreError as e:
            return _internal_failure("Password reset", e)

        self.cache.invalidate(account_id)
        self.audit.security_event(
            AuditEvent.PASSWORD_RESET_SUCCESS,
            {"revokedSessions": revoked},
            client,
            actor_id=account_id,
            success=True,
        )
        logger.info(f"Password reset for account {account_id}; {revoked} sessions revoked")
        return Result.success(None)

    async def change_password(
        self,
        account_id: AccountId,
        current_password: str,
        new_password: str,
        current_refresh_token: Optional[str] = None,
        client: Optional[ClientInfo] = None,
    ) -> Result[None]:
        """Change the password of a signed-in account.

        Every other refresh token of the account is revoked; the one the
        caller presents, if any, stays valid.
        """
        violation = password_policy_violation(new_password)
        if violation:
            return Result.failure(ErrorKind.VALIDATION, violation)

        try:
            account = await self.accounts.find_by_id(account_id)
            if account is None or not account.is_active:
                return _invalid_credentials()

            try:
                verified = await self.credentials.verify_async(current_password, account.password_hash)
            except CredentialFormatError:
                return _invalid_credentials()
            if not verified:
                return Result.failure(ErrorKind.VALIDATION, "Current password is incorrect")

            now = self._clock()
            keep_id = None
            if current_refresh_token:
                current = await self._find_token_record(current_refresh_token, TokenKind.REFRESH)
                if current is not None and current.account_id == account_id:
                    keep_id = current.id

            password_hash = await self.credentials.hash_async(new_password)
            async with self._transaction():
                await self.tokens.revoke_all_for_account(
                    account_id, TokenKind.REFRESH, now, "password_changed", except_id=keep_id
                )
                await self.accounts.update_credential(
                    account_id, password_hash, now, must_change_password=False
                )
        except StoreError as e:
            return _internal_failure("Password change", e)

        self.audit.security_event(
            AuditEvent.PASSWORD_CHANGED, {}, client, actor_id=account_id, success=True
        )
        return Result.success(None)

    async def request_email_verification(
        self, account_id: AccountId, client: Optional[ClientInfo] = None
    ) -> Result[None]:
        try:
            account = await self.accounts.find_by_id(account_id)
            if account is None:
                return Result.failure(ErrorKind.NOT_FOUND, "User not found")
            if account.is_email_verified:
                return Result.failure(ErrorKind.CONFLICT, "Email is already verified")

            now = self._clock()
            await self.tokens.revoke_all_for_account(
                account_id, TokenKind.EMAIL_VERIFICATION, now, "superseded"
            )
            token = self.token_service.issue_single_use(TokenKind.EMAIL_VERIFICATION, account_id)
            await self._persist_token(account_id, TokenKind.EMAIL_VERIFICATION, token, client)
            await self.notifier.send_email_verification(account, token)
        except StoreError as e:
            return _internal_failure("Email verification request", e)

        self.audit.record(AuditEvent.EMAIL_VERIFICATION_REQUEST, account_id, {}, client=client)
        return Result.success(None)

    async def verify_email(self, token: str, client: Optional[ClientInfo] = None) -> Result[None]:
        try:
            claims = self.token_service.verify(token, TokenKind.EMAIL_VERIFICATION)
        except InvalidTokenError:
            return Result.failure(ErrorKind.VALIDATION, INVALID_VERIFICATION_TOKEN_MESSAGE)

        try:
            record = await self._find_token_record(token, TokenKind.EMAIL_VERIFICATION)
            if record is None or (claims.account_id and record.account_id != claims.account_id):
                return Result.failure(ErrorKind.VALIDATION, INVALID_VERIFICATION_TOKEN_MESSAGE)

            now = self._clock()
            async with self._transaction():
                if not await self.tokens.mark_used(record.id, now):
                    return Result.failure(ErrorKind.VALIDATION, INVALID_VERIFICATION_TOKEN_MESSAGE)
                await self.accounts.mark_email_verified(record.account_id, now)
        except StoreError as e:
            return _internal_failure("Email verification", e)

        self.audit.record(AuditEvent.EMAIL_VERIFIED, record.account_id, {}, client=client)
        return Result.success(None)

    async def get_profile(self, account_id: AccountId) -> Result[Profile]:
        try:
            account = await self.accounts.find_by_id(account_id)
            if account is None:
                return Result.failure(ErrorKind.NOT_FOUND, "User not found")
            employee = await self.accounts.find_employee_by_id(account.employee_id)
            roles = await self._role_names(account_id)
            permissions = await self.cache.get(account_id)
        except StoreError as e:
            return _internal_failure("Profile lookup", e)

        return Result.success(Profile(
            account=account, employee=employee, roles=roles, permissions=permissions
        ))
