"""Protocol interfaces for the auth feature's stores."""

from abc import abstractmethod
from datetime import datetime
from typing import Any, AsyncContextManager, List, Optional, Protocol, Tuple, runtime_checkable
from uuid import UUID

from ....config.constants import TokenKind
from ....core.value_objects import AccountId, TenantId
from .account import Account, AccountFilter, Employee, LockoutUpdate, NewAccount
from .token_record import TokenRecord


@runtime_checkable
class AccountRepository(Protocol):
    """Protocol for account (system user) persistence."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Account]:
        """Find an account by email, case-insensitively."""
        ...

    @abstractmethod
    async def find_by_id(self, account_id: AccountId) -> Optional[Account]:
        ...

    @abstractmethod
    async def create(self, new_account: NewAccount) -> Account:
        """Insert an account.

        Raises:
            ConflictError: If the email or the employee already has an account
        """
        ...

    @abstractmethod
    async def list_accounts(
        self,
        tenant_id: TenantId,
        filters: Optional[AccountFilter] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> Tuple[List[Account], int]:
        """Page through an organization's accounts, returning the page and the total."""
        ...

    @abstractmethod
    async def update_account(
        self,
        account_id: AccountId,
        email: Optional[str] = None,
        is_active: Optional[bool] = None,
        mfa_enabled: Optional[bool] = None,
    ) -> Optional[Account]:
        """Change the given fields; None leaves a field untouched."""
        ...

    @abstractmethod
    async def find_employee(self, employee_code: str) -> Optional[Employee]:
        """Find an employee by company employee code."""
        ...

    @abstractmethod
    async def find_employee_by_id(self, employee_id: UUID) -> Optional[Employee]:
        ...

    @abstractmethod
    async def update_credential(
        self,
        account_id: AccountId,
        password_hash: str,
        changed_at: datetime,
        must_change_password: bool = False,
    ) -> None:
        ...

    @abstractmethod
    async def update_lockout_state(self, account_id: AccountId, update: LockoutUpdate) -> None:
        ...

    @abstractmethod
    async def record_failed_login(self, account_id: AccountId, at: datetime) -> int:
        """Atomically increment the failure counter and return the new value."""
        ...

    @abstractmethod
    async def update_activity(
        self, account_id: AccountId, at: datetime, successful_login: bool = False
    ) -> None:
        ...

    @abstractmethod
    async def mark_email_verified(self, account_id: AccountId, at: datetime) -> None:
        ...


@runtime_checkable
class TokenRepository(Protocol):
    """Protocol for persisted refresh and single-use token records."""

    @abstractmethod
    async def insert(self, record: TokenRecord) -> TokenRecord:
        ...

    @abstractmethod
    async def find_active_by_hash(
        self, token_hash: str, kind: TokenKind, now: datetime
    ) -> Optional[TokenRecord]:
        """Return the record when it is active, unused and unexpired at ``now``."""
        ...

    @abstractmethod
    async def mark_revoked(self, record_id: UUID, at: datetime, reason: str) -> None:
        ...

    @abstractmethod
    async def mark_used(self, record_id: UUID, at: datetime) -> bool:
        """Mark the token used; False when it was not active and unused."""
        ...

    @abstractmethod
    async def revoke_all_for_account(
        self,
        account_id: AccountId,
        kind: Optional[TokenKind],
        at: datetime,
        reason: str,
        except_id: Optional[UUID] = None,
    ) -> int:
        """Revoke every active record of the account, returning how many changed."""
        ...


@runtime_checkable
class PasswordResetNotifier(Protocol):
    """Delivers password reset and verification links to account holders."""

    @abstractmethod
    async def send_password_reset(self, account: Account, token: str) -> None:
        ...

    @abstractmethod
    async def send_email_verification(self, account: Account, token: str) -> None:
        ...


@runtime_checkable
class TransactionManager(Protocol):
    """Scopes a group of repository writes to one commit."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[Any]:
        ...
