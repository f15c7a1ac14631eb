"""Account and employee domain entities.

An account (``system_users`` row) is the login identity of an employee.
Every account belongs to exactly one organization (tenant).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

from ....core.value_objects import AccountId, TenantId
from ....utils.datetime import utc_now


@dataclass
class Account:
    """System user with credential and lockout state."""

    id: AccountId
    employee_id: UUID
    tenant_id: TenantId
    email: str
    password_hash: str

    is_active: bool = True

    # Lockout state
    is_locked: bool = False
    lock_reason: Optional[str] = None
    locked_at: Optional[datetime] = None
    locked_until: Optional[datetime] = None
    failed_login_attempts: int = 0
    last_failed_login_at: Optional[datetime] = None

    # Activity tracking
    last_successful_login_at: Optional[datetime] = None
    last_password_change_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    must_change_password: bool = False
    email_verified_at: Optional[datetime] = None

    # MFA secret is stored opaque; verification is not handled here
    mfa_enabled: bool = False
    mfa_secret: Optional[str] = field(default=None, repr=False)

    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_email_verified(self) -> bool:
        return self.email_verified_at is not None

    def to_public_dict(self) -> dict:
        """Account fields safe to return to clients."""
        return {
            "id": str(self.id),
            "employeeId": str(self.employee_id),
            "organizationId": str(self.tenant_id),
            "email": self.email,
            "isActive": self.is_active,
            "mustChangePassword": self.must_change_password,
            "mfaEnabled": self.mfa_enabled,
            "emailVerified": self.is_email_verified,
            "lastSuccessfulLoginAt": (
                self.last_successful_login_at.isoformat()
                if self.last_successful_login_at else None
            ),
        }


@dataclass(frozen=True)
class Employee:
    """Read-only view of an employee, used to link new accounts."""

    id: UUID
    tenant_id: TenantId
    first_name: str
    last_name: str
    employee_code: Optional[str] = None
    email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class LockoutUpdate:
    """Lockout columns written together by ``update_lockout_state``."""

    is_locked: bool
    failed_login_attempts: int
    lock_reason: Optional[str] = None
    locked_at: Optional[datetime] = None
    locked_until: Optional[datetime] = None

    @classmethod
    def cleared(cls) -> "LockoutUpdate":
        return cls(is_locked=False, failed_login_attempts=0)


@dataclass(frozen=True)
class NewAccount:
    """Values needed to insert an account."""

    employee_id: UUID
    tenant_id: TenantId
    email: str
    password_hash: str
    must_change_password: bool = False
    mfa_enabled: bool = False


@dataclass(frozen=True)
class AccountFilter:
    """Optional filters for listing an organization's accounts."""

    search: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None
