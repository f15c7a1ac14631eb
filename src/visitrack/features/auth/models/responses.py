"""Authentication API response models.

Fields are serialized in camelCase to match the public API.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..entities.account import Account, Employee
from ..entities.session import AuthSession, Profile, RefreshedAccess, TokenPair


class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenResponse(_ResponseModel):
    """Access and refresh token pair."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="Refresh token")
    token_type: str = Field(default="Bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiry in seconds")

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenResponse":
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            token_type=pair.token_type,
            expires_in=pair.expires_in,
        )


class AccessTokenResponse(_ResponseModel):
    """New access token; the refresh token is not rotated."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int

    @classmethod
    def from_refreshed(cls, refreshed: RefreshedAccess) -> "AccessTokenResponse":
        return cls(
            access_token=refreshed.access_token,
            token_type=refreshed.token_type,
            expires_in=refreshed.expires_in,
        )


class EmployeeSummary(_ResponseModel):
    id: str
    employee_code: Optional[str] = None
    first_name: str
    last_name: str

    @classmethod
    def from_employee(cls, employee: Employee) -> "EmployeeSummary":
        return cls(
            id=str(employee.id),
            employee_code=employee.employee_code,
            first_name=employee.first_name,
            last_name=employee.last_name,
        )


class UserResponse(_ResponseModel):
    """Account as returned to its owner, with roles and permissions."""

    id: str
    email: str
    employee_id: str
    organization_id: str
    is_active: bool
    must_change_password: bool
    mfa_enabled: bool
    email_verified: bool
    last_successful_login_at: Optional[datetime] = None
    employee: Optional[EmployeeSummary] = None
    roles: List[str] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        account: Account,
        roles: List[str],
        permissions,
        employee: Optional[Employee] = None,
    ) -> "UserResponse":
        return cls(
            id=str(account.id),
            email=account.email,
            employee_id=str(account.employee_id),
            organization_id=str(account.tenant_id),
            is_active=account.is_active,
            must_change_password=account.must_change_password,
            mfa_enabled=account.mfa_enabled,
            email_verified=account.is_email_verified,
            last_successful_login_at=account.last_successful_login_at,
            employee=EmployeeSummary.from_employee(employee) if employee else None,
            roles=list(roles),
            permissions=sorted(permissions),
        )


class SessionResponse(_ResponseModel):
    """Login and registration payload."""

    user: UserResponse
    tokens: TokenResponse

    @classmethod
    def from_session(cls, session: AuthSession) -> "SessionResponse":
        return cls(
            user=UserResponse.build(session.account, session.roles, session.permissions),
            tokens=TokenResponse.from_pair(session.tokens),
        )


class RefreshResponse(_ResponseModel):
    tokens: AccessTokenResponse


class ProfileResponse(_ResponseModel):
    user: UserResponse

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileResponse":
        return cls(user=UserResponse.build(
            profile.account, profile.roles, profile.permissions, profile.employee
        ))
