"""User administration request models."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ...auth.services.credential_service import password_policy_violation


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


def _check_password_policy(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    violation = password_policy_violation(value)
    if violation:
        raise ValueError(violation)
    return value


class CreateUserRequest(_CamelModel):
    """Account creation for an employee of the caller's organization."""

    employee_id: UUID = Field(..., alias="employeeId", description="Employee record ID")
    email: EmailStr
    password: str = Field(..., max_length=128)
    role_ids: List[UUID] = Field(default_factory=list, alias="roleIds")
    mfa_enabled: bool = Field(False, alias="mfaEnabled")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password_policy(v)


class UpdateUserRequest(_CamelModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, max_length=128)
    mfa_enabled: Optional[bool] = Field(None, alias="mfaEnabled")
    is_active: Optional[bool] = Field(None, alias="isActive")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower() if v else v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password_policy(v)
