"""Authentication API request models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..services.credential_service import password_policy_violation


class _CamelModel(BaseModel):
    """Accepts both the camelCase wire names and the field names."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


def _check_password_policy(value: str) -> str:
    violation = password_policy_violation(value)
    if violation:
        raise ValueError(violation)
    return value


class LoginRequest(_CamelModel):
    """User login request."""

    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., min_length=1, max_length=255, description="Password")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class RegisterRequest(_CamelModel):
    """Account registration for an existing employee."""

    employee_id: str = Field(
        ..., alias="employeeId", min_length=1, max_length=50, description="Employee code"
    )
    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., max_length=128, description="Password")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        """Validate password strength."""
        return _check_password_policy(v)


class RefreshTokenRequest(_CamelModel):
    """Token refresh request."""

    refresh_token: str = Field(..., alias="refreshToken", min_length=1, description="Valid refresh token")


class LogoutRequest(_CamelModel):
    """Logout request; the refresh token is optional."""

    refresh_token: Optional[str] = Field(None, alias="refreshToken", description="Refresh token to revoke")


class ForgotPasswordRequest(_CamelModel):
    """Forgot password request."""

    email: EmailStr = Field(..., description="Account email address")


class ResetPasswordRequest(_CamelModel):
    """Password reset with a single-use token."""

    token: str = Field(..., min_length=1, description="Password reset token")
    password: str = Field(..., max_length=128, description="New password")

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password_policy(v)


class ChangePasswordRequest(_CamelModel):
    """Password change for a signed-in account."""

    current_password: str = Field(..., alias="currentPassword", min_length=1, description="Current password")
    new_password: str = Field(..., alias="newPassword", max_length=128, description="New password")
    refresh_token: Optional[str] = Field(
        None, alias="refreshToken", description="Refresh token that stays valid after the change"
    )

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        return _check_password_policy(v)


class VerifyEmailRequest(_CamelModel):
    """Email verification with a single-use token."""

    token: str = Field(..., min_length=1, description="Email verification token")
