from .requests import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from .responses import (
    AccessTokenResponse,
    EmployeeSummary,
    ProfileResponse,
    RefreshResponse,
    SessionResponse,
    TokenResponse,
    UserResponse,
)

__all__ = [
    "ChangePasswordRequest",
    "ForgotPasswordRequest",
    "LoginRequest",
    "LogoutRequest",
    "RefreshTokenRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "VerifyEmailRequest",
    "AccessTokenResponse",
    "EmployeeSummary",
    "ProfileResponse",
    "RefreshResponse",
    "SessionResponse",
    "TokenResponse",
    "UserResponse",
]
