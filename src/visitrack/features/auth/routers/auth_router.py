"""Authentication API router."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status

from ....config.constants import PASSWORD_RESET_REQUESTED_MESSAGE
from ....core.shared import APIResponse
from ..dependencies import AuthDependencies, client_info
from ..entities.auth_context import AuthContext
from ..entities.session import RegistrationInput
from ..models.requests import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from ..models.responses import (
    AccessTokenResponse,
    ProfileResponse,
    RefreshResponse,
    SessionResponse,
)
from ..services.auth_service import AuthService


def create_auth_router(auth_service: AuthService, auth: AuthDependencies) -> APIRouter:
    """Build the ``/auth`` router bound to the given services."""
    router = APIRouter(prefix="/auth", tags=["Authentication"])

    @router.post(
        "/register",
        response_model=APIResponse[SessionResponse],
        status_code=status.HTTP_201_CREATED,
        summary="Register an account for an existing employee",
    )
    async def register(request: Request, data: RegisterRequest):
        result = await auth_service.register(
            RegistrationInput(employee_code=data.employee_id, email=data.email, password=data.password),
            client_info(request),
        )
        return APIResponse.success_response(
            SessionResponse.from_session(result.unwrap()), "User registered successfully"
        )

    @router.post("/login", response_model=APIResponse[SessionResponse], summary="Login")
    async def login(request: Request, data: LoginRequest):
        result = await auth_service.login(data.email, data.password, client_info(request))
        return APIResponse.success_response(SessionResponse.from_session(result.unwrap()), "Login successful")

    @router.post("/refresh", response_model=APIResponse[RefreshResponse], summary="Refresh access token")
    async def refresh(request: Request, data: RefreshTokenRequest):
        result = await auth_service.refresh(data.refresh_token, client_info(request))
        return APIResponse.success_response(
            RefreshResponse(tokens=AccessTokenResponse.from_refreshed(result.unwrap())),
            "Token refreshed successfully",
        )

    @router.post("/logout", response_model=APIResponse[None], summary="Logout")
    async def logout(
        request: Request,
        data: Optional[LogoutRequest] = None,
        current_user: Optional[AuthContext] = Depends(auth.get_optional_user),
    ):
        await auth_service.logout(
            refresh_token=data.refresh_token if data else None,
            account_id=current_user.account_id if current_user else None,
            client=client_info(request),
        )
        return APIResponse.success_response(message="Logged out successfully")

    @router.get("/me", response_model=APIResponse[ProfileResponse], summary="Current user profile")
    async def me(current_user: AuthContext = Depends(auth.get_current_user)):
        result = await auth_service.get_profile(current_user.account_id)
        return APIResponse.success_response(ProfileResponse.from_profile(result.unwrap()))

    @router.post("/forgot-password", response_model=APIResponse[None], summary="Request a password reset")
    async def forgot_password(request: Request, data: ForgotPasswordRequest):
        result = await auth_service.forgot_password(data.email, client_info(request))
        result.unwrap()
        return APIResponse.success_response(message=PASSWORD_RESET_REQUESTED_MESSAGE)

    @router.post("/reset-password", response_model=APIResponse[None], summary="Reset password with a token")
    async def reset_password(request: Request, data: ResetPasswordRequest):
        result = await auth_service.reset_password(data.token, data.password, client_info(request))
        result.unwrap()
        return APIResponse.success_response(message="Password reset successfully")

    @router.post("/change-password", response_model=APIResponse[None], summary="Change password")
    async def change_password(
        request: Request,
        data: ChangePasswordRequest,
        current_user: AuthContext = Depends(auth.get_current_user),
    ):
        result = await auth_service.change_password(
            current_user.account_id,
            data.current_password,
            data.new_password,
            current_refresh_token=data.refresh_token,
            client=client_info(request),
        )
        result.unwrap()
        return APIResponse.success_response(message="Password changed successfully")

    @router.post("/verify-email/request", response_model=APIResponse[None], summary="Send a verification email")
    async def request_email_verification(
        request: Request,
        current_user: AuthContext = Depends(auth.get_current_user),
    ):
        result = await auth_service.request_email_verification(current_user.account_id, client_info(request))
        result.unwrap()
        return APIResponse.success_response(message="Verification email sent")

    @router.post("/verify-email", response_model=APIResponse[None], summary="Verify email with a token")
    async def verify_email(request: Request, data: VerifyEmailRequest):
        result = await auth_service.verify_email(data.token, client_info(request))
        result.unwrap()
        return APIResponse.success_response(message="Email verified successfully")

    return router
