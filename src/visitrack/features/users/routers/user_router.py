"""User administration API router."""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ....core.shared import APIResponse
from ....core.value_objects import AccountId
from ...auth.dependencies import AuthDependencies
from ...auth.entities.account import AccountFilter
from ...auth.entities.auth_context import AuthContext
from ..models.requests import CreateUserRequest, UpdateUserRequest
from ..services.user_admin_service import UserAdminService


def create_user_router(users: UserAdminService, auth: AuthDependencies) -> APIRouter:
    """Build the ``/users`` router. Every route requires a ``users:*`` permission."""
    router = APIRouter(prefix="/users", tags=["Users"])

    @router.get("", response_model=APIResponse[Dict[str, Any]], summary="List users")
    async def list_users(
        search: Optional[str] = Query(None, min_length=1, max_length=100, description="Email, employee code or name"),
        role: Optional[str] = Query(None, description="Role name or slug"),
        is_active: Optional[bool] = Query(None, alias="isActive"),
        limit: int = Query(25, ge=1, le=100),
        offset: int = Query(0, ge=0),
        current_user: AuthContext = Depends(auth.require_all("users:read")),
    ):
        page = await users.list_users(
            current_user,
            AccountFilter(search=search, role=role, is_active=is_active),
            limit=limit,
            offset=offset,
        )
        return APIResponse.success_response(page)

    @router.post(
        "",
        response_model=APIResponse[Dict[str, Any]],
        status_code=status.HTTP_201_CREATED,
        summary="Create user",
    )
    async def create_user(
        data: CreateUserRequest,
        current_user: AuthContext = Depends(auth.require_all("users:create")),
    ):
        user = await users.create_user(
            current_user,
            employee_id=data.employee_id,
            email=data.email,
            password=data.password,
            role_ids=data.role_ids,
            mfa_enabled=data.mfa_enabled,
        )
        return APIResponse.success_response(user, "User created successfully")

    @router.get("/{user_id}", response_model=APIResponse[Dict[str, Any]], summary="Get user")
    async def get_user(
        user_id: UUID,
        current_user: AuthContext = Depends(auth.require_all("users:read")),
    ):
        return APIResponse.success_response(await users.get_user(current_user, AccountId(user_id)))

    @router.put("/{user_id}", response_model=APIResponse[Dict[str, Any]], summary="Update user")
    async def update_user(
        user_id: UUID,
        data: UpdateUserRequest,
        current_user: AuthContext = Depends(auth.require_all("users:update")),
    ):
        user = await users.update_user(
            current_user,
            AccountId(user_id),
            email=data.email,
            password=data.password,
            mfa_enabled=data.mfa_enabled,
            is_active=data.is_active,
        )
        return APIResponse.success_response(user, "User updated successfully")

    @router.delete("/{user_id}", response_model=APIResponse[None], summary="Deactivate user")
    async def deactivate_user(
        user_id: UUID,
        current_user: AuthContext = Depends(auth.require_all("users:delete")),
    ):
        await users.deactivate_user(current_user, AccountId(user_id))
        return APIResponse.success_response(message="User deactivated successfully")

    return router
