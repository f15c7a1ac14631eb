"""User role assignment API router."""

from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends

from ....core.shared import APIResponse
from ....core.value_objects import AccountId
from ...auth.dependencies import AuthDependencies
from ...auth.entities.auth_context import AuthContext
from ..models.requests import AssignRolesRequest
from ..services.role_admin_service import RoleAdminService


def create_user_role_router(admin: RoleAdminService, auth: AuthDependencies) -> APIRouter:
    """Build the ``/users/{id}/roles`` router."""
    router = APIRouter(prefix="/users", tags=["User Roles"])

    @router.get("/{user_id}/roles", response_model=APIResponse[List[Dict[str, Any]]], summary="List user roles")
    async def list_user_roles(
        user_id: UUID,
        current_user: AuthContext = Depends(auth.require_all("users:read")),
    ):
        roles = await admin.list_account_roles(current_user, AccountId(user_id))
        return APIResponse.success_response([role.to_dict() for role in roles])

    @router.put("/{user_id}/roles", response_model=APIResponse[List[Dict[str, Any]]], summary="Assign roles")
    async def assign_roles(
        user_id: UUID,
        data: AssignRolesRequest,
        current_user: AuthContext = Depends(auth.require_all("users:assign-roles")),
    ):
        roles = await admin.assign_roles(
            current_user, AccountId(user_id), data.role_ids, expires_at=data.expires_at
        )
        return APIResponse.success_response([role.to_dict() for role in roles], "Roles assigned successfully")

    @router.delete(
        "/{user_id}/roles/{role_id}",
        response_model=APIResponse[List[Dict[str, Any]]],
        summary="Remove role from user",
    )
    async def remove_role(
        user_id: UUID,
        role_id: UUID,
        current_user: AuthContext = Depends(auth.require_all("users:assign-roles")),
    ):
        roles = await admin.remove_role(current_user, AccountId(user_id), role_id)
        return APIResponse.success_response([role.to_dict() for role in roles], "Role removed successfully")

    return router
