"""Role administration API router."""

from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ....core.shared import APIResponse
from ...auth.dependencies import AuthDependencies
from ...auth.entities.auth_context import AuthContext
from ..models.requests import AssignPermissionsRequest, CreateRoleRequest, UpdateRoleRequest
from ..services.role_admin_service import RoleAdminService


def create_role_router(admin: RoleAdminService, auth: AuthDependencies) -> APIRouter:
    """Build the ``/roles`` router. Every route requires a ``roles:*`` permission."""
    router = APIRouter(prefix="/roles", tags=["Roles"])

    @router.get("", response_model=APIResponse[List[Dict[str, Any]]], summary="List roles")
    async def list_roles(current_user: AuthContext = Depends(auth.require_all("roles:read"))):
        roles = await admin.list_roles(current_user)
        return APIResponse.success_response([role.to_dict() for role in roles])

    @router.post(
        "",
        response_model=APIResponse[Dict[str, Any]],
        status_code=status.HTTP_201_CREATED,
        summary="Create role",
    )
    async def create_role(
        data: CreateRoleRequest,
        current_user: AuthContext = Depends(auth.require_all("roles:create")),
    ):
        role = await admin.create_role(
            current_user,
            name=data.name,
            slug=data.slug,
            description=data.description,
            is_system_role=data.is_system_role,
            permission_ids=data.permission_ids,
        )
        return APIResponse.success_response(
            await admin.get_role(current_user, role.id), "Role created successfully"
        )

    @router.get("/{role_id}", response_model=APIResponse[Dict[str, Any]], summary="Get role")
    async def get_role(role_id: UUID, current_user: AuthContext = Depends(auth.require_all("roles:read"))):
        return APIResponse.success_response(await admin.get_role(current_user, role_id))

    @router.put("/{role_id}", response_model=APIResponse[Dict[str, Any]], summary="Update role")
    async def update_role(
        role_id: UUID,
        data: UpdateRoleRequest,
        current_user: AuthContext = Depends(auth.require_all("roles:update")),
    ):
        role = await admin.update_role(
            current_user,
            role_id,
            name=data.name,
            description=data.description,
            is_active=data.is_active,
        )
        return APIResponse.success_response(role.to_dict(), "Role updated successfully")

    @router.delete("/{role_id}", response_model=APIResponse[None], summary="Delete role")
    async def delete_role(role_id: UUID, current_user: AuthContext = Depends(auth.require_all("roles:delete"))):
        await admin.delete_role(current_user, role_id)
        return APIResponse.success_response(message="Role deleted successfully")

    @router.put(
        "/{role_id}/permissions",
        response_model=APIResponse[Dict[str, Any]],
        summary="Assign permissions to role",
    )
    async def assign_permissions(
        role_id: UUID,
        data: AssignPermissionsRequest,
        current_user: AuthContext = Depends(auth.require_all("roles:assign-permissions")),
    ):
        await admin.assign_permissions(current_user, role_id, data.permission_ids)
        return APIResponse.success_response(
            await admin.get_role(current_user, role_id), "Permissions assigned successfully"
        )

    @router.delete(
        "/{role_id}/permissions/{permission_id}",
        response_model=APIResponse[None],
        summary="Remove permission from role",
    )
    async def remove_permission(
        role_id: UUID,
        permission_id: UUID,
        current_user: AuthContext = Depends(auth.require_all("roles:assign-permissions")),
    ):
        await admin.remove_permission(current_user, role_id, permission_id)
        return APIResponse.success_response(message="Permission removed successfully")

    return router
