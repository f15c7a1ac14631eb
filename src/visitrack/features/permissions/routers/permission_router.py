"""Permission administration API router."""

from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ....core.shared import APIResponse
from ...auth.dependencies import AuthDependencies
from ...auth.entities.auth_context import AuthContext
from ..models.requests import CreatePermissionRequest, UpdatePermissionRequest
from ..services.role_admin_service import RoleAdminService


def create_permission_router(admin: RoleAdminService, auth: AuthDependencies) -> APIRouter:
    """Build the ``/permissions`` router."""
    router = APIRouter(prefix="/permissions", tags=["Permissions"])

    @router.get("", response_model=APIResponse[List[Dict[str, Any]]], summary="List permissions")
    async def list_permissions(_: AuthContext = Depends(auth.require_all("permissions:read"))):
        permissions = await admin.list_permissions()
        return APIResponse.success_response([p.to_dict() for p in permissions])

    @router.get("/resources", response_model=APIResponse[List[str]], summary="List permission resources")
    async def list_resources(_: AuthContext = Depends(auth.require_all("permissions:read"))):
        permissions = await admin.list_permissions()
        return APIResponse.success_response(sorted({p.resource for p in permissions}))

    @router.get("/actions", response_model=APIResponse[List[str]], summary="List permission actions")
    async def list_actions(_: AuthContext = Depends(auth.require_all("permissions:read"))):
        permissions = await admin.list_permissions()
        return APIResponse.success_response(sorted({p.action for p in permissions}))

    @router.post(
        "",
        response_model=APIResponse[Dict[str, Any]],
        status_code=status.HTTP_201_CREATED,
        summary="Create permission",
    )
    async def create_permission(
        data: CreatePermissionRequest,
        current_user: AuthContext = Depends(auth.require_all("permissions:create")),
    ):
        permission = await admin.create_permission(
            current_user,
            name=data.name,
            resource=data.resource,
            action=data.action,
            description=data.description,
        )
        return APIResponse.success_response(permission.to_dict(), "Permission created successfully")

    @router.get("/{permission_id}", response_model=APIResponse[Dict[str, Any]], summary="Get permission")
    async def get_permission(
        permission_id: UUID,
        _: AuthContext = Depends(auth.require_all("permissions:read")),
    ):
        permission = await admin.get_permission(permission_id)
        return APIResponse.success_response(permission.to_dict())

    @router.put("/{permission_id}", response_model=APIResponse[Dict[str, Any]], summary="Update permission")
    async def update_permission(
        permission_id: UUID,
        data: UpdatePermissionRequest,
        current_user: AuthContext = Depends(auth.require_all("permissions:update")),
    ):
        permission = await admin.update_permission(
            current_user, permission_id, name=data.name, description=data.description
        )
        return APIResponse.success_response(permission.to_dict(), "Permission updated successfully")

    @router.delete("/{permission_id}", response_model=APIResponse[None], summary="Delete permission")
    async def delete_permission(
        permission_id: UUID,
        current_user: AuthContext = Depends(auth.require_all("permissions:delete")),
    ):
        await admin.delete_permission(current_user, permission_id)
        return APIResponse.success_response(message="Permission deleted successfully")

    return router
