from .requests import (
    AssignPermissionsRequest,
    AssignRolesRequest,
    CreatePermissionRequest,
    CreateRoleRequest,
    UpdatePermissionRequest,
    UpdateRoleRequest,
)

__all__ = [
    "AssignPermissionsRequest",
    "AssignRolesRequest",
    "CreatePermissionRequest",
    "CreateRoleRequest",
    "UpdatePermissionRequest",
    "UpdateRoleRequest",
]
