"""Permission feature entities."""

from .permission import NewPermission, Permission
from .protocols import PermissionCacheProtocol, RoleRepository
from .role import NewRole, Role, RoleAssignment, RolePermissionGrant

__all__ = [
    "NewPermission",
    "Permission",
    "PermissionCacheProtocol",
    "RoleRepository",
    "NewRole",
    "Role",
    "RoleAssignment",
    "RolePermissionGrant",
]
