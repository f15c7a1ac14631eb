from .authorization_service import (
    AuthorizationService,
    GateOutcome,
    GateResult,
    PermissionGate,
    RoleGate,
)
from .permission_cache import PermissionCache
from .permission_resolver import PermissionResolver
from .role_admin_service import RoleAdminService

__all__ = [
    "AuthorizationService",
    "GateOutcome",
    "GateResult",
    "PermissionGate",
    "RoleGate",
    "PermissionCache",
    "PermissionResolver",
    "RoleAdminService",
]
