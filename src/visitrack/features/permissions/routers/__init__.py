from .permission_router import create_permission_router
from .role_router import create_role_router
from .user_role_router import create_user_role_router

__all__ = ["create_permission_router", "create_role_router", "create_user_role_router"]
