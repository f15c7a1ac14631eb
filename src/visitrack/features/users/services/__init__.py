from .user_admin_service import UserAdminService

__all__ = ["UserAdminService"]
