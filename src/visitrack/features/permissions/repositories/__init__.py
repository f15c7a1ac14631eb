from .role_repository import AsyncPGRoleRepository

__all__ = ["AsyncPGRoleRepository"]
