from .auth_router import create_auth_router

__all__ = ["create_auth_router"]
