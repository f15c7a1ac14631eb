from .user_router import create_user_router

__all__ = ["create_user_router"]
