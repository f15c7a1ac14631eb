from .requests import CreateUserRequest, UpdateUserRequest

__all__ = ["CreateUserRequest", "UpdateUserRequest"]
