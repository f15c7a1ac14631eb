from .identifiers import AccountId, PermissionCode, TenantId

__all__ = ["AccountId", "PermissionCode", "TenantId"]
