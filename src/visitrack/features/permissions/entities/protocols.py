"""Protocol interfaces for the permissions feature.

``RoleRepository`` covers both the reads used by permission resolution
and the mutations used by role administration.
"""

from abc import abstractmethod
from datetime import datetime
from typing import FrozenSet, List, Optional, Protocol, Sequence, runtime_checkable
from uuid import UUID

from ....core.value_objects import AccountId, TenantId
from .permission import NewPermission, Permission
from .role import NewRole, Role, RoleAssignment, RolePermissionGrant


@runtime_checkable
class RoleRepository(Protocol):
    """Protocol for role, permission and assignment persistence."""

    # Resolution reads

    @abstractmethod
    async def list_active_assignments(self, account_id: AccountId) -> List[RoleAssignment]:
        """Assignments of the account flagged active; expiry is checked by the caller."""
        ...

    @abstractmethod
    async def list_roles_by_ids(self, role_ids: Sequence[UUID]) -> List[Role]:
        ...

    @abstractmethod
    async def list_grants(self, role_ids: Sequence[UUID]) -> List[RolePermissionGrant]:
        ...

    @abstractmethod
    async def list_roles_by_names(self, tenant_id: TenantId, names: Sequence[str]) -> List[Role]:
        """Roles of the tenant whose name or slug is in ``names``."""
        ...

    # Roles

    @abstractmethod
    async def list_roles(self, tenant_id: TenantId) -> List[Role]:
        ...

    @abstractmethod
    async def get_role(self, role_id: UUID) -> Optional[Role]:
        ...

    @abstractmethod
    async def find_role_by_slug(self, tenant_id: TenantId, slug: str) -> Optional[Role]:
        ...

    @abstractmethod
    async def create_role(self, new_role: NewRole) -> Role:
        ...

    @abstractmethod
    async def update_role(
        self,
        role_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Role:
        ...

    @abstractmethod
    async def count_active_assignments_for_role(self, role_id: UUID) -> int:
        ...

    # Permissions

    @abstractmethod
    async def list_permissions(self) -> List[Permission]:
        ...

    @abstractmethod
    async def get_permission(self, permission_id: UUID) -> Optional[Permission]:
        ...

    @abstractmethod
    async def find_permission_by_slug(self, slug: str) -> Optional[Permission]:
        ...

    @abstractmethod
    async def get_permissions_by_ids(self, permission_ids: Sequence[UUID]) -> List[Permission]:
        ...

    @abstractmethod
    async def list_role_permissions(self, role_id: UUID) -> List[Permission]:
        ...

    @abstractmethod
    async def create_permission(self, new_permission: NewPermission) -> Permission:
        ...

    @abstractmethod
    async def update_permission(
        self,
        permission_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Permission:
        ...

    @abstractmethod
    async def count_role_references(self, permission_id: UUID) -> int:
        ...

    @abstractmethod
    async def delete_permission(self, permission_id: UUID) -> None:
        ...

    # Grants and assignments

    @abstractmethod
    async def grant_permissions(self, role_id: UUID, permission_ids: Sequence[UUID]) -> int:
        """Grant permissions to a role, skipping existing grants. Returns the number added."""
        ...

    @abstractmethod
    async def revoke_permission(self, role_id: UUID, permission_id: UUID) -> bool:
        ...

    @abstractmethod
    async def assign_role(
        self,
        account_id: AccountId,
        role_id: UUID,
        assigned_by: Optional[AccountId],
        expires_at: Optional[datetime] = None,
    ) -> RoleAssignment:
        ...

    @abstractmethod
    async def deactivate_assignment(self, account_id: AccountId, role_id: UUID) -> bool:
        ...


@runtime_checkable
class PermissionCacheProtocol(Protocol):
    """Seam for swapping the in-process cache for a shared one."""

    @abstractmethod
    async def get(self, account_id: AccountId) -> FrozenSet[str]:
        ...

    @abstractmethod
    def invalidate(self, account_id: AccountId) -> None:
        ...

    @abstractmethod
    def invalidate_all(self) -> None:
        ...
