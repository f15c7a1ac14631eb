"""Role, role assignment and grant entities."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

from ....core.value_objects import AccountId, TenantId
from ....utils.datetime import utc_now


@dataclass
class Role:
    """Tenant-scoped role. Roles are soft-deleted through ``is_active``."""

    id: UUID
    tenant_id: TenantId
    name: str
    slug: str
    description: Optional[str] = None
    is_system_role: bool = False
    is_active: bool = True
    priority: int = 0
    created_at: datetime = field(default_factory=utc_now)

    def matches(self, name_or_slug: str) -> bool:
        return name_or_slug in (self.name, self.slug)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "organizationId": str(self.tenant_id),
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "isSystemRole": self.is_system_role,
            "isActive": self.is_active,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class NewRole:
    tenant_id: TenantId
    name: str
    slug: str
    description: Optional[str] = None
    is_system_role: bool = False


@dataclass
class RoleAssignment:
    """Link between an account and a role (``user_roles``)."""

    id: UUID
    account_id: AccountId
    role_id: UUID
    assigned_by: Optional[AccountId] = None
    assigned_at: datetime = field(default_factory=utc_now)
    expires_at: Optional[datetime] = None
    is_active: bool = True

    def is_effective(self, now: datetime) -> bool:
        """Active and not past its expiry at ``now``."""
        if not self.is_active:
            return False
        return self.expires_at is None or self.expires_at > now


@dataclass(frozen=True)
class RolePermissionGrant:
    """A role's grant of one permission, joined with the permission slug."""

    role_id: UUID
    permission_id: UUID
    slug: str
    granted: bool = True
