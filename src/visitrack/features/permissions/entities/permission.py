"""Permission domain entity."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

from ....core.value_objects import PermissionCode
from ....utils.datetime import utc_now


@dataclass
class Permission:
    """Global permission identified by a ``resource:action`` slug."""

    id: UUID
    name: str
    code: PermissionCode
    description: Optional[str] = None
    is_system_permission: bool = True
    created_at: datetime = field(default_factory=utc_now)

    @property
    def slug(self) -> str:
        return self.code.value

    @property
    def resource(self) -> str:
        return self.code.resource

    @property
    def action(self) -> str:
        return self.code.action

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "resource": self.resource,
            "action": self.action,
            "description": self.description,
            "isSystemPermission": self.is_system_permission,
        }


@dataclass(frozen=True)
class NewPermission:
    name: str
    code: PermissionCode
    description: Optional[str] = None
    is_system_permission: bool = False
