"""Role and permission administration request models."""

import re
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

_SLUG_PATTERN = re.compile(r'^[a-z][a-z0-9_-]*$')


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class CreateRoleRequest(_CamelModel):
    """Role creation request."""

    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    slug: str = Field(..., min_length=1, max_length=100, description="Unique slug within the organization")
    description: Optional[str] = Field(None, max_length=500)
    is_system_role: bool = Field(False, alias="isSystemRole")
    permission_ids: List[UUID] = Field(default_factory=list, alias="permissionIds")

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, v):
        """Slugs are lowercase letters, digits, underscores and hyphens."""
        v = v.lower()
        if not _SLUG_PATTERN.match(v):
            raise ValueError("Slug must start with a letter and contain only a-z, 0-9, '_' or '-'")
        return v


class UpdateRoleRequest(_CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = Field(None, alias="isActive")


class AssignPermissionsRequest(_CamelModel):
    permission_ids: List[UUID] = Field(..., alias="permissionIds", min_length=1)


class CreatePermissionRequest(_CamelModel):
    """Permission creation; the slug is derived as ``resource:action``."""

    name: str = Field(..., min_length=1, max_length=100)
    resource: str = Field(..., min_length=1, max_length=50)
    action: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator('resource', 'action')
    @classmethod
    def lowercase(cls, v):
        return v.lower()


class UpdatePermissionRequest(_CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class AssignRolesRequest(_CamelModel):
    """Roles to assign to a user, optionally until ``expiresAt``."""

    role_ids: List[UUID] = Field(..., alias="roleIds", min_length=1)
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
