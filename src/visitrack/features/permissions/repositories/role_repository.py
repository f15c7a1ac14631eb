"""AsyncPG-based role and permission repository."""

import logging
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

import asyncpg

from ....core.exceptions import NotFoundError
from ....core.value_objects import AccountId, PermissionCode, TenantId
from ....database.connection import DatabaseManager
from ....utils.datetime import ensure_utc
from ..entities.permission import NewPermission, Permission
from ..entities.role import NewRole, Role, RoleAssignment, RolePermissionGrant

logger = logging.getLogger(__name__)

_ROLE_COLUMNS = """
    id, organization_id, name, slug, description, is_system_role,
    is_active, priority, created_at
"""

_PERMISSION_COLUMNS = "id, name, slug, description, is_system_permission, created_at"

_ASSIGNMENT_COLUMNS = "id, user_id, role_id, assigned_by, assigned_at, expires_at, is_active"


class AsyncPGRoleRepository:
    """RoleRepository backed by ``roles``, ``permissions``, ``user_roles`` and ``role_permissions``."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def _build_role_from_row(self, row: asyncpg.Record) -> Role:
        return Role(
            id=row['id'],
            tenant_id=TenantId(row['organization_id']),
            name=row['name'],
            slug=row['slug'],
            description=row['description'],
            is_system_role=bool(row['is_system_role']),
            is_active=bool(row['is_active']),
            priority=row['priority'] or 0,
            created_at=ensure_utc(row['created_at']),
        )

    def _build_permission_from_row(self, row: asyncpg.Record) -> Permission:
        return Permission(
            id=row['id'],
            name=row['name'],
            code=PermissionCode(row['slug']),
            description=row['description'],
            is_system_permission=bool(row['is_system_permission']),
            created_at=ensure_utc(row['created_at']),
        )

    def _build_assignment_from_row(self, row: asyncpg.Record) -> RoleAssignment:
        return RoleAssignment(
            id=row['id'],
            account_id=AccountId(row['user_id']),
            role_id=row['role_id'],
            assigned_by=AccountId(row['assigned_by']) if row['assigned_by'] else None,
            assigned_at=ensure_utc(row['assigned_at']),
            expires_at=ensure_utc(row['expires_at']),
            is_active=bool(row['is_active']),
        )

    # Resolution reads

    async def list_active_assignments(self, account_id: AccountId) -> List[RoleAssignment]:
        rows = await self.db.fetch(
            f"SELECT {_ASSIGNMENT_COLUMNS} FROM user_roles WHERE user_id = $1 AND is_active = true",
            account_id.value,
        )
        return [self._build_assignment_from_row(row) for row in rows]

    async def list_roles_by_ids(self, role_ids: Sequence[UUID]) -> List[Role]:
        if not role_ids:
            return []
        rows = await self.db.fetch(
            f"SELECT {_ROLE_COLUMNS} FROM roles WHERE id = ANY($1::uuid[])",
            list(role_ids),
        )
        return [self._build_role_from_row(row) for row in rows]

    async def list_grants(self, role_ids: Sequence[UUID]) -> List[RolePermissionGrant]:
        if not role_ids:
            return []
        rows = await self.db.fetch(
            """
            SELECT rp.role_id, rp.permission_id, p.slug, COALESCE(rp.granted, true) AS granted
            FROM role_permissions rp
            JOIN permissions p ON p.id = rp.permission_id
            WHERE rp.role_id = ANY($1::uuid[])
            """,
            list(role_ids),
        )
        return [
            RolePermissionGrant(
                role_id=row['role_id'],
                permission_id=row['permission_id'],
                slug=row['slug'],
                granted=bool(row['granted']),
            )
            for row in rows
        ]

    async def list_roles_by_names(self, tenant_id: TenantId, names: Sequence[str]) -> List[Role]:
        if not names:
            return []
        rows = await self.db.fetch(
            f"""
            SELECT {_ROLE_COLUMNS} FROM roles
            WHERE organization_id = $1 AND (name = ANY($2::text[]) OR slug = ANY($2::text[]))
            """,
            tenant_id.value,
            list(names),
        )
        return [self._build_role_from_row(row) for row in rows]

    # Roles

    async def list_roles(self, tenant_id: TenantId) -> List[Role]:
        rows = await self.db.fetch(
            f"SELECT {_ROLE_COLUMNS} FROM roles WHERE organization_id = $1 ORDER BY name",
            tenant_id.value,
        )
        return [self._build_role_from_row(row) for row in rows]

    async def get_role(self, role_id: UUID) -> Optional[Role]:
        row = await self.db.fetchrow(f"SELECT {_ROLE_COLUMNS} FROM roles WHERE id = $1", role_id)
        return self._build_role_from_row(row) if row else None

    async def find_role_by_slug(self, tenant_id: TenantId, slug: str) -> Optional[Role]:
        row = await self.db.fetchrow(
            f"SELECT {_ROLE_COLUMNS} FROM roles WHERE organization_id = $1 AND slug = $2",
            tenant_id.value,
            slug,
        )
        return self._build_role_from_row(row) if row else None

    async def create_role(self, new_role: NewRole) -> Role:
        row = await self.db.fetchrow(
            f"""
            INSERT INTO roles (organization_id, name, slug, description, is_system_role, is_active)
            VALUES ($1, $2, $3, $4, $5, true)
            RETURNING {_ROLE_COLUMNS}
            """,
            new_role.tenant_id.value,
            new_role.name,
            new_role.slug,
            new_role.description,
            new_role.is_system_role,
        )
        return self._build_role_from_row(row)

    async def update_role(
        self,
        role_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Role:
        row = await self.db.fetchrow(
            f"""
            UPDATE roles
            SET name = COALESCE($2, name),
                description = COALESCE($3, description),
                is_active = COALESCE($4, is_active),
                updated_at = now()
            WHERE id = $1
            RETURNING {_ROLE_COLUMNS}
            """,
            role_id,
            name,
            description,
            is_active,
        )
        if row is None:
            raise NotFoundError("Role not found")
        return self._build_role_from_row(row)

    async def count_active_assignments_for_role(self, role_id: UUID) -> int:
        return await self.db.fetchval(
            "SELECT count(*) FROM user_roles WHERE role_id = $1 AND is_active = true",
            role_id,
        )

    # Permissions

    async def list_permissions(self) -> List[Permission]:
        rows = await self.db.fetch(f"SELECT {_PERMISSION_COLUMNS} FROM permissions ORDER BY slug")
        return [self._build_permission_from_row(row) for row in rows]

    async def get_permission(self, permission_id: UUID) -> Optional[Permission]:
        row = await self.db.fetchrow(
            f"SELECT {_PERMISSION_COLUMNS} FROM permissions WHERE id = $1", permission_id
        )
        return self._build_permission_from_row(row) if row else None

    async def find_permission_by_slug(self, slug: str) -> Optional[Permission]:
        row = await self.db.fetchrow(
            f"SELECT {_PERMISSION_COLUMNS} FROM permissions WHERE slug = $1", slug
        )
        return self._build_permission_from_row(row) if row else None

    async def get_permissions_by_ids(self, permission_ids: Sequence[UUID]) -> List[Permission]:
        if not permission_ids:
            return []
        rows = await self.db.fetch(
            f"SELECT {_PERMISSION_COLUMNS} FROM permissions WHERE id = ANY($1::uuid[])",
            list(permission_ids),
        )
        return [self._build_permission_from_row(row) for row in rows]

    async def list_role_permissions(self, role_id: UUID) -> List[Permission]:
        rows = await self.db.fetch(
            """
            SELECT p.id, p.name, p.slug, p.description, p.is_system_permission, p.created_at
            FROM role_permissions rp
            JOIN permissions p ON p.id = rp.permission_id
            WHERE rp.role_id = $1 AND COALESCE(rp.granted, true)
            ORDER BY p.slug
            """,
            role_id,
        )
        return [self._build_permission_from_row(row) for row in rows]

    async def create_permission(self, new_permission: NewPermission) -> Permission:
        row = await self.db.fetchrow(
            f"""
            INSERT INTO permissions (name, slug, resource, action, description, is_system_permission)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {_PERMISSION_COLUMNS}
            """,
            new_permission.name,
            new_permission.code.value,
            new_permission.code.resource,
            new_permission.code.action,
            new_permission.description,
            new_permission.is_system_permission,
        )
        return self._build_permission_from_row(row)

    async def update_permission(
        self,
        permission_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Permission:
        row = await self.db.fetchrow(
            f"""
            UPDATE permissions
            SET name = COALESCE($2, name), description = COALESCE($3, description)
            WHERE id = $1
            RETURNING {_PERMISSION_COLUMNS}
            """,
            permission_id,
            name,
            description,
        )
        if row is None:
            raise NotFoundError("Permission not found")
        return self._build_permission_from_row(row)

    async def count_role_references(self, permission_id: UUID) -> int:
        return await self.db.fetchval(
            "SELECT count(*) FROM role_permissions WHERE permission_id = $1",
            permission_id,
        )

    async def delete_permission(self, permission_id: UUID) -> None:
        await self.db.execute("DELETE FROM permissions WHERE id = $1", permission_id)

    # Grants and assignments

    async def grant_permissions(self, role_id: UUID, permission_ids: Sequence[UUID]) -> int:
        if not permission_ids:
            return 0
        status = await self.db.execute(
            """
            INSERT INTO role_permissions (role_id, permission_id, granted)
            SELECT $1, unnest($2::uuid[]), true
            ON CONFLICT (role_id, permission_id) DO UPDATE SET granted = true
            WHERE role_permissions.granted IS DISTINCT FROM true
            """,
            role_id,
            list(permission_ids),
        )
        return int(status.split()[-1]) if status else 0

    async def revoke_permission(self, role_id: UUID, permission_id: UUID) -> bool:
        status = await self.db.execute(
            "DELETE FROM role_permissions WHERE role_id = $1 AND permission_id = $2",
            role_id,
            permission_id,
        )
        return status.split()[-1] != "0"

    async def assign_role(
        self,
        account_id: AccountId,
        role_id: UUID,
        assigned_by: Optional[AccountId],
        expires_at: Optional[datetime] = None,
    ) -> RoleAssignment:
        row = await self.db.fetchrow(
            f"""
            INSERT INTO user_roles (user_id, role_id, assigned_by, expires_at, is_active)
            VALUES ($1, $2, $3, $4, true)
            RETURNING {_ASSIGNMENT_COLUMNS}
            """,
            account_id.value,
            role_id,
            assigned_by.value if assigned_by else None,
            expires_at,
        )
        return self._build_assignment_from_row(row)

    async def deactivate_assignment(self, account_id: AccountId, role_id: UUID) -> bool:
        status = await self.db.execute(
            """
            UPDATE user_roles SET is_active = false
            WHERE user_id = $1 AND role_id = $2 AND is_active = true
            """,
            account_id.value,
            role_id,
        )
        return status.split()[-1] != "0"
