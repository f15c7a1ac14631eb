"""Role and permission administration.

Every mutation that can change somebody's effective permissions clears
the affected cache entries before returning: role and permission changes
clear the whole cache, assignment changes clear the one account.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from ....config.constants import SUPER_ADMIN_ROLE, AuditEvent
from ....core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from ....core.value_objects import AccountId, PermissionCode
from ...audit.services.audit_service import AuditService
from ...auth.entities.auth_context import AuthContext, ClientInfo
from ...auth.entities.protocols import AccountRepository
from ..entities.permission import NewPermission, Permission
from ..entities.protocols import PermissionCacheProtocol, RoleRepository
from ..entities.role import NewRole, Role
from .permission_resolver import PermissionResolver

logger = logging.getLogger(__name__)


class RoleAdminService:
    """Tenant-scoped role, permission and assignment management."""

    def __init__(
        self,
        roles: RoleRepository,
        accounts: AccountRepository,
        cache: PermissionCacheProtocol,
        resolver: PermissionResolver,
        audit: AuditService,
    ):
        self.roles = roles
        self.accounts = accounts
        self.cache = cache
        self.resolver = resolver
        self.audit = audit

    def _client(self, actor: AuthContext) -> ClientInfo:
        return ClientInfo(ip_address=actor.ip_address, user_agent=actor.user_agent)

    async def _is_super_admin(self, actor: AuthContext) -> bool:
        assigned = await self.resolver.resolve_roles(actor.account_id)
        return any(role.matches(SUPER_ADMIN_ROLE) for role in assigned)

    async def _get_tenant_role(self, actor: AuthContext, role_id: UUID) -> Role:
        role = await self.roles.get_role(role_id)
        if role is None or role.tenant_id != actor.tenant_id:
            raise NotFoundError("Role not found")
        return role

    async def _get_permission(self, permission_id: UUID) -> Permission:
        permission = await self.roles.get_permission(permission_id)
        if permission is None:
            raise NotFoundError("Permission not found")
        return permission

    # Roles

    async def list_roles(self, actor: AuthContext) -> List[Role]:
        return await self.roles.list_roles(actor.tenant_id)

    async def get_role(self, actor: AuthContext, role_id: UUID) -> Dict:
        role = await self._get_tenant_role(actor, role_id)
        permissions = await self.roles.list_role_permissions(role.id)
        return {**role.to_dict(), "permissions": [p.to_dict() for p in permissions]}

    async def create_role(
        self,
        actor: AuthContext,
        name: str,
        slug: str,
        description: Optional[str] = None,
        is_system_role: bool = False,
        permission_ids: Sequence[UUID] = (),
    ) -> Role:
        if await self.roles.find_role_by_slug(actor.tenant_id, slug) is not None:
            raise ConflictError("Role slug already exists in this organization")

        role = await self.roles.create_role(NewRole(
            tenant_id=actor.tenant_id,
            name=name,
            slug=slug,
            description=description,
            is_system_role=is_system_role,
        ))

        if permission_ids:
            valid = await self.roles.get_permissions_by_ids(list(permission_ids))
            if valid:
                await self.roles.grant_permissions(role.id, [p.id for p in valid])

        self.cache.invalidate_all()
        self.audit.record(
            AuditEvent.ROLE_CREATED,
            actor.account_id,
            {"name": name, "slug": slug},
            resource="roles",
            resource_id=str(role.id),
            tenant_id=actor.tenant_id,
            client=self._client(actor),
        )
        logger.info(f"Role {role.slug} created by {actor.account_id}")
        return role

    async def update_role(
        self,
        actor: AuthContext,
        role_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Role:
        role = await self._get_tenant_role(actor, role_id)
        if role.is_system_role and not await self._is_super_admin(actor):
            raise ForbiddenError("Cannot modify system roles")

        changes = {
            key: value
            for key, value in (("name", name), ("description", description), ("is_active", is_active))
            if value is not None
        }
        if not changes:
            return role

        updated = await self.roles.update_role(role_id, **changes)
        self.cache.invalidate_all()
        self.audit.record(
            AuditEvent.ROLE_UPDATED,
            actor.account_id,
            {"changes": changes},
            resource="roles",
            resource_id=str(role_id),
            tenant_id=actor.tenant_id,
            client=self._client(actor),
        )
        return updated

    async def delete_role(self, actor: AuthContext, role_id: UUID) -> None:
        """Soft delete a role that is neither built in nor assigned."""
        role = await self._get_tenant_role(actor, role_id)
        if role.is_system_role:
            raise ForbiddenError("Cannot delete system roles")

        assigned = await self.roles.count_active_assignments_for_role(role_id)
        if assigned:
            raise ValidationError(
                f"Cannot delete role: {assigned} user(s) are assigned to this role",
                details={"userCount": assigned},
            )

        await self.roles.update_role(role_id, is_active=False)
        self.cache.invalidate_all()
        self.audit.record(
            AuditEvent.ROLE_DELETED,
            actor.account_id,
            {"name": role.name},
            resource="roles",
            resource_id=str(role_id),
            tenant_id=actor.tenant_id,
            client=self._client(actor),
        )

    async def assign_permissions(
        self, actor: AuthContext, role_id: UUID, permission_ids: Sequence[UUID]
    ) -> int:
        """Grant existing permissions to a role; unknown ids are ignored."""
        role = await self._get_tenant_role(actor, role_id)
        if role.is_system_role and not await self._is_super_admin(actor):
            raise ForbiddenError("Cannot modify system roles")

        valid = await self.roles.get_permissions_by_ids(list(permission_ids))
        added = await self.roles.grant_permissions(role_id, [p.id for p in valid]) if valid else 0

        self.cache.invalidate_all()
        self.audit.record(
            AuditEvent.ROLE_PERMISSIONS_ASSIGNED,
            actor.account_id,
            {"permissionIds": [str(p.id) for p in valid], "added": added},
            resource="role_permissions",
            resource_id=str(role_id),
            tenant_id=actor.tenant_id,
            client=self._client(actor),
        )
        return added

    async def remove_permission(self, actor: AuthContext, role_id: UUID, permission_id: UUID) -> None:
        role = await self._get_tenant_role(actor, role_id)
        if role.is_system_role and not await self._is_super_admin(actor):
            raise ForbiddenError("Cannot modify system roles")

        if not await self.roles.revoke_permission(role_id, permission_id):
            raise NotFoundError("Permission is not assigned to this role")

        self.cache.invalidate_all()
        self.audit.record(
            AuditEvent.ROLE_PERMISSION_REMOVED,
            actor.account_id,
            {"permissionId": str(permission_id)},
            resource="role_permissions",
            resource_id=str(role_id),
            tenant_id=actor.tenant_id,
            client=self._client(actor),
        )

    # Permissions

    async def list_permissions(self) -> List[Permission]:
        return await self.roles.list_permissions()

    async def get_permission(self, permission_id: UUID) -> Permission:
        return await self._get_permission(permission_id)

    async def create_permission(
        self,
        actor: AuthContext,
        name: str,
        resource: str,
        action: str,
        description: Optional[str] = None,
        is_system_permission: bool = False,
    ) -> Permission:
        try:
            code = PermissionCode.from_parts(resource, action)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if await self.roles.find_permission_by_slug(code.value) is not None:
            raise ConflictError("Permission slug already exists")

        permission = await self.roles.create_permission(NewPermission(
            name=name,
            code=code,
            description=description,
            is_system_permission=is_system_permission,
        ))
        self.cache.invalidate_all()
        self.audit.record(
            AuditEvent.PERMISSION_CREATED,
            actor.account_id,
            {"slug": code.value},
            resource="permissions",
            resource_id=str(permission.id),
            tenant_id=actor.tenant_id,
            client=self._client(actor),
        )
        return permission

    async def update_permission(
        self,
        actor: AuthContext,
        permission_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Permission:
        """Rename or describe a permission; slugs never change."""
        permission = await self._get_permission(permission_id)
        if permission.is_system_permission and not await self._is_super_admin(actor):
            raise ForbiddenError("Cannot modify system permissions")
        if name is None and description is None:
            return permission

        updated = await self.roles.update_permission(permission_id, name=name, description=description)
        self.cache.invalidate_all()
        self.audit.record(
            AuditEvent.PERMISSION_UPDATED,
            actor.account_id,
            {"name": name, "description": description},
            resource="permissions",
            resource_id=str(permission_id),
            tenant_id=actor.tenant_id,
            client=self._client(actor),
        )
        return updated

    async def delete_permission(self, actor: AuthContext, permission_id: UUID) -> None:
        permission = await self._get_permission(permission_id)
        if permission.is_system_permission:
            raise ForbiddenError("Cannot delete system permissions")

        references = await self.roles.count_role_references(permission_id)
        if references:
            raise ValidationError(
                f"Cannot delete permission: {references} role(s) have this permission",
                details={"roleCount": references},
            )

        await self.roles.delete_permission(permission_id)
        self.cache.invalidate_all()
        self.audit.record(
            AuditEvent.PERMISSION_DELETED,
            actor.account_id,
            {"slug": permission.slug},
            resource="permissions",
            resource_id=str(permission_id),
            tenant_id=actor.tenant_id,
            client=self._client(actor),
        )

    # Assignments

    async def assign_roles(
        self,
        actor: AuthContext,
        account_id: AccountId,
        role_ids: Sequence[UUID],
        expires_at: Optional[datetime] = None,
    ) -> List[Role]:
        """Assign active roles of the account's organization.

        Roles already held or belonging to another organization are skipped.
        Returns the account's roles after the change.
        """
        account = await self.accounts.find_by_id(account_id)
        if account is None or account.tenant_id != actor.tenant_id:
            raise NotFoundError("User not found")

        held = {role.id for role in await self.resolver.resolve_roles(account_id)}
        wanted = [role_id for role_id in dict.fromkeys(role_ids) if role_id not in held]
        candidates = await self.roles.list_roles_by_ids(wanted) if wanted else []
        valid = [
            role for role in candidates
            if role.is_active and role.tenant_id == account.tenant_id
        ]

        for role in valid:
            await self.roles.assign_role(account_id, role.id, actor.account_id, expires_at)

        self.cache.invalidate(account_id)
        self.audit.record(
            AuditEvent.ROLES_ASSIGNED,
            actor.account_id,
            {"roleIds": [str(role.id) for role in valid]},
            resource="user_roles",
            resource_id=str(account_id),
            tenant_id=actor.tenant_id,
            client=self._client(actor),
        )
        return await self.resolver.resolve_roles(account_id)

    async def remove_role(self, actor: AuthContext, account_id: AccountId, role_id: UUID) -> List[Role]:
        account = await self.accounts.find_by_id(account_id)
        if account is None or account.tenant_id != actor.tenant_id:
            raise NotFoundError("User not found")

        removed = await self.roles.deactivate_assignment(account_id, role_id)
        self.cache.invalidate(account_id)
        if removed:
            self.audit.record(
                AuditEvent.ROLE_REMOVED,
                actor.account_id,
                {"roleId": str(role_id)},
                resource="user_roles",
                resource_id=str(account_id),
                tenant_id=actor.tenant_id,
                client=self._client(actor),
            )
        return await self.resolver.resolve_roles(account_id)

    async def list_account_roles(self, actor: AuthContext, account_id: AccountId) -> List[Role]:
        account = await self.accounts.find_by_id(account_id)
        if account is None or account.tenant_id != actor.tenant_id:
            raise NotFoundError("User not found")
        return await self.resolver.resolve_roles(account_id)
