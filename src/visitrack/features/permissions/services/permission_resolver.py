"""Effective permission resolution: account → roles → permissions."""

import logging
from datetime import datetime
from typing import Callable, FrozenSet, List

from ....core.value_objects import AccountId
from ....utils.datetime import utc_now
from ..entities.protocols import RoleRepository
from ..entities.role import Role

logger = logging.getLogger(__name__)


class PermissionResolver:
    """Computes the union of permission slugs granted to an account.

    Only active, unexpired assignments to active roles count, and only
    grants flagged ``granted`` contribute. Store failures propagate.
    """

    def __init__(self, roles: RoleRepository, clock: Callable[[], datetime] = utc_now):
        self.roles = roles
        self._clock = clock

    async def resolve_roles(self, account_id: AccountId) -> List[Role]:
        """Active roles reachable through the account's effective assignments."""
        assignments = await self.roles.list_active_assignments(account_id)
        if not assignments:
            return []

        now = self._clock()
        role_ids = list(dict.fromkeys(
            assignment.role_id for assignment in assignments if assignment.is_effective(now)
        ))
        if not role_ids:
            return []

        roles = await self.roles.list_roles_by_ids(role_ids)
        return [role for role in roles if role.is_active]

    async def resolve(self, account_id: AccountId) -> FrozenSet[str]:
        roles = await self.resolve_roles(account_id)
        if not roles:
            logger.debug(f"No effective roles for account {account_id}")
            return frozenset()

        grants = await self.roles.list_grants([role.id for role in roles])
        slugs = frozenset(grant.slug for grant in grants if grant.granted)
        logger.debug(f"Resolved {len(slugs)} permissions for account {account_id}")
        return slugs
