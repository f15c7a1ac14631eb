"""Authorization gates.

A gate is built once per route with the permissions or roles it needs and
then checked against the caller's ``AuthContext`` on every request. Checks
never raise; they return a ``GateResult`` tagged with the outcome.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ....config.constants import (
    AUTHENTICATION_REQUIRED_MESSAGE,
    INSUFFICIENT_PERMISSIONS_MESSAGE,
    NO_ROLES_MESSAGE,
    PERMISSION_CHECK_FAILED_MESSAGE,
    REQUIRED_ROLE_MESSAGE,
    ROLE_CHECK_FAILED_MESSAGE,
)
from ....core.exceptions import (
    ForbiddenError,
    InternalError,
    UnauthenticatedError,
    VisitrackError,
)
from ....core.value_objects import PermissionCode
from ...auth.entities.auth_context import AuthContext
from ..entities.protocols import PermissionCacheProtocol
from .permission_resolver import PermissionResolver

logger = logging.getLogger(__name__)


class GateOutcome(str, Enum):
    GRANTED = "granted"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class GateResult:
    outcome: GateOutcome
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def granted(self) -> bool:
        return self.outcome is GateOutcome.GRANTED

    @classmethod
    def grant(cls) -> "GateResult":
        return cls(GateOutcome.GRANTED)

    @classmethod
    def unauthenticated(cls) -> "GateResult":
        return cls(GateOutcome.UNAUTHENTICATED, AUTHENTICATION_REQUIRED_MESSAGE)

    def to_error(self) -> VisitrackError:
        """Exception equivalent of a non-granted result."""
        if self.outcome is GateOutcome.UNAUTHENTICATED:
            return UnauthenticatedError(self.message)
        if self.outcome is GateOutcome.FORBIDDEN:
            return ForbiddenError(self.message, details=dict(self.details))
        if self.outcome is GateOutcome.INTERNAL_ERROR:
            return InternalError(self.message)
        raise ValueError("A granted result has no error")


def _log_decision(
    gate: str,
    context: AuthContext,
    result: GateResult,
    required: Tuple[str, ...],
    route: Optional[str],
) -> None:
    missing = result.details.get("missing", [])
    logger.info(
        f"authorization {result.outcome.value}: gate={gate} actor={context.account_id} "
        f"required={list(required)} missing={missing} route={route or '-'}"
    )


class PermissionGate:
    """AND or OR check of permission slugs against the cached effective set."""

    def __init__(self, cache: PermissionCacheProtocol, permissions: Tuple[str, ...], require_all: bool):
        if not permissions:
            raise ValueError("A permission gate needs at least one permission")
        self.permissions = tuple(PermissionCode(slug).value for slug in permissions)
        self.require_all = require_all
        self.cache = cache

    @property
    def name(self) -> str:
        return "require_all" if self.require_all else "require_any"

    async def check(self, context: Optional[AuthContext], route: Optional[str] = None) -> GateResult:
        if context is None:
            return GateResult.unauthenticated()

        try:
            granted = await self.cache.get(context.account_id)
        except Exception as e:
            logger.error(
                f"Permission check failed for {context.account_id} on {route or '-'}: {e}",
                exc_info=True,
            )
            return GateResult(GateOutcome.INTERNAL_ERROR, PERMISSION_CHECK_FAILED_MESSAGE)

        if self.require_all:
            missing = [slug for slug in self.permissions if slug not in granted]
            if missing:
                result = GateResult(
                    GateOutcome.FORBIDDEN,
                    INSUFFICIENT_PERMISSIONS_MESSAGE,
                    {"missing": missing},
                )
            else:
                result = GateResult.grant()
        elif any(slug in granted for slug in self.permissions):
            result = GateResult.grant()
        else:
            result = GateResult(
                GateOutcome.FORBIDDEN,
                INSUFFICIENT_PERMISSIONS_MESSAGE,
                {"required": list(self.permissions)},
            )

        _log_decision(self.name, context, result, self.permissions, route)
        return result


class RoleGate:
    """Role membership check.

    Assignments are re-read on every check instead of trusting the roles
    embedded in the token or the permission cache.
    """

    def __init__(self, resolver: PermissionResolver, roles: Tuple[str, ...]):
        if not roles:
            raise ValueError("A role gate needs at least one role")
        self.roles = tuple(roles)
        self.resolver = resolver

    async def check(self, context: Optional[AuthContext], route: Optional[str] = None) -> GateResult:
        if context is None:
            return GateResult.unauthenticated()

        try:
            assigned = await self.resolver.resolve_roles(context.account_id)
        except Exception as e:
            logger.error(
                f"Role check failed for {context.account_id} on {route or '-'}: {e}",
                exc_info=True,
            )
            return GateResult(GateOutcome.INTERNAL_ERROR, ROLE_CHECK_FAILED_MESSAGE)

        if not assigned:
            result = GateResult(GateOutcome.FORBIDDEN, NO_ROLES_MESSAGE)
        elif any(role.matches(wanted) for role in assigned for wanted in self.roles):
            result = GateResult.grant()
        else:
            result = GateResult(
                GateOutcome.FORBIDDEN,
                REQUIRED_ROLE_MESSAGE,
                {"requiredRoles": list(self.roles)},
            )

        _log_decision("require_role", context, result, self.roles, route)
        return result


class AuthorizationService:
    """Factory for authorization gates bound to the shared cache and resolver."""

    def __init__(self, cache: PermissionCacheProtocol, resolver: PermissionResolver):
        self.cache = cache
        self.resolver = resolver

    def require_all(self, *permissions: str) -> PermissionGate:
        """Caller must hold every listed permission."""
        return PermissionGate(self.cache, permissions, require_all=True)

    def require_any(self, *permissions: str) -> PermissionGate:
        """Caller must hold at least one listed permission."""
        return PermissionGate(self.cache, permissions, require_all=False)

    def require_role(self, *roles: str) -> RoleGate:
        """Caller must hold one of the roles, matched by name or slug."""
        return RoleGate(self.resolver, roles)

    async def effective_permissions(self, context: AuthContext) -> frozenset:
        return await self.cache.get(context.account_id)
