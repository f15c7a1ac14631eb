"""Authentication context entity."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional
from uuid import UUID

from ....core.value_objects import AccountId, TenantId


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of a bearer token."""

    kind: str
    jti: str
    issued_at: datetime
    expires_at: datetime
    account_id: Optional[AccountId] = None
    email: Optional[str] = None
    tenant_id: Optional[TenantId] = None
    employee_id: Optional[UUID] = None
    roles: FrozenSet[str] = frozenset()
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, threaded explicitly to gates and handlers.

    Roles are the names carried by the access token. Gates never trust them
    for decisions: permission gates consult the cache and the role gate
    re-reads assignments.
    """

    account_id: AccountId
    email: str
    tenant_id: Optional[TenantId] = None
    employee_id: Optional[UUID] = None
    roles: FrozenSet[str] = frozenset()
    claims: Optional[TokenClaims] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_claims(
        cls,
        claims: TokenClaims,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> "AuthContext":
        return cls(
            account_id=claims.account_id,
            email=claims.email or "",
            tenant_id=claims.tenant_id,
            employee_id=claims.employee_id,
            roles=claims.roles,
            claims=claims,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def has_role(self, role: str) -> bool:
        """Check the token's role claim."""
        return role in self.roles


@dataclass(frozen=True)
class ClientInfo:
    """Request metadata recorded with tokens and audit events."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_name: Optional[str] = None
