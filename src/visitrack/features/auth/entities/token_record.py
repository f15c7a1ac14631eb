"""Persisted token record entity (``authentication_tokens``)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from ....config.constants import TokenKind
from ....core.value_objects import AccountId
from ....utils.datetime import utc_now


@dataclass
class TokenRecord:
    """Server-side record of an issued refresh or single-use token.

    Only the token hash is stored. ``token_hint`` keeps the last characters
    of the raw token for support tooling.
    """

    account_id: AccountId
    kind: TokenKind
    token_hash: str
    expires_at: datetime
    id: UUID = field(default_factory=uuid4)
    token_hint: Optional[str] = None
    is_active: bool = True
    is_used: bool = False
    used_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    revoked_at: Optional[datetime] = None
    revocation_reason: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def is_usable(self, now: datetime) -> bool:
        """Active, unused and unexpired at ``now``."""
        return self.is_active and not self.is_used and self.expires_at > now
