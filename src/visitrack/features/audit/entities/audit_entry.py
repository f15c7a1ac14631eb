"""Audit entry entity and sink protocol."""

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ....config.constants import AuditEvent
from ....core.value_objects import AccountId, TenantId
from ....utils.datetime import utc_now


@dataclass(frozen=True)
class AuditEntry:
    event: AuditEvent
    resource: str
    actor_id: Optional[AccountId] = None
    tenant_id: Optional[TenantId] = None
    resource_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool = True
    severity: str = "info"
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)


@runtime_checkable
class AuditRepository(Protocol):

    @abstractmethod
    async def insert(self, entry: AuditEntry) -> None:
        ...
