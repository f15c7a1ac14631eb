"""Fire-and-forget audit sink."""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from ....config.constants import AuditEvent
from ....core.value_objects import AccountId, TenantId
from ...auth.entities.auth_context import ClientInfo
from ..entities.audit_entry import AuditEntry, AuditRepository

logger = logging.getLogger(__name__)


class AuditService:
    """Schedules audit writes without making callers wait for them.

    A failed write is logged and dropped. ``drain()`` waits for writes
    still in flight.
    """

    def __init__(self, repository: AuditRepository):
        self.repository = repository
        self._pending: Set[asyncio.Task] = set()

    def record(
        self,
        event: AuditEvent,
        actor_id: Optional[AccountId] = None,
        metadata: Optional[Dict[str, Any]] = None,
        *,
        resource: str = "auth",
        resource_id: Optional[str] = None,
        tenant_id: Optional[TenantId] = None,
        client: Optional[ClientInfo] = None,
        success: bool = True,
        severity: str = "info",
    ) -> None:
        entry = AuditEntry(
            event=event,
            resource=resource,
            actor_id=actor_id,
            tenant_id=tenant_id,
            resource_id=resource_id,
            ip_address=client.ip_address if client else None,
            user_agent=client.user_agent if client else None,
            success=success,
            severity=severity,
            metadata=dict(metadata or {}),
        )

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; audit event {event.value} dropped")
            return

        task = loop.create_task(self._write(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def security_event(
        self,
        event: AuditEvent,
        metadata: Optional[Dict[str, Any]] = None,
        client: Optional[ClientInfo] = None,
        actor_id: Optional[AccountId] = None,
        success: bool = False,
    ) -> None:
        """Record a security-relevant event such as a failed login."""
        self.record(
            event,
            actor_id=actor_id,
            metadata=metadata,
            resource="security",
            client=client,
            success=success,
            severity="info" if success else "warning",
        )

    async def _write(self, entry: AuditEntry) -> None:
        try:
            await self.repository.insert(entry)
        except Exception as e:
            logger.error(f"Failed to write audit event {entry.event.value}: {e}")
        else:
            logger.debug(f"Audit event {entry.event.value} recorded")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for all scheduled writes to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
