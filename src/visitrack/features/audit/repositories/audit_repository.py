"""AsyncPG-based audit log repository."""

import json
import logging

from ....database.connection import DatabaseManager
from ..entities.audit_entry import AuditEntry

logger = logging.getLogger(__name__)


class AsyncPGAuditRepository:
    """Writes audit entries to ``audit_logs``."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def insert(self, entry: AuditEntry) -> None:
        await self.db.execute(
            """
            INSERT INTO audit_logs (
                organization_id, user_id, action, resource, resource_id,
                ip_address, user_agent, success, severity, metadata, created_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb, $11)
            """,
            entry.tenant_id.value if entry.tenant_id else None,
            entry.actor_id.value if entry.actor_id else None,
            entry.event.value,
            entry.resource,
            entry.resource_id,
            entry.ip_address,
            entry.user_agent,
            entry.success,
            entry.severity,
            json.dumps(entry.metadata, default=str),
            entry.created_at,
        )
