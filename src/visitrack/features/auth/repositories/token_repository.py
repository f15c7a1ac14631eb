"""AsyncPG-based token record repository."""

import json
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

import asyncpg

from ....config.constants import TokenKind
from ....core.value_objects import AccountId
from ....database.connection import DatabaseManager
from ....utils.datetime import ensure_utc
from ..entities.token_record import TokenRecord

logger = logging.getLogger(__name__)

_TOKEN_COLUMNS = """
    id, user_id, token_type, token_hash, token_hint, is_active, is_used,
    used_at, expires_at, ip_address, user_agent, device_name, metadata,
    revoked_at, revocation_reason, created_at
"""


class AsyncPGTokenRepository:
    """TokenRepository backed by ``authentication_tokens``."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def _build_record_from_row(self, row: asyncpg.Record) -> TokenRecord:
        metadata = row['metadata']
        if isinstance(metadata, str):
            metadata = json.loads(metadata)
        return TokenRecord(
            id=row['id'],
            account_id=AccountId(row['user_id']),
            kind=TokenKind(row['token_type']),
            token_hash=row['token_hash'],
            token_hint=row['token_hint'],
            is_active=bool(row['is_active']),
            is_used=bool(row['is_used']),
            used_at=ensure_utc(row['used_at']),
            expires_at=ensure_utc(row['expires_at']),
            ip_address=row['ip_address'],
            user_agent=row['user_agent'],
            device_name=row['device_name'],
            metadata=metadata or {},
            revoked_at=ensure_utc(row['revoked_at']),
            revocation_reason=row['revocation_reason'],
            created_at=ensure_utc(row['created_at']),
        )

    async def insert(self, record: TokenRecord) -> TokenRecord:
        row = await self.db.fetchrow(
            f"""
            INSERT INTO authentication_tokens (
                id, user_id, token_type, token_hash, token_hint, is_active,
                is_used, expires_at, ip_address, user_agent, device_name,
                metadata, created_at
            )
            VALUES ($1, $2, $3::token_type, $4, $5, true, false, $6, $7, $8, $9, $10::jsonb, $11)
            RETURNING {_TOKEN_COLUMNS}
            """,
            record.id,
            record.account_id.value,
            record.kind.value,
            record.token_hash,
            record.token_hint,
            record.expires_at,
            record.ip_address,
            record.user_agent,
            record.device_name,
            json.dumps(record.metadata, default=str),
            record.created_at,
        )
        return self._build_record_from_row(row)

    async def find_active_by_hash(
        self, token_hash: str, kind: TokenKind, now: datetime
    ) -> Optional[TokenRecord]:
        row = await self.db.fetchrow(
            f"""
            SELECT {_TOKEN_COLUMNS}
            FROM authentication_tokens
            WHERE token_hash = $1
              AND token_type = $2::token_type
              AND is_active = true
              AND is_used = false
              AND expires_at > $3
            LIMIT 1
            """,
            token_hash,
            kind.value,
            now,
        )
        return self._build_record_from_row(row) if row else None

    async def mark_revoked(self, record_id: UUID, at: datetime, reason: str) -> None:
        await self.db.execute(
            """
            UPDATE authentication_tokens
            SET is_active = false,
                revoked_at = COALESCE(revoked_at, $2),
                revocation_reason = COALESCE(revocation_reason, $3)
            WHERE id = $1
            """,
            record_id,
            at,
            reason,
        )

    async def mark_used(self, record_id: UUID, at: datetime) -> bool:
        """Consume a single-use token; False when it was already used or revoked."""
        consumed = await self.db.fetchval(
            """
            UPDATE authentication_tokens
            SET is_used = true, used_at = $2, is_active = false
            WHERE id = $1 AND is_used = false AND is_active = true
            RETURNING id
            """,
            record_id,
            at,
        )
        return consumed is not None

    async def revoke_all_for_account(
        self,
        account_id: AccountId,
        kind: Optional[TokenKind],
        at: datetime,
        reason: str,
        except_id: Optional[UUID] = None,
    ) -> int:
        status = await self.db.execute(
            """
            UPDATE authentication_tokens
            SET is_active = false, revoked_at = $3, revocation_reason = $4
            WHERE user_id = $1
              AND is_active = true
              AND ($2::token_type IS NULL OR token_type = $2::token_type)
              AND ($5::uuid IS NULL OR id <> $5::uuid)
            """,
            account_id.value,
            kind.value if kind else None,
            at,
            reason,
            except_id,
        )
        # asyncpg returns the command tag, e.g. "UPDATE 3"
        revoked = int(status.split()[-1]) if status else 0
        logger.debug(f"Revoked {revoked} {kind.value if kind else 'all'} tokens for {account_id}")
        return revoked
