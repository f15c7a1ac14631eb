"""In-process TTL cache of effective permission sets."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, FrozenSet

from ....core.value_objects import AccountId
from ....utils.datetime import utc_now
from .permission_resolver import PermissionResolver

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(seconds=60)


@dataclass(frozen=True)
class CacheEntry:
    slugs: FrozenSet[str]
    computed_at: datetime


class PermissionCache:
    """Per-account permission sets with time-to-live freshness.

    Entries older than the TTL are recomputed on read; nothing else evicts
    them. Concurrent misses for the same account may both resolve, and the
    last write wins. A revoked permission may therefore be honoured for at
    most one TTL unless ``invalidate`` or ``invalidate_all`` is called.
    """

    def __init__(
        self,
        resolver: PermissionResolver,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.resolver = resolver
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[AccountId, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    async def get(self, account_id: AccountId) -> FrozenSet[str]:
        entry = self._entries.get(account_id)
        if entry is not None and self._clock() - entry.computed_at < self.ttl:
            self._hits += 1
            return entry.slugs

        self._misses += 1
        slugs = await self.resolver.resolve(account_id)
        self._entries[account_id] = CacheEntry(slugs=slugs, computed_at=self._clock())
        return slugs

    def invalidate(self, account_id: AccountId) -> None:
        if self._entries.pop(account_id, None) is not None:
            logger.debug(f"Permission cache invalidated for account {account_id}")

    def invalidate_all(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Permission cache cleared ({count} entries)")

    def close(self) -> None:
        """Drop all entries at shutdown."""
        self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "ttl_seconds": self.ttl.total_seconds(),
        }
