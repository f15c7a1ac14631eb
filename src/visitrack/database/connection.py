"""
asyncpg pool wrapper shared by the auth, permission and audit repositories.
"""
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from importlib import resources
from typing import Any, List, Optional

import asyncpg
from asyncpg import Connection, Pool, Record

from ..core.exceptions import ConflictError, StoreError

logger = logging.getLogger(__name__)

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

_DEFAULT_POOL_CONFIG = {
    "min_size": 2,
    "max_size": 10,
    "max_inactive_connection_lifetime": 300,
    "command_timeout": 30,
}


def _normalize_dsn(database_url: str) -> str:
    # SQLAlchemy-style URLs ("postgresql+asyncpg://") are accepted from shared env files
    return database_url.replace("postgresql+asyncpg://", "postgresql://", 1)


class DatabaseManager:
    """Owns the pool; every query goes through ``session()``.

    Driver failures are re-raised as ``StoreError`` so callers above the
    repositories never see asyncpg types. Unique-constraint violations
    become ``ConflictError`` instead.

    Inside ``transaction()`` the connection is bound to the current task, so
    repository calls made in that block share it and commit or roll back
    together.
    """

    def __init__(self, database_url: str, app_name: str = "visitrack", **pool_config):
        self.dsn = _normalize_dsn(database_url)
        self.app_name = app_name
        self.pool_config = {**_DEFAULT_POOL_CONFIG, **pool_config}
        self._pool: Optional[Pool] = None
        self._bound: ContextVar[Optional[Connection]] = ContextVar(
            f"visitrack_db_connection_{id(self)}", default=None
        )

    @property
    def connected(self) -> bool:
        return self._pool is not None

    @property
    def in_transaction(self) -> bool:
        return self._bound.get() is not None

    async def connect(self) -> Pool:
        if self._pool is not None:
            return self._pool

        logger.info(
            f"Opening database pool for {self.app_name} "
            f"({self.pool_config['min_size']}..{self.pool_config['max_size']} connections)"
        )
        try:
            self._pool = await asyncpg.create_pool(
                self.dsn,
                server_settings={"application_name": self.app_name},
                **self.pool_config,
            )
        except _DRIVER_ERRORS as e:
            raise StoreError(f"Could not connect to database: {e}") from e
        return self._pool

    async def disconnect(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("Database pool closed")

    @asynccontextmanager
    async def session(self):
        """Yield the transaction's connection, or a pooled one opened on first use."""
        bound = self._bound.get()
        try:
            if bound is not None:
                yield bound
            else:
                pool = await self.connect()
                async with pool.acquire() as connection:
                    yield connection
        except asyncpg.UniqueViolationError as e:
            constraint = getattr(e, "constraint_name", None)
            logger.info(f"Unique constraint violated: {constraint or e}")
            raise ConflictError(
                "Duplicate value violates a unique constraint",
                details={"constraint": constraint} if constraint else None,
            ) from e
        except _DRIVER_ERRORS as e:
            logger.error(f"Database operation failed: {e}")
            raise StoreError(f"Database operation failed: {e}") from e

    @asynccontextmanager
    async def transaction(self):
        """Run the enclosed queries on one connection inside a transaction.

        Nested calls join the outer transaction.
        """
        if self._bound.get() is not None:
            yield self._bound.get()
            return

        async with self.session() as connection:
            async with connection.transaction():
                token = self._bound.set(connection)
                try:
                    yield connection
                finally:
                    self._bound.reset(token)

    async def execute(self, query: str, *args, timeout: Optional[float] = None) -> str:
        """Run a statement and return its command tag (``"UPDATE 3"``)."""
        async with self.session() as connection:
            return await connection.execute(query, *args, timeout=timeout)

    async def fetch(self, query: str, *args, timeout: Optional[float] = None) -> List[Record]:
        async with self.session() as connection:
            return await connection.fetch(query, *args, timeout=timeout)

    async def fetchrow(self, query: str, *args, timeout: Optional[float] = None) -> Optional[Record]:
        async with self.session() as connection:
            return await connection.fetchrow(query, *args, timeout=timeout)

    async def fetchval(self, query: str, *args, timeout: Optional[float] = None) -> Any:
        async with self.session() as connection:
            return await connection.fetchval(query, *args, timeout=timeout)

    async def ping(self) -> bool:
        """True when a trivial query round-trips; used by ``/health``."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except StoreError as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    async def apply_schema(self) -> None:
        """Create the auth tables when they do not exist yet."""
        ddl = resources.files("visitrack.database").joinpath("schema.sql").read_text()
        await self.execute(ddl)
        logger.info("Database schema applied")
