"""Service factory wiring repositories, services and FastAPI dependencies.

Services are created lazily and shared. Repositories default to the
asyncpg implementations over one ``DatabaseManager``; any of them can be
passed in instead, which is how tests run the app against in-memory stores.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..config.settings import Settings
from ..core.exceptions import ConfigurationError
from ..database.connection import DatabaseManager
from ..features.audit.entities.audit_entry import AuditRepository
from ..features.audit.repositories.audit_repository import AsyncPGAuditRepository
from ..features.audit.services.audit_service import AuditService
from ..features.auth.dependencies import AuthDependencies
from ..features.auth.entities.protocols import (
    AccountRepository,
    PasswordResetNotifier,
    TokenRepository,
    TransactionManager,
)
from ..features.auth.repositories.account_repository import AsyncPGAccountRepository
from ..features.auth.repositories.token_repository import AsyncPGTokenRepository
from ..features.auth.services.auth_service import AuthService
from ..features.auth.services.credential_service import CredentialService
from ..features.auth.services.lockout_service import LockoutPolicy, LockoutService
from ..features.auth.services.token_service import TokenService
from ..features.permissions.entities.protocols import RoleRepository
from ..features.permissions.repositories.role_repository import AsyncPGRoleRepository
from ..features.permissions.services.authorization_service import AuthorizationService
from ..features.permissions.services.permission_cache import PermissionCache
from ..features.permissions.services.permission_resolver import PermissionResolver
from ..features.permissions.services.role_admin_service import RoleAdminService
from ..features.users.services.user_admin_service import UserAdminService
from ..utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Factory for creating and configuring the application's services."""

    def __init__(
        self,
        settings: Settings,
        database: Optional[DatabaseManager] = None,
        accounts: Optional[AccountRepository] = None,
        tokens: Optional[TokenRepository] = None,
        roles: Optional[RoleRepository] = None,
        audit_repository: Optional[AuditRepository] = None,
        notifier: Optional[PasswordResetNotifier] = None,
        clock: Callable[[], datetime] = utc_now,
        transactions: Optional[TransactionManager] = None,
    ):
        self.settings = settings
        self.clock = clock
        self.notifier = notifier

        if database is None and None in (accounts, tokens, roles, audit_repository):
            database = DatabaseManager(
                settings.database_url,
                app_name=settings.app_name,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                command_timeout=settings.db_command_timeout,
            )
        self.database = database
        self.transactions = transactions if transactions is not None else database

        self._accounts = accounts
        self._tokens = tokens
        self._roles = roles
        self._audit_repository = audit_repository

        # Lazy-initialized services
        self._credential_service = None
        self._token_service = None
        self._lockout_service = None
        self._resolver = None
        self._cache = None
        self._audit_service = None
        self._authorization_service = None
        self._auth_service = None
        self._role_admin_service = None
        self._user_admin_service = None
        self._auth_dependencies = None

    def check_configuration(self) -> None:
        """Fail fast when the signing secret is missing."""
        if not self.settings.get_jwt_secret():
            raise ConfigurationError(
                "JWT_SECRET is not configured",
                details={"setting": "JWT_SECRET"},
            )

    # Repositories

    def get_account_repository(self) -> AccountRepository:
        if self._accounts is None:
            self._accounts = AsyncPGAccountRepository(self.database)
        return self._accounts

    def get_token_repository(self) -> TokenRepository:
        if self._tokens is None:
            self._tokens = AsyncPGTokenRepository(self.database)
        return self._tokens

    def get_role_repository(self) -> RoleRepository:
        if self._roles is None:
            self._roles = AsyncPGRoleRepository(self.database)
        return self._roles

    def get_audit_repository(self) -> AuditRepository:
        if self._audit_repository is None:
            self._audit_repository = AsyncPGAuditRepository(self.database)
        return self._audit_repository

    # Services

    def get_credential_service(self) -> CredentialService:
        if self._credential_service is None:
            self._credential_service = CredentialService(
                token_hash_key=self.settings.get_token_hash_key(),
                rounds=self.settings.bcrypt_rounds,
            )
        return self._credential_service

    def get_token_service(self) -> TokenService:
        if self._token_service is None:
            self._token_service = TokenService(
                secret=self.settings.get_jwt_secret(),
                algorithm=self.settings.jwt_algorithm,
                access_ttl=self.settings.access_token_ttl,
                refresh_ttl=self.settings.refresh_token_ttl,
                single_use_ttl=self.settings.single_use_token_ttl,
                clock=self.clock,
            )
        return self._token_service

    def get_lockout_service(self) -> LockoutService:
        if self._lockout_service is None:
            self._lockout_service = LockoutService(
                self.get_account_repository(),
                LockoutPolicy(
                    max_failed_attempts=self.settings.lockout_max_attempts,
                    lock_duration=self.settings.lockout_duration,
                ),
            )
        return self._lockout_service

    def get_permission_resolver(self) -> PermissionResolver:
        if self._resolver is None:
            self._resolver = PermissionResolver(self.get_role_repository(), clock=self.clock)
        return self._resolver

    def get_permission_cache(self) -> PermissionCache:
        if self._cache is None:
            self._cache = PermissionCache(
                self.get_permission_resolver(),
                ttl=timedelta(seconds=self.settings.permission_cache_ttl_seconds),
                clock=self.clock,
            )
        return self._cache

    def get_audit_service(self) -> AuditService:
        if self._audit_service is None:
            self._audit_service = AuditService(self.get_audit_repository())
        return self._audit_service

    def get_authorization_service(self) -> AuthorizationService:
        if self._authorization_service is None:
            self._authorization_service = AuthorizationService(
                self.get_permission_cache(), self.get_permission_resolver()
            )
        return self._authorization_service

    def get_auth_service(self) -> AuthService:
        if self._auth_service is None:
            self._auth_service = AuthService(
                accounts=self.get_account_repository(),
                tokens=self.get_token_repository(),
                credentials=self.get_credential_service(),
                token_service=self.get_token_service(),
                lockout=self.get_lockout_service(),
                resolver=self.get_permission_resolver(),
                cache=self.get_permission_cache(),
                audit=self.get_audit_service(),
                notifier=self.notifier,
                clock=self.clock,
                transactions=self.transactions,
            )
        return self._auth_service

    def get_role_admin_service(self) -> RoleAdminService:
        if self._role_admin_service is None:
            self._role_admin_service = RoleAdminService(
                roles=self.get_role_repository(),
                accounts=self.get_account_repository(),
                cache=self.get_permission_cache(),
                resolver=self.get_permission_resolver(),
                audit=self.get_audit_service(),
            )
        return self._role_admin_service

    def get_user_admin_service(self) -> UserAdminService:
        if self._user_admin_service is None:
            self._user_admin_service = UserAdminService(
                accounts=self.get_account_repository(),
                tokens=self.get_token_repository(),
                roles=self.get_role_repository(),
                credentials=self.get_credential_service(),
                role_admin=self.get_role_admin_service(),
                resolver=self.get_permission_resolver(),
                cache=self.get_permission_cache(),
                audit=self.get_audit_service(),
                clock=self.clock,
                transactions=self.transactions,
            )
        return self._user_admin_service

    def get_auth_dependencies(self) -> AuthDependencies:
        if self._auth_dependencies is None:
            self._auth_dependencies = AuthDependencies(
                self.get_token_service(), self.get_authorization_service()
            )
        return self._auth_dependencies

    # Lifecycle

    async def startup(self) -> None:
        if self.database is not None:
            await self.database.connect()
            if self.settings.db_apply_schema:
                await self.database.apply_schema()
        logger.info("Services started")

    async def shutdown(self) -> None:
        """Flush audit writes, drop cached permissions and close the pool."""
        if self._audit_service is not None:
            await self._audit_service.drain()
        if self._cache is not None:
            self._cache.close()
        if self.database is not None:
            await self.database.disconnect()
        logger.info("Services stopped")
