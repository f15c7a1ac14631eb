"""Visitrack API application.

``create_app`` builds a FastAPI application with the auth, role,
permission and user-role routers mounted under the API prefix.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ..__version__ import __version__
from ..config.constants import SUPER_ADMIN_ROLE
from ..config.settings import Settings, get_settings
from ..core.shared import APIResponse
from ..features.auth.entities.auth_context import AuthContext
from ..features.auth.routers import create_auth_router
from ..features.permissions.routers import (
    create_permission_router,
    create_role_router,
    create_user_role_router,
)
from ..features.users.routers import create_user_router
from ..utils.datetime import utc_now
from .exception_handlers import register_exception_handlers
from .factory import ServiceFactory

logger = logging.getLogger(__name__)


def get_factory(request: Request) -> ServiceFactory:
    """Service factory of the running application."""
    return request.app.state.factory


def create_app(settings: Optional[Settings] = None, factory: Optional[ServiceFactory] = None) -> FastAPI:
    """Create the Visitrack API.

    Args:
        settings: Settings to use; defaults to ``get_settings()``
        factory: Pre-built service factory, e.g. one over in-memory repositories

    Raises:
        ConfigurationError: when no JWT secret is configured
    """
    settings = settings or (factory.settings if factory else get_settings())
    factory = factory or ServiceFactory(settings)
    factory.check_configuration()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        await factory.startup()
        logger.info(f"{settings.app_name} {__version__} started ({settings.environment})")
        yield
        await factory.shutdown()

    app = FastAPI(
        title="Visitrack API",
        version=__version__,
        description="Authentication and access control for the visitor-management backend",
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.factory = factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app, is_production=settings.is_production)

    auth = factory.get_auth_dependencies()
    admin = factory.get_role_admin_service()
    prefix = settings.api_prefix.rstrip("/")
    app.include_router(create_auth_router(factory.get_auth_service(), auth), prefix=prefix)
    app.include_router(create_role_router(admin, auth), prefix=prefix)
    app.include_router(create_permission_router(admin, auth), prefix=prefix)
    app.include_router(create_user_role_router(admin, auth), prefix=prefix)
    app.include_router(create_user_router(factory.get_user_admin_service(), auth), prefix=prefix)

    @app.get("/health", tags=["Health"])
    async def health(services: ServiceFactory = Depends(get_factory)):
        database = None
        if services.database is not None and services.database.connected:
            database = await services.database.ping()
        return {
            "success": True,
            "message": "Visitrack API is running",
            "timestamp": utc_now().isoformat(),
            "version": __version__,
            "database": database,
        }

    @app.get(f"{prefix}/diagnostics", tags=["Health"], response_model=APIResponse[dict])
    async def diagnostics(
        services: ServiceFactory = Depends(get_factory),
        _: AuthContext = Depends(auth.require_role(SUPER_ADMIN_ROLE)),
    ):
        """Permission cache statistics and non-secret configuration."""
        return APIResponse.success_response({
            "permissionCache": services.get_permission_cache().stats(),
            "pendingAuditWrites": services.get_audit_service().pending,
            "config": settings.get_service_config(),
        })

    logger.info(f"Created {settings.app_name} API with prefix {prefix or '/'}")
    return app
