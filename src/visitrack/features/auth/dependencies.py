"""FastAPI authentication dependencies."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...config.constants import TokenKind
from ...core.exceptions import InvalidTokenError, UnauthenticatedError
from ..permissions.services.authorization_service import AuthorizationService
from .entities.auth_context import AuthContext, ClientInfo
from .services.token_service import TokenService

logger = logging.getLogger(__name__)

# Missing credentials are reported through UnauthenticatedError, not FastAPI's 403
security = HTTPBearer(auto_error=False)


def client_info(request: Request) -> ClientInfo:
    """Client address and user agent of a request."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return ClientInfo(
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
        device_name=request.headers.get("x-device-name"),
    )


class AuthDependencies:
    """FastAPI authentication and authorization dependencies factory.

    Gate dependencies are created once per route. A non-granted gate result
    is raised as the matching ``VisitrackError`` and rendered by the
    exception handlers.
    """

    def __init__(self, token_service: TokenService, authorization: AuthorizationService):
        self.token_service = token_service
        self.authorization = authorization

    def _authenticate(self, request: Request, token: str) -> AuthContext:
        claims = self.token_service.verify(token, TokenKind.ACCESS)
        if claims.account_id is None:
            raise InvalidTokenError()
        client = client_info(request)
        return AuthContext.from_claims(claims, ip_address=client.ip_address, user_agent=client.user_agent)

    async def get_current_user(
        self,
        request: Request,
        credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    ) -> AuthContext:
        """Get current authenticated user from the bearer token."""
        if credentials is None or not credentials.credentials:
            raise UnauthenticatedError()

        try:
            context = self._authenticate(request, credentials.credentials)
        except InvalidTokenError:
            unverified = self.token_service.decode_unsafe(credentials.credentials) or {}
            logger.warning(
                f"Rejected bearer token on {request.url.path} "
                f"(kind={unverified.get('kind')}, sub={unverified.get('sub')})"
            )
            raise

        logger.debug(f"Authenticated account {context.account_id}")
        return context

    async def get_optional_user(
        self,
        request: Request,
        credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    ) -> Optional[AuthContext]:
        """Get current user if a valid token is provided (optional authentication)."""
        if credentials is None or not credentials.credentials:
            return None
        try:
            return self._authenticate(request, credentials.credentials)
        except InvalidTokenError:
            return None

    def require_all(self, *permissions: str):
        """Require every listed permission."""
        gate = self.authorization.require_all(*permissions)

        async def dependency(
            request: Request,
            current_user: Annotated[AuthContext, Depends(self.get_current_user)],
        ) -> AuthContext:
            result = await gate.check(current_user, route=request.url.path)
            if not result.granted:
                raise result.to_error()
            return current_user

        return dependency

    def require_any(self, *permissions: str):
        """Require at least one of the listed permissions."""
        gate = self.authorization.require_any(*permissions)

        async def dependency(
            request: Request,
            current_user: Annotated[AuthContext, Depends(self.get_current_user)],
        ) -> AuthContext:
            result = await gate.check(current_user, route=request.url.path)
            if not result.granted:
                raise result.to_error()
            return current_user

        return dependency

    def require_role(self, *roles: str):
        """Require one of the listed roles, matched by name or slug."""
        gate = self.authorization.require_role(*roles)

        async def dependency(
            request: Request,
            current_user: Annotated[AuthContext, Depends(self.get_current_user)],
        ) -> AuthContext:
            result = await gate.check(current_user, route=request.url.path)
            if not result.granted:
                raise result.to_error()
            return current_user

        return dependency
