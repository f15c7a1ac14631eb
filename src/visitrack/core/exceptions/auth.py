"""Authentication and authorization exceptions."""

from typing import Iterable, Optional

from ...config.constants import (
    AUTHENTICATION_REQUIRED_MESSAGE,
    INSUFFICIENT_PERMISSIONS_MESSAGE,
    INVALID_CREDENTIALS_MESSAGE,
    INVALID_TOKEN_MESSAGE,
)
from .base import ErrorKind, VisitrackError


class AuthenticationError(VisitrackError):
    """Base exception for authentication errors."""
    kind = ErrorKind.UNAUTHENTICATED


class UnauthenticatedError(AuthenticationError):
    """Raised when a request carries no usable identity."""

    def __init__(self, message: str = AUTHENTICATION_REQUIRED_MESSAGE, **kwargs):
        super().__init__(message, **kwargs)


class InvalidCredentialsError(AuthenticationError):
    """Raised for every login failure; the message never says which check failed."""
    kind = ErrorKind.INVALID_CREDENTIALS

    def __init__(self, message: str = INVALID_CREDENTIALS_MESSAGE, **kwargs):
        super().__init__(message, **kwargs)


class InvalidTokenError(AuthenticationError):
    """Raised when a bearer token is bad, expired, revoked or of the wrong kind."""
    kind = ErrorKind.INVALID_TOKEN

    def __init__(self, message: str = INVALID_TOKEN_MESSAGE, **kwargs):
        super().__init__(message, **kwargs)


class AuthorizationError(VisitrackError):
    """Base exception for authorization errors."""
    kind = ErrorKind.FORBIDDEN


class ForbiddenError(AuthorizationError):
    """Raised when an authenticated identity fails a gate."""

    def __init__(
        self,
        message: str = INSUFFICIENT_PERMISSIONS_MESSAGE,
        missing: Optional[Iterable[str]] = None,
        required: Optional[Iterable[str]] = None,
        required_roles: Optional[Iterable[str]] = None,
        **kwargs
    ):
        details = dict(kwargs.pop("details", None) or {})
        if missing is not None:
            details["missing"] = list(missing)
        if required is not None:
            details["required"] = list(required)
        if required_roles is not None:
            details["requiredRoles"] = list(required_roles)
        super().__init__(message, details=details, **kwargs)


class CredentialFormatError(VisitrackError):
    """Raised when a stored password hash is not a valid bcrypt hash."""
    kind = ErrorKind.INTERNAL
