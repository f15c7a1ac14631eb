"""Exception hierarchy for visitrack."""

from .base import (
    ErrorKind,
    VisitrackError,
    create_error_response,
    get_http_status_code,
)
from .auth import (
    AuthenticationError,
    AuthorizationError,
    CredentialFormatError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidTokenError,
    UnauthenticatedError,
)
from .domain import (
    ConfigurationError,
    ConflictError,
    InternalError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from .http_mapping import HTTP_STATUS_MAP

__all__ = [
    "ErrorKind",
    "VisitrackError",
    "create_error_response",
    "get_http_status_code",
    "AuthenticationError",
    "AuthorizationError",
    "CredentialFormatError",
    "ForbiddenError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "UnauthenticatedError",
    "ConfigurationError",
    "ConflictError",
    "InternalError",
    "NotFoundError",
    "StoreError",
    "ValidationError",
    "HTTP_STATUS_MAP",
]
