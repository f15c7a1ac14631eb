"""HTTP status code mapping for exceptions."""

from typing import Dict, Type

from .auth import (
    AuthenticationError,
    AuthorizationError,
    CredentialFormatError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidTokenError,
    UnauthenticatedError,
)
from .base import VisitrackError
from .domain import (
    ConfigurationError,
    ConflictError,
    InternalError,
    NotFoundError,
    StoreError,
    ValidationError,
)


HTTP_STATUS_MAP: Dict[Type[Exception], int] = {
    # 400 Bad Request
    ValidationError: 400,

    # 401 Unauthorized
    AuthenticationError: 401,
    UnauthenticatedError: 401,
    InvalidCredentialsError: 401,
    InvalidTokenError: 401,

    # 403 Forbidden
    AuthorizationError: 403,
    ForbiddenError: 403,

    # 404 Not Found
    NotFoundError: 404,

    # 409 Conflict
    ConflictError: 409,

    # 500 Internal Server Error
    CredentialFormatError: 500,
    ConfigurationError: 500,
    StoreError: 500,
    InternalError: 500,

    # Default for VisitrackError
    VisitrackError: 500,
}


def get_http_status_code(exception: Exception) -> int:
    """Resolve the status code, walking the MRO for unmapped subclasses."""
    for klass in type(exception).__mro__:
        if klass in HTTP_STATUS_MAP:
            return HTTP_STATUS_MAP[klass]
    return 500

