"""Base exceptions for visitrack.

All exceptions inherit from VisitrackError and carry an error code and
structured details used to build API error responses.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Error taxonomy shared by exceptions and tagged results."""
    UNAUTHENTICATED = "unauthenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_TOKEN = "invalid_token"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    INTERNAL = "internal"


class VisitrackError(Exception):
    """Base exception for all visitrack errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for an exception."""
    from .http_mapping import get_http_status_code as _mapped_status_code
    return _mapped_status_code(exception)


def create_error_response(exception: VisitrackError, include_details: bool = True) -> Dict[str, Any]:
    """Create the standard error envelope for an exception.

    Details are merged into the top level of the envelope, e.g. the
    ``missing`` list of a forbidden response.
    """
    response: Dict[str, Any] = {
        "success": False,
        "message": exception.message,
    }
    if include_details:
        for key, value in exception.details.items():
            response.setdefault(key, value)
    return response
