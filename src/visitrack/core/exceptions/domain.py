"""Domain and infrastructure exceptions."""

from .base import ErrorKind, VisitrackError


class ConfigurationError(VisitrackError):
    """Raised when required configuration is missing or invalid."""
    kind = ErrorKind.INTERNAL


class StoreError(VisitrackError):
    """Raised when a repository call fails."""
    kind = ErrorKind.INTERNAL


class InternalError(VisitrackError):
    """Unexpected failure inside the service."""
    kind = ErrorKind.INTERNAL


class NotFoundError(VisitrackError):
    """Raised when a referenced resource does not exist."""
    kind = ErrorKind.NOT_FOUND


class ConflictError(VisitrackError):
    """Raised when a resource already exists or is still referenced."""
    kind = ErrorKind.CONFLICT


class ValidationError(VisitrackError):
    """Raised when input violates a domain rule."""
    kind = ErrorKind.VALIDATION
