"""Tagged result type returned at flow boundaries.

Expected failures (bad credentials, expired tokens, conflicts) are
returned as values carrying an ``ErrorKind`` instead of being raised.
Adapters call ``unwrap()`` to convert a failure back into the matching
exception for the HTTP layer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from ..exceptions import (
    ConflictError,
    ErrorKind,
    ForbiddenError,
    InternalError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
    VisitrackError,
)

T = TypeVar("T")

_KIND_EXCEPTIONS = {
    ErrorKind.UNAUTHENTICATED: UnauthenticatedError,
    ErrorKind.INVALID_CREDENTIALS: InvalidCredentialsError,
    ErrorKind.INVALID_TOKEN: InvalidTokenError,
    ErrorKind.FORBIDDEN: ForbiddenError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.INTERNAL: InternalError,
}


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or an error kind with a message."""

    value: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "Result[T]":
        return cls(error_kind=kind, message=message, details=details or {})

    def to_error(self) -> VisitrackError:
        """Build the exception matching this failure."""
        if self.ok:
            raise ValueError("Cannot convert a successful result to an error")
        exc_class = _KIND_EXCEPTIONS.get(self.error_kind, InternalError)
        return exc_class(self.message, details=dict(self.details))

    def unwrap(self) -> T:
        """Return the value or raise the failure as an exception."""
        if not self.ok:
            raise self.to_error()
        return self.value
