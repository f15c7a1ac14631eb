"""Value objects for identifiers in visitrack.

Immutable wrappers around the UUIDs and slugs that flow through the auth
and permissions features.
"""

import re
from dataclasses import dataclass
from uuid import UUID, uuid4


def _coerce_uuid(instance, label: str) -> None:
    if not isinstance(instance.value, UUID):
        try:
            object.__setattr__(instance, 'value', UUID(str(instance.value)))
        except (ValueError, TypeError, AttributeError):
            raise ValueError(f"{label} must be a valid UUID, got: {instance.value}")


@dataclass(frozen=True)
class AccountId:
    """System user (account) identifier."""
    value: UUID

    def __post_init__(self):
        _coerce_uuid(self, "AccountId")

    @classmethod
    def generate(cls) -> 'AccountId':
        return cls(uuid4())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TenantId:
    """Organization (tenant) identifier."""
    value: UUID

    def __post_init__(self):
        _coerce_uuid(self, "TenantId")

    def __str__(self) -> str:
        return str(self.value)


PERMISSION_CODE_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*:[a-z][a-z0-9_-]*$")


@dataclass(frozen=True)
class PermissionCode:
    """Permission slug of the form ``resource:action`` (e.g. ``visitors:read``)."""
    value: str

    def __post_init__(self):
        if not self.value or not isinstance(self.value, str):
            raise ValueError("Permission code must be a non-empty string")
        if not PERMISSION_CODE_PATTERN.match(self.value):
            raise ValueError(
                f"Permission code must match 'resource:action', got: {self.value}"
            )

    @property
    def resource(self) -> str:
        return self.value.split(":", 1)[0]

    @property
    def action(self) -> str:
        return self.value.split(":", 1)[1]

    @classmethod
    def from_parts(cls, resource: str, action: str) -> 'PermissionCode':
        return cls(f"{resource}:{action}")

    def __str__(self) -> str:
        return self.value

