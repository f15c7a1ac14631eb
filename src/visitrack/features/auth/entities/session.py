"""Values returned by the authentication flows."""

from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from .account import Account, Employee


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"


@dataclass(frozen=True)
class AuthSession:
    """Outcome of a successful login or registration."""

    account: Account
    roles: List[str]
    permissions: FrozenSet[str]
    tokens: TokenPair


@dataclass(frozen=True)
class RefreshedAccess:
    access_token: str
    expires_in: int
    token_type: str = "Bearer"


@dataclass(frozen=True)
class Profile:
    account: Account
    employee: Optional[Employee]
    roles: List[str]
    permissions: FrozenSet[str]


@dataclass(frozen=True)
class RegistrationInput:
    employee_code: str
    email: str
    password: str
