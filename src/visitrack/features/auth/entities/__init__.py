from .account import Account, Employee, LockoutUpdate, NewAccount
from .auth_context import AuthContext, ClientInfo, TokenClaims
from .protocols import AccountRepository, PasswordResetNotifier, TokenRepository
from .session import AuthSession, Profile, RefreshedAccess, RegistrationInput, TokenPair
from .token_record import TokenRecord

__all__ = [
    "Account",
    "Employee",
    "LockoutUpdate",
    "NewAccount",
    "AuthContext",
    "ClientInfo",
    "TokenClaims",
    "AccountRepository",
    "PasswordResetNotifier",
    "TokenRepository",
    "AuthSession",
    "Profile",
    "RefreshedAccess",
    "RegistrationInput",
    "TokenPair",
    "TokenRecord",
]
