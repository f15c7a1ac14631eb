from .auth_service import AuthService
from .credential_service import CredentialService, password_policy_violation
from .lockout_service import LockoutPolicy, LockoutService
from .notifier import LoggingNotifier
from .token_service import TokenService

__all__ = [
    "AuthService",
    "CredentialService",
    "password_policy_violation",
    "LockoutPolicy",
    "LockoutService",
    "LoggingNotifier",
    "TokenService",
]
