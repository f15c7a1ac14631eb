"""Constants and enums shared across visitrack features."""

from enum import Enum


class TokenKind(str, Enum):
    """Kinds of bearer tokens and persisted token records."""
    ACCESS = "access"
    REFRESH = "refresh"
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFICATION = "email_verification"
    MFA = "mfa"

    @property
    def is_single_use(self) -> bool:
        return self in SINGLE_USE_TOKEN_KINDS


SINGLE_USE_TOKEN_KINDS = frozenset({
    TokenKind.PASSWORD_RESET,
    TokenKind.EMAIL_VERIFICATION,
    TokenKind.MFA,
})


class AuditEvent(str, Enum):
    """Audit event kinds emitted by the auth and permissions features."""
    LOGIN = "login"
    LOGOUT = "logout"
    LOGIN_FAILED = "login_failed"
    REGISTRATION = "registration"
    REGISTRATION_EXISTING_EMAIL = "registration_attempt_existing_email"
    LOGIN_INVALID_EMAIL = "login_attempt_invalid_email"
    LOGIN_INACTIVE_USER = "login_attempt_inactive_user"
    LOGIN_LOCKED_USER = "login_attempt_locked_user"
    LOGIN_INVALID_PASSWORD = "login_attempt_invalid_password"
    ACCOUNT_LOCKED = "account_locked"
    REFRESH_TOKEN_INVALID = "refresh_token_invalid"
    REFRESH_TOKEN_NOT_FOUND = "refresh_token_not_found_or_expired"
    PASSWORD_RESET_REQUEST = "password_reset_request"
    PASSWORD_RESET_INVALID_EMAIL = "password_reset_request_invalid_email"
    PASSWORD_RESET_INVALID_TOKEN = "password_reset_invalid_token"
    PASSWORD_RESET_SUCCESS = "password_reset_success"
    PASSWORD_CHANGED = "password_changed"
    EMAIL_VERIFICATION_REQUEST = "email_verification_request"
    EMAIL_VERIFIED = "email_verified"
    ROLE_CREATED = "role_created"
    ROLE_UPDATED = "role_updated"
    ROLE_DELETED = "role_deleted"
    ROLE_PERMISSIONS_ASSIGNED = "role_permissions_assigned"
    ROLE_PERMISSION_REMOVED = "role_permission_removed"
    PERMISSION_CREATED = "permission_created"
    PERMISSION_UPDATED = "permission_updated"
    PERMISSION_DELETED = "permission_deleted"
    ROLES_ASSIGNED = "roles_assigned"
    ROLE_REMOVED = "role_removed"
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DEACTIVATED = "user_deactivated"


class LockState(str, Enum):
    """Lockout state of an account at a given instant."""
    ACTIVE = "active"
    LOCKED = "locked"
    LOCK_EXPIRED = "lock_expired"


# Generic messages. Authentication failures never reveal which check failed.
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"
AUTHENTICATION_REQUIRED_MESSAGE = "Authentication required"
INSUFFICIENT_PERMISSIONS_MESSAGE = "Insufficient permissions"
REQUIRED_ROLE_MESSAGE = "Required role not assigned"
NO_ROLES_MESSAGE = "No roles assigned"
PERMISSION_CHECK_FAILED_MESSAGE = "Permission check failed"
ROLE_CHECK_FAILED_MESSAGE = "Role check failed"
PASSWORD_RESET_REQUESTED_MESSAGE = "If the email exists, a password reset link has been sent"
INTERNAL_ERROR_MESSAGE = "Internal server error"

LOCK_REASON_FAILED_ATTEMPTS = "Too many failed login attempts"

SUPER_ADMIN_ROLE = "super_admin"

# Password policy: lowercase, uppercase, digit and one special character.
PASSWORD_MIN_LENGTH = 8
# bcrypt only reads the first 72 bytes and newer releases reject longer input
PASSWORD_MAX_BYTES = 72
PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"
PASSWORD_POLICY_PATTERN = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]"

TOKEN_HINT_LENGTH = 4
