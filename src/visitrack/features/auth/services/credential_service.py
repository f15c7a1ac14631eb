"""Password hashing and opaque token hashing."""

import asyncio
import hashlib
import hmac
import logging
import re
from typing import Optional

import bcrypt

from ....config.constants import (
    PASSWORD_MAX_BYTES,
    PASSWORD_MIN_LENGTH,
    PASSWORD_POLICY_PATTERN,
    PASSWORD_SPECIAL_CHARACTERS,
    TOKEN_HINT_LENGTH,
)
from ....core.exceptions import ConfigurationError, CredentialFormatError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12

_PASSWORD_POLICY = re.compile(PASSWORD_POLICY_PATTERN)


def _exceeds_bcrypt_limit(secret: str) -> bool:
    return len(secret.encode("utf-8")) > PASSWORD_MAX_BYTES


def password_policy_violation(password: str) -> Optional[str]:
    """Describe why ``password`` fails the policy, or None when it passes."""
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    if _exceeds_bcrypt_limit(password):
        return f"Password must be at most {PASSWORD_MAX_BYTES} bytes"
    if not _PASSWORD_POLICY.match(password):
        return (
            "Password must contain at least one lowercase letter, one uppercase letter, "
            f"one number, and one special character ({PASSWORD_SPECIAL_CHARACTERS})"
        )
    return None


class CredentialService:
    """Credential store primitives.

    Passwords are hashed with bcrypt. Persisted tokens are hashed with
    HMAC-SHA256 under a server key so a record can be looked up by the
    digest of the token the client presents.
    """

    def __init__(self, token_hash_key: str, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        if not token_hash_key:
            raise ConfigurationError("A token hash key is required")
        self._token_hash_key = token_hash_key.encode("utf-8")
        self.rounds = rounds

    def hash(self, secret: str) -> str:
        """Hash a password with bcrypt; the salt is embedded in the result."""
        if _exceeds_bcrypt_limit(secret):
            raise ValidationError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
        hashed = bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))
        return hashed.decode("utf-8")

    def verify(self, secret: str, hashed: str) -> bool:
        """Check a password against a stored hash.

        Raises:
            CredentialFormatError: If the stored hash is not a bcrypt hash
        """
        if _exceeds_bcrypt_limit(secret):
            # No stored password can be this long
            return False
        try:
            return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError) as e:
            logger.error(f"Stored credential is not a valid bcrypt hash: {e}")
            raise CredentialFormatError("Stored credential has an invalid format") from e

    async def hash_async(self, secret: str) -> str:
        """``hash`` on a worker thread."""
        return await asyncio.to_thread(self.hash, secret)

    async def verify_async(self, secret: str, hashed: str) -> bool:
        """``verify`` on a worker thread."""
        return await asyncio.to_thread(self.verify, secret, hashed)

    def hash_opaque_token(self, token: str) -> str:
        """Deterministic digest of a bearer token for the token table."""
        return hmac.new(self._token_hash_key, token.encode("utf-8"), hashlib.sha256).hexdigest()

    @staticmethod
    def token_hint(token: str) -> str:
        return token[-TOKEN_HINT_LENGTH:]
