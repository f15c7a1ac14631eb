"""Signed bearer token issuance and verification."""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, Optional
from uuid import UUID

import jwt
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidSignatureError,
    InvalidTokenError as JWTInvalidTokenError,
)

from ....config.constants import TokenKind
from ....core.exceptions import ConfigurationError, InvalidTokenError
from ....core.value_objects import AccountId, TenantId
from ....utils.datetime import utc_now
from ..entities.account import Account
from ..entities.auth_context import TokenClaims

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_TTL = timedelta(hours=24)
DEFAULT_REFRESH_TTL = timedelta(days=7)
DEFAULT_SINGLE_USE_TTL = timedelta(hours=1)


class TokenService:
    """Issue and verify HS256 tokens for every token kind.

    All kinds share one secret; the ``kind`` claim keeps a refresh or reset
    token from being accepted where an access token is expected.
    """

    def __init__(
        self,
        secret: Optional[str],
        algorithm: str = "HS256",
        access_ttl: timedelta = DEFAULT_ACCESS_TTL,
        refresh_ttl: timedelta = DEFAULT_REFRESH_TTL,
        single_use_ttl: timedelta = DEFAULT_SINGLE_USE_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.single_use_ttl = single_use_ttl
        self._clock = clock

    def _require_secret(self) -> str:
        if not self._secret:
            raise ConfigurationError("JWT secret is not configured")
        return self._secret

    def _encode(self, payload: Dict[str, Any], ttl: timedelta) -> str:
        secret = self._require_secret()
        now = self._clock()
        claims = {
            **payload,
            "jti": secrets.token_urlsafe(16),
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def expiry_for(self, kind: TokenKind) -> timedelta:
        if kind == TokenKind.ACCESS:
            return self.access_ttl
        if kind == TokenKind.REFRESH:
            return self.refresh_ttl
        return self.single_use_ttl

    def issue_access(self, account: Account, roles: Iterable[str]) -> str:
        """Access token carrying identity, tenant and role names."""
        payload = {
            "sub": str(account.id),
            "accountId": str(account.id),
            "email": account.email,
            "tenantId": str(account.tenant_id),
            "employeeId": str(account.employee_id),
            "roles": sorted(set(roles)),
            "kind": TokenKind.ACCESS.value,
        }
        return self._encode(payload, self.access_ttl)

    def issue_refresh(self, account: Account) -> str:
        payload = {
            "sub": str(account.id),
            "accountId": str(account.id),
            "email": account.email,
            "kind": TokenKind.REFRESH.value,
        }
        return self._encode(payload, self.refresh_ttl)

    def issue_single_use(self, kind: TokenKind, account_id: Optional[AccountId] = None) -> str:
        """Password reset, email verification or MFA token."""
        if not kind.is_single_use:
            raise ValueError(f"{kind.value} is not a single-use token kind")
        payload: Dict[str, Any] = {"kind": kind.value}
        if account_id is not None:
            payload["sub"] = str(account_id)
        return self._encode(payload, self.single_use_ttl)

    def verify(self, token: str, expected_kind: Optional[TokenKind] = None) -> TokenClaims:
        """Verify signature, expiry and kind.

        Every failure raises the same ``InvalidTokenError``; the cause is
        only logged.
        """
        secret = self._require_secret()
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "jti"]},
            )
        except ExpiredSignatureError:
            logger.debug("Token rejected: expired")
            raise InvalidTokenError() from None
        except InvalidSignatureError:
            logger.warning("Token rejected: invalid signature")
            raise InvalidTokenError() from None
        except DecodeError:
            logger.debug("Token rejected: malformed")
            raise InvalidTokenError() from None
        except JWTInvalidTokenError as e:
            logger.debug(f"Token rejected: {e}")
            raise InvalidTokenError() from None

        kind = payload.get("kind")
        if expected_kind is not None and kind != expected_kind.value:
            logger.warning(f"Token rejected: expected kind {expected_kind.value}, got {kind}")
            raise InvalidTokenError()

        try:
            return self._build_claims(payload)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Token rejected: malformed claims: {e}")
            raise InvalidTokenError() from None

    @staticmethod
    def _build_claims(payload: Dict[str, Any]) -> TokenClaims:
        account_ref = payload.get("accountId") or payload.get("sub")
        tenant_ref = payload.get("tenantId")
        employee_ref = payload.get("employeeId")
        return TokenClaims(
            kind=payload["kind"],
            jti=payload["jti"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            account_id=AccountId(account_ref) if account_ref else None,
            email=payload.get("email"),
            tenant_id=TenantId(tenant_ref) if tenant_ref else None,
            employee_id=UUID(employee_ref) if employee_ref else None,
            roles=frozenset(payload.get("roles") or ()),
            raw=payload,
        )

    @staticmethod
    def decode_unsafe(token: str) -> Optional[Dict[str, Any]]:
        """Read claims without verifying the signature. For logging only."""
        try:
            return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
        except JWTInvalidTokenError:
            return None
