# =============================================================================
# JWT Bearer Tokens
# =============================================================================
#
# This module provides:
#   - Token creation (subject + role, fixed lifetime)
#   - Token validation (signature + expiry)
#
# Tokens are stateless. There is no refresh and no revocation: a token stays
# valid until it expires, even if the user's role changes or the account is
# deleted in the meantime.
#
# =============================================================================

from datetime import datetime, timedelta, timezone
import math
from typing import Any, Callable
import logging

from pydantic import BaseModel
import jwt

from marketplace.core.errors import AuthenticationError, ConfigurationError
from marketplace.core.models import User, UserResponse, UserRole
from marketplace.core.utils import utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class TokenClaims(BaseModel):
    """Validated JWT claims."""
    sub: str  # user_id
    role: UserRole
    email: str | None = None
    iat: datetime
    exp: datetime


class AuthToken(BaseModel):
    """Token returned to the client after login."""
    token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until the token expires
    user: UserResponse


# =============================================================================
# Errors
# =============================================================================

class TokenError(AuthenticationError):
    """Base exception for token errors."""
    default_detail = "Token is not valid"


class TokenExpiredError(TokenError):
    """Token has expired."""


class TokenInvalidError(TokenError):
    """Token is invalid or malformed."""


# =============================================================================
# Issuer / Verifier
# =============================================================================

class TokenIssuer:
    """
    Creates and validates signed bearer tokens.

    The signing key is fixed for the life of the process. `clock` is only
    replaced in tests.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utc_now,
    ):
        if not secret_key:
            raise ConfigurationError("JWT signing key is not configured")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl
        self.clock = clock

    def issue(
        self,
        subject: str,
        role: UserRole | str,
        ttl: timedelta | None = None,
        extra_claims: dict[str, Any] | None = None,
    ) -> str:
        """Create a signed token expiring at now + ttl."""
        now = self.clock()
        expire = now + (ttl if ttl is not None else self.ttl)

        payload = {
            **(extra_claims or {}),
            "sub": subject,
            "role": UserRole(role).value,
            "iat": int(now.timestamp()),
            # Rounded up so the token never expires before now + ttl
            "exp": math.ceil(expire.timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def issue_for(self, user: User) -> AuthToken:
        """Issue a token for a user, packaged for the login response."""
        return AuthToken(
            token=self.issue(user.id, user.role, extra_claims={"email": user.email}),
            expires_in=int(self.ttl.total_seconds()),
            user=UserResponse.from_user(user),
        )

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and validate a token.

        Raises:
            TokenExpiredError: Token has expired
            TokenInvalidError: Token is malformed, wrongly signed or missing claims
        """
        now = self.clock()
        try:
            # Time claims are checked against self.clock below
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["sub", "exp", "iat"],
                },
            )
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token rejected: {e}")
            raise TokenInvalidError() from e

        try:
            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
            issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
            role = UserRole(payload.get("role"))
        except (TypeError, ValueError, OverflowError) as e:
            raise TokenInvalidError() from e

        if now >= expires_at:
            raise TokenExpiredError()

        return TokenClaims(
            sub=str(payload["sub"]),
            role=role,
            email=payload.get("email"),
            iat=issued_at,
            exp=expires_at,
        )
