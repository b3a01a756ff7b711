"""
Policies - the clean interface for route authorization.

Two checks, always in this order:
1. authenticate(): a valid bearer token → AuthContext
2. authorize(): the context's role satisfies the route's policy

Both are pure functions of their inputs. The FastAPI dependencies below
chain them so a role check can never run without a verified token.

Usage:
    @router.get("/admin/users")
    async def list_users(ctx: AuthContext = Depends(require_admin())):
        ...
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from marketplace.auth.context import AuthContext
from marketplace.auth.jwt import TokenError, TokenIssuer
from marketplace.core.errors import AuthenticationError, AuthorizationError
from marketplace.core.models import UserRole
from marketplace.integrations.sentry import set_user

logger = logging.getLogger(__name__)

NO_TOKEN = "No token, authorization denied"
INVALID_TOKEN = "Token is not valid"
ADMIN_REQUIRED = "Access denied. Admin rights required."


# =============================================================================
# Policy
# =============================================================================


class Policy:
    """
    A role requirement that can be checked against an AuthContext.

    An empty role set means "any authenticated user".
    """

    def __init__(self, roles: list[UserRole | str] | None = None, message: str | None = None):
        self.roles = {UserRole(r) for r in roles or []}
        self.message = message

    def check(self, ctx: AuthContext) -> tuple[bool, str | None]:
        """
        Check if context satisfies this policy.

        Returns: (allowed, error_message)
        """
        if not self.roles or ctx.role in self.roles:
            return True, None
        if self.message:
            return False, self.message
        allowed = ", ".join(sorted(r.value for r in self.roles))
        return False, f"Access denied. Requires role: {allowed}"


ADMIN_POLICY = Policy([UserRole.ADMIN], message=ADMIN_REQUIRED)


# =============================================================================
# Pure checks
# =============================================================================


def authenticate(authorization: str | None, issuer: TokenIssuer) -> AuthContext:
    """
    Turn an Authorization header value into an AuthContext.

    Only an absent header counts as "no token"; a header with another
    scheme or without credentials is an invalid token.

    Raises:
        AuthenticationError: no token, or the token does not verify
    """
    if not authorization:
        raise AuthenticationError(NO_TOKEN)

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError(INVALID_TOKEN)

    try:
        claims = issuer.verify(token)
    except TokenError as e:
        raise AuthenticationError(INVALID_TOKEN) from e

    return AuthContext.from_claims(claims)


def authorize(ctx: AuthContext, policy: Policy) -> AuthContext:
    """
    Check an authenticated context against a policy.

    Raises:
        AuthorizationError: the role is not allowed
    """
    allowed, error = policy.check(ctx)
    if not allowed:
        logger.warning(f"User {ctx.user_id} with role {ctx.role.value} denied: {error}")
        raise AuthorizationError(error)
    return ctx


# =============================================================================
# FastAPI dependencies
# =============================================================================


# Registers the scheme in OpenAPI; the header itself is parsed by authenticate()
bearer = HTTPBearer(auto_error=False)


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


async def get_auth_context(
    request: Request,
    _credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthContext:
    """Resolve the caller's identity from the Authorization header."""
    try:
        ctx = authenticate(request.headers.get("Authorization"), issuer)
    except AuthenticationError as e:
        logger.warning(f"Authentication failed: {e.detail}")
        raise

    set_user(ctx.user_id, ctx.role.value)
    return ctx


def require_auth() -> Callable:
    """Just require authentication, no specific role."""
    return get_auth_context


def require_role(*roles: UserRole | str, message: str | None = None) -> Callable:
    """Require one of the listed roles."""
    policy = Policy(list(roles), message=message)
    return _create_dependency(policy)


def require_admin() -> Callable:
    """Require the admin role."""
    return _create_dependency(ADMIN_POLICY)


def _create_dependency(policy: Policy) -> Callable:
    """Create a FastAPI Depends from a policy."""

    async def dependency(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        return authorize(ctx, policy)

    return dependency
