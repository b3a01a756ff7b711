"""
Auth context - who is making the request.

This is the lightweight object passed to route handlers once the token has
been verified. It is built from the token claims alone; the store is never
consulted, so a role change only takes effect when the user gets a new token.
"""

from __future__ import annotations

from dataclasses import dataclass

from marketplace.auth.jwt import TokenClaims
from marketplace.core.errors import AuthorizationError
from marketplace.core.models import UserRole


@dataclass(frozen=True)
class AuthContext:
    """
    Identity attached to an authenticated request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require_auth())):
            print(f"User {ctx.user_id} with role {ctx.role}")
    """

    user_id: str
    role: UserRole
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def has_role(self, *roles: UserRole | str) -> bool:
        """Check if the user's role is one of `roles`."""
        return self.role in {UserRole(r) for r in roles}

    def is_self(self, user_id: str) -> bool:
        return self.user_id == user_id

    def require_self_or_admin(self, user_id: str) -> None:
        """
        Raise unless acting on the caller's own account, or the caller is admin.

        Usage:
            ctx.require_self_or_admin(user_id)  # raises if not allowed
        """
        if not (self.is_admin or self.is_self(user_id)):
            raise AuthorizationError("Access denied")

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> AuthContext:
        return cls(user_id=claims.sub, role=claims.role, email=claims.email)
