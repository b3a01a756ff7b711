"""
Authentication and authorization.

- passwords: PBKDF2 password hashing
- jwt: bearer token issue/verify
- reconciler: Google profile → local user
- context/policies: the two-stage gate (token, then role) for routes
- routes: the /auth router, imported directly by the app factory
"""

from marketplace.auth.context import AuthContext
from marketplace.auth.jwt import (
    AuthToken,
    TokenClaims,
    TokenIssuer,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
)
from marketplace.auth.passwords import PasswordHasher
from marketplace.auth.policies import (
    Policy,
    authenticate,
    authorize,
    require_auth,
    require_role,
    require_admin,
)
from marketplace.auth.reconciler import IdentityReconciler, NoEmailError

__all__ = [
    # Gate
    "AuthContext",
    "Policy",
    "authenticate",
    "authorize",
    "require_auth",
    "require_role",
    "require_admin",
    # Tokens
    "AuthToken",
    "TokenClaims",
    "TokenIssuer",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    # Identity
    "PasswordHasher",
    "IdentityReconciler",
    "NoEmailError",
]
