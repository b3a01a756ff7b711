"""
Tests for passwords, tokens and the two-stage gate.

Core principle: identity comes from the token, role checks come after it.
"""

from datetime import datetime, timedelta, timezone

import jwt as pyjwt
import pytest

from marketplace.auth.context import AuthContext
from marketplace.auth.jwt import TokenExpiredError, TokenInvalidError, TokenIssuer
from marketplace.auth.passwords import PasswordHasher
from marketplace.auth.policies import (
    ADMIN_POLICY,
    ADMIN_REQUIRED,
    INVALID_TOKEN,
    NO_TOKEN,
    Policy,
    authenticate,
    authorize,
)
from marketplace.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ValidationError,
)
from marketplace.core.models import User, UserRole


class FrozenClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def issuer(clock):
    return TokenIssuer("unit-test-key", ttl=timedelta(hours=1), clock=clock)


# =============================================================================
# Passwords
# =============================================================================


class TestPasswordHasher:
    def test_hash_and_verify(self):
        hasher = PasswordHasher(iterations=1000)
        hashed = hasher.hash("hunter2")

        assert hashed != "hunter2"
        assert ":" in hashed
        assert hasher.verify("hunter2", hashed)
        assert not hasher.verify("hunter3", hashed)

    def test_salted(self):
        hasher = PasswordHasher(iterations=1000)
        assert hasher.hash("same") != hasher.hash("same")

    def test_empty_password_rejected(self):
        with pytest.raises(ValidationError):
            PasswordHasher(iterations=1000).hash("")

    def test_malformed_hash_never_matches(self):
        hasher = PasswordHasher(iterations=1000)
        assert not hasher.verify("x", None)
        assert not hasher.verify("x", "no-separator")
        assert not hasher.verify("x", "a:b:c")


# =============================================================================
# Tokens
# =============================================================================


class TestTokenIssuer:
    def test_round_trip_claims(self, issuer):
        claims = issuer.verify(issuer.issue("user_1", UserRole.SELLER))

        assert claims.sub == "user_1"
        assert claims.role == UserRole.SELLER
        assert claims.exp - claims.iat == timedelta(hours=1)

    def test_valid_until_expiry(self, issuer, clock):
        token = issuer.issue("user_1", UserRole.USER)

        clock.advance(minutes=59, seconds=59)
        assert issuer.verify(token).sub == "user_1"

        clock.advance(seconds=1)
        with pytest.raises(TokenExpiredError):
            issuer.verify(token)

    def test_fractional_issue_time(self, clock):
        clock.now = datetime(2025, 1, 1, 12, 0, 0, 900_000, tzinfo=timezone.utc)
        issuer = TokenIssuer("unit-test-key", ttl=timedelta(hours=1), clock=clock)
        issued_at = clock()
        token = issuer.issue("user_1", UserRole.USER)

        clock.now = issued_at + timedelta(hours=1) - timedelta(milliseconds=500)
        assert issuer.verify(token).sub == "user_1"

        clock.now = issued_at + timedelta(hours=1, seconds=1)
        with pytest.raises(TokenExpiredError):
            issuer.verify(token)

    def test_custom_ttl(self, issuer, clock):
        token = issuer.issue("user_1", UserRole.USER, ttl=timedelta(minutes=5))
        clock.advance(minutes=6)
        with pytest.raises(TokenExpiredError):
            issuer.verify(token)

    def test_wrong_key_rejected(self, issuer, clock):
        other = TokenIssuer("another-key", clock=clock)
        with pytest.raises(TokenInvalidError):
            issuer.verify(other.issue("user_1", UserRole.ADMIN))

    def test_garbage_rejected(self, issuer):
        with pytest.raises(TokenInvalidError):
            issuer.verify("not.a.token")

    def test_missing_claims_rejected(self, issuer):
        token = pyjwt.encode({"sub": "user_1", "role": "user"}, "unit-test-key", algorithm="HS256")
        with pytest.raises(TokenInvalidError):
            issuer.verify(token)

    def test_unknown_role_rejected(self, issuer, clock):
        now = int(clock().timestamp())
        token = pyjwt.encode(
            {"sub": "user_1", "role": "superuser", "iat": now, "exp": now + 60},
            "unit-test-key",
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalidError):
            issuer.verify(token)

    def test_issue_for_user(self, issuer):
        user = User(email="bob@example.com", name="Bob", role=UserRole.ADMIN)
        auth = issuer.issue_for(user)

        assert auth.token_type == "bearer"
        assert auth.expires_in == 3600
        assert auth.user.id == user.id
        claims = issuer.verify(auth.token)
        assert claims.sub == user.id
        assert claims.email == "bob@example.com"
        assert claims.role == UserRole.ADMIN

    def test_requires_secret(self):
        with pytest.raises(ConfigurationError):
            TokenIssuer("")


# =============================================================================
# Gate
# =============================================================================


class TestAuthenticate:
    def test_missing_token(self, issuer):
        with pytest.raises(AuthenticationError) as exc:
            authenticate(None, issuer)
        assert exc.value.detail == NO_TOKEN

    def test_invalid_token(self, issuer):
        with pytest.raises(AuthenticationError) as exc:
            authenticate("Bearer garbage", issuer)
        assert exc.value.detail == INVALID_TOKEN

    def test_expired_token(self, issuer, clock):
        token = issuer.issue("user_1", UserRole.ADMIN)
        clock.advance(hours=2)
        with pytest.raises(AuthenticationError) as exc:
            authenticate(f"Bearer {token}", issuer)
        assert exc.value.detail == INVALID_TOKEN

    def test_context_from_token(self, issuer):
        ctx = authenticate(f"Bearer {issuer.issue('user_1', UserRole.SELLER)}", issuer)
        assert ctx == AuthContext(user_id="user_1", role=UserRole.SELLER)

    def test_scheme_is_case_insensitive(self, issuer):
        ctx = authenticate(f"bearer {issuer.issue('user_1', UserRole.USER)}", issuer)
        assert ctx.user_id == "user_1"

    @pytest.mark.parametrize("header", ["Basic abc", "Bearer", "Bearer   ", "Token xyz"])
    def test_malformed_header_is_invalid_token(self, issuer, header):
        with pytest.raises(AuthenticationError) as exc:
            authenticate(header, issuer)
        assert exc.value.detail == INVALID_TOKEN

    def test_wrong_scheme_with_valid_token(self, issuer):
        token = issuer.issue("user_1", UserRole.ADMIN)
        with pytest.raises(AuthenticationError) as exc:
            authenticate(f"Basic {token}", issuer)
        assert exc.value.detail == INVALID_TOKEN


class TestAuthorize:
    def test_admin_allowed(self):
        ctx = AuthContext(user_id="u", role=UserRole.ADMIN)
        assert authorize(ctx, ADMIN_POLICY) is ctx

    @pytest.mark.parametrize("role", [UserRole.USER, UserRole.SELLER])
    def test_non_admin_denied(self, role):
        with pytest.raises(AuthorizationError) as exc:
            authorize(AuthContext(user_id="u", role=role), ADMIN_POLICY)
        assert exc.value.detail == ADMIN_REQUIRED

    def test_open_policy_allows_any_role(self):
        for role in UserRole:
            authorize(AuthContext(user_id="u", role=role), Policy())

    def test_default_denial_message(self):
        policy = Policy([UserRole.SELLER, UserRole.ADMIN])
        allowed, error = policy.check(AuthContext(user_id="u", role=UserRole.USER))
        assert not allowed
        assert error == "Access denied. Requires role: admin, seller"

    def test_role_comes_from_token(self, issuer):
        """A demoted admin keeps access until the old token expires."""
        token = issuer.issue("user_1", UserRole.ADMIN)
        # The store no longer says admin, but nothing here reads the store
        ctx = authorize(authenticate(f"Bearer {token}", issuer), ADMIN_POLICY)
        assert ctx.is_admin


class TestAuthContext:
    def test_self_or_admin(self):
        user = AuthContext(user_id="u1", role=UserRole.USER)
        admin = AuthContext(user_id="a1", role=UserRole.ADMIN)

        user.require_self_or_admin("u1")
        admin.require_self_or_admin("u1")
        with pytest.raises(AuthorizationError):
            user.require_self_or_admin("u2")

    def test_has_role(self):
        ctx = AuthContext(user_id="u1", role=UserRole.SELLER)
        assert ctx.has_role("seller", UserRole.ADMIN)
        assert not ctx.has_role(UserRole.USER)
