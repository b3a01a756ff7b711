"""
Shared fixtures: an app on in-memory storage with fake Google and ImgBB.
"""

from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

from marketplace.api.app import create_app
from marketplace.auth.passwords import PasswordHasher
from marketplace.config import Settings
from marketplace.core.models import UserRole
from marketplace.services.users import UserService
from marketplace.storage import create_local_storage


# =============================================================================
# Fake external services
# =============================================================================


class FakeGoogle:
    """Answers the token and userinfo endpoints from canned data."""

    def __init__(self):
        self.profiles: dict[str, dict] = {}  # access token -> userinfo body
        self.codes: dict[str, str] = {}  # authorization code -> access token
        self.requests: list[httpx.Request] = []

    def add_user(self, access_token: str, sub: str, email: str | None, name: str = "Google User", code: str | None = None):
        profile = {"sub": sub, "name": name, "picture": f"https://example.com/{sub}.png"}
        if email is not None:
            profile["email"] = email
        self.profiles[access_token] = profile
        if code:
            self.codes[code] = access_token

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == "/token":
            form = parse_qs(request.content.decode())
            code = form.get("code", [""])[0]
            if code not in self.codes:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": self.codes[code], "token_type": "Bearer"})

        if request.url.path == "/oauth2/v3/userinfo":
            token = request.headers.get("Authorization", "").removeprefix("Bearer ")
            if token not in self.profiles:
                return httpx.Response(401, json={"error": "invalid_token"})
            return httpx.Response(200, json=self.profiles[token])

        return httpx.Response(404)


class FakeImgBB:
    """Accepts every upload unless `accept` is switched off."""

    def __init__(self):
        self.accept = True
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.accept:
            return httpx.Response(400, json={"success": False, "error": {"message": "Invalid image"}})
        return httpx.Response(
            200,
            json={"success": True, "data": {"url": "https://i.ibb.co/abc123/photo.png"}},
        )


# =============================================================================
# App fixtures
# =============================================================================


@pytest.fixture
def settings():
    """Settings with every required secret and a cheap hash."""
    return Settings(
        _env_file=None,
        jwt_secret_key="test-secret-key",
        google_oauth_client_id="test-client-id",
        google_oauth_client_secret="test-client-secret",
        password_hash_iterations=1000,
        frontend_url="http://frontend.test",
        imgbb_api_key="test-imgbb-key",
        sentry_dsn="",
    )


@pytest.fixture
def storage():
    return create_local_storage()


@pytest.fixture
def hasher():
    return PasswordHasher(iterations=1000)


@pytest.fixture
def user_service(storage, hasher):
    return UserService(storage, hasher)


@pytest.fixture
def google():
    return FakeGoogle()


@pytest.fixture
def imgbb():
    return FakeImgBB()


@pytest.fixture
def app(settings, storage, google, imgbb):
    return create_app(
        settings,
        storage=storage,
        oauth_transport=httpx.MockTransport(google.handler),
        image_transport=httpx.MockTransport(imgbb.handler),
    )


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


# =============================================================================
# Account helpers
# =============================================================================


@pytest.fixture
def register(client):
    """Register a local account and return the response body."""

    def _register(name: str = "Alice", email: str = "alice@example.com", password: str = "secret123"):
        response = client.post("/api/users/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest.fixture
def login(client):
    """Log in and return the bearer token."""

    def _login(email: str = "alice@example.com", password: str = "secret123") -> str:
        response = client.post("/api/users/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()["token"]

    return _login


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return bearer


@pytest.fixture
def alice(register, login):
    """A regular user: (user body, token)."""
    user = register()["user"]
    return user, login()


@pytest.fixture
def admin(client, app, register, login):
    """An admin promoted in the store, then logged in: (user body, token)."""
    user = register(name="Root", email="root@example.com", password="rootpass")["user"]
    client.portal.call(app.state.users.update_role, user["id"], UserRole.ADMIN)
    return user, login("root@example.com", "rootpass")
