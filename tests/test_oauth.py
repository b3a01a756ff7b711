"""
Tests for Google sign-in: the token exchange and the code flow.
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from marketplace.core.models import AuthProvider
from marketplace.integrations.oauth import GoogleOAuth, OAuthError, OAuthManager


# =============================================================================
# Client
# =============================================================================


class TestGoogleOAuth:
    @pytest.mark.asyncio
    async def test_user_info(self, settings, google):
        google.add_user("tok", sub="g-1", email="g@example.com", name="Gee")
        client = GoogleOAuth(settings, transport=httpx.MockTransport(google.handler))

        profile = await client.get_user_info("tok")

        assert profile.provider == AuthProvider.GOOGLE
        assert profile.external_id == "g-1"
        assert profile.email == "g@example.com"
        assert profile.name == "Gee"
        assert profile.avatar_url == "https://example.com/g-1.png"
        assert google.requests[0].headers["Authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_rejected_token(self, settings, google):
        client = GoogleOAuth(settings, transport=httpx.MockTransport(google.handler))
        with pytest.raises(OAuthError):
            await client.get_user_info("unknown")

    @pytest.mark.asyncio
    async def test_network_failure(self, settings):
        def unreachable(request):
            raise httpx.ConnectError("down", request=request)

        client = GoogleOAuth(settings, transport=httpx.MockTransport(unreachable))
        with pytest.raises(OAuthError):
            await client.get_user_info("tok")

    @pytest.mark.asyncio
    async def test_code_exchange(self, settings, google):
        google.add_user("tok", sub="g-1", email="g@example.com", code="the-code")
        client = GoogleOAuth(settings, transport=httpx.MockTransport(google.handler))

        profile = await client.authenticate("the-code")

        assert profile.external_id == "g-1"
        form = parse_qs(google.requests[0].content.decode())
        assert form["client_secret"] == ["test-client-secret"]
        assert form["grant_type"] == ["authorization_code"]

    def test_authorize_url(self, settings):
        url = GoogleOAuth(settings).get_authorize_url(state="abc")
        query = parse_qs(urlparse(url).query)

        assert url.startswith(GoogleOAuth.AUTHORIZE_URL)
        assert query["client_id"] == ["test-client-id"]
        assert query["state"] == ["abc"]
        assert query["scope"] == ["openid email profile"]


class TestOAuthState:
    def test_state_is_single_use(self, settings):
        manager = OAuthManager(settings)
        state = manager.create_state()

        assert manager.validate_state(state)
        assert not manager.validate_state(state)

    def test_unknown_state(self, settings):
        manager = OAuthManager(settings)
        assert not manager.validate_state("forged")
        assert not manager.validate_state(None)


# =============================================================================
# Routes
# =============================================================================


class TestGoogleTokenExchange:
    def test_first_sign_in_creates_user(self, client, app, google):
        google.add_user("tok", sub="g-1", email="new@example.com", name="Newbie")

        response = client.post("/auth/google", json={"access_token": "tok"})

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["email"] == "new@example.com"
        assert body["user"]["provider"] == "google"
        assert body["user"]["role"] == "user"
        assert app.state.token_issuer.verify(body["token"]).sub == body["user"]["id"]

    def test_links_to_existing_local_account(self, client, register, google):
        local = register()["user"]
        google.add_user("tok", sub="g-1", email="alice@example.com")

        response = client.post("/auth/google", json={"access_token": "tok"})

        assert response.status_code == 200
        assert response.json()["user"]["id"] == local["id"]
        assert response.json()["user"]["provider"] == "local"

    def test_repeat_sign_in_same_user(self, client, google):
        google.add_user("tok", sub="g-1", email="new@example.com")

        first = client.post("/auth/google", json={"access_token": "tok"}).json()
        second = client.post("/auth/google", json={"access_token": "tok"}).json()

        assert first["user"]["id"] == second["user"]["id"]

    def test_missing_access_token(self, client):
        response = client.post("/auth/google", json={})
        assert response.status_code == 400
        assert response.json()["detail"] == "No access_token provided"

    def test_profile_without_email(self, client, google):
        google.add_user("tok", sub="g-1", email=None)

        response = client.post("/auth/google", json={"access_token": "tok"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Email not found in Google profile"

    def test_google_rejects_token(self, client):
        response = client.post("/auth/google", json={"access_token": "expired"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication failed"

    def test_google_user_cannot_password_login(self, client, google):
        google.add_user("tok", sub="g-1", email="new@example.com")
        client.post("/auth/google", json={"access_token": "tok"})

        response = client.post("/auth/login", json={"email": "new@example.com", "password": ""})
        assert response.status_code == 401


class TestGoogleCodeFlow:
    def _start(self, client) -> str:
        response = client.get("/auth/google", follow_redirects=False)
        assert response.status_code == 307
        location = response.headers["location"]
        assert location.startswith(GoogleOAuth.AUTHORIZE_URL)
        return parse_qs(urlparse(location).query)["state"][0]

    def test_redirects_to_frontend_with_token(self, client, app, google):
        google.add_user("tok", sub="g-1", email="flow@example.com", code="the-code")
        state = self._start(client)

        response = client.get(
            "/auth/google/callback",
            params={"code": "the-code", "state": state},
            follow_redirects=False,
        )

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert f"{location.scheme}://{location.netloc}{location.path}" == "http://frontend.test/auth-success"
        token = parse_qs(location.query)["token"][0]
        assert app.state.token_issuer.verify(token).email == "flow@example.com"

    def test_bad_state_redirects_to_login(self, client, google):
        google.add_user("tok", sub="g-1", email="flow@example.com", code="the-code")

        response = client.get(
            "/auth/google/callback",
            params={"code": "the-code", "state": "forged"},
            follow_redirects=False,
        )

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert location.path == "/login"
        assert parse_qs(location.query)["error"] == ["Invalid state parameter"]

    def test_provider_error_redirects_to_login(self, client):
        response = client.get(
            "/auth/google/callback",
            params={"error": "access_denied"},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert parse_qs(urlparse(response.headers["location"]).query)["error"] == ["access_denied"]

    def test_post_callback_returns_token(self, client, google):
        google.add_user("tok", sub="g-1", email="flow@example.com", code="the-code")
        state = self._start(client)

        response = client.post("/auth/google/callback", json={"code": "the-code", "state": state})

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "flow@example.com"

    @pytest.mark.parametrize("body", [{"code": "the-code"}, {"code": "the-code", "state": "forged"}])
    def test_post_callback_requires_issued_state(self, client, google, body):
        google.add_user("tok", sub="g-1", email="flow@example.com", code="the-code")

        response = client.post("/auth/google/callback", json=body)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid state parameter"
        assert not [r for r in google.requests if r.url.path == "/token"]

    def test_post_callback_state_is_single_use(self, client, google):
        google.add_user("tok", sub="g-1", email="flow@example.com", code="the-code")
        state = self._start(client)

        client.post("/auth/google/callback", json={"code": "the-code", "state": state})
        response = client.post("/auth/google/callback", json={"code": "the-code", "state": state})
        assert response.status_code == 400

    def test_post_callback_bad_code(self, client):
        state = self._start(client)
        response = client.post("/auth/google/callback", json={"code": "wrong", "state": state})
        assert response.status_code == 401
