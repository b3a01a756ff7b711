# =============================================================================
# OAuth Integration (Google)
# =============================================================================
#
# Setup:
#   1. Go to https://console.cloud.google.com/apis/credentials
#   2. Create OAuth 2.0 Client ID (Web application)
#   3. Add authorized redirect URI: https://yourdomain.com/auth/google/callback
#   4. Set env vars:
#      - GOOGLE_OAUTH_CLIENT_ID=...
#      - GOOGLE_OAUTH_CLIENT_SECRET=...
#      - GOOGLE_OAUTH_REDIRECT_URI=...
#
# Two flows end in the same profile:
#   - code flow: /auth/google → Google consent → /auth/google/callback?code=
#   - token exchange: the frontend signs in with Google and posts the access token
#
# =============================================================================

from datetime import datetime, timedelta
import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from marketplace.config import Settings
from marketplace.core.errors import AuthenticationError
from marketplace.core.models import AuthProvider
from marketplace.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class FederatedProfile(BaseModel):
    """User info retrieved from an OAuth provider."""
    provider: AuthProvider = AuthProvider.GOOGLE
    external_id: str
    email: str | None = None  # Google may withhold it without the email scope
    name: str | None = None
    avatar_url: str | None = None


class OAuthError(AuthenticationError):
    """OAuth flow error."""
    default_detail = "Authentication failed"


# =============================================================================
# Google OAuth
# =============================================================================

class GoogleOAuth:
    """Google OAuth 2.0 implementation."""

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        """Check if Google OAuth is configured."""
        return bool(
            self.settings.google_oauth_client_id
            and self.settings.google_oauth_client_secret
        )

    @property
    def redirect_uri(self) -> str:
        return self.settings.google_oauth_redirect_uri

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport, timeout=10.0)

    def get_authorize_url(self, state: str | None = None) -> str:
        """
        Get URL to redirect user to for Google sign-in.

        Args:
            state: Optional state parameter for CSRF protection

        Returns:
            URL to redirect user to
        """
        if not self.is_configured:
            raise OAuthError("Google OAuth not configured")

        params = {
            "client_id": self.settings.google_oauth_client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "prompt": "select_account",
        }
        if state:
            params["state"] = state

        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> dict[str, Any]:
        """
        Exchange authorization code for tokens.

        Returns:
            Token response with access_token, id_token
        """
        if not self.is_configured:
            raise OAuthError("Google OAuth not configured")

        try:
            async with self._client() as client:
                response = await client.post(
                    self.TOKEN_URL,
                    data={
                        "client_id": self.settings.google_oauth_client_id,
                        "client_secret": self.settings.google_oauth_client_secret,
                        "code": code,
                        "redirect_uri": self.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
        except httpx.RequestError as e:
            logger.error(f"Google token exchange request failed: {e}")
            raise OAuthError() from e

        if response.status_code != 200:
            logger.error(f"Google token exchange failed: {response.text}")
            raise OAuthError()

        return response.json()

    async def get_user_info(self, access_token: str) -> FederatedProfile:
        """
        Get the signed-in user's profile from Google.

        Args:
            access_token: Access token from the code exchange or the frontend
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.RequestError as e:
            logger.error(f"Google userinfo request failed: {e}")
            raise OAuthError() from e

        if response.status_code != 200:
            logger.error(f"Google userinfo failed: {response.status_code} {response.text}")
            raise OAuthError()

        data = response.json()
        if "sub" not in data:
            logger.error("Google userinfo response has no subject")
            raise OAuthError()

        return FederatedProfile(
            external_id=str(data["sub"]),
            email=data.get("email"),
            name=data.get("name"),
            avatar_url=data.get("picture"),
        )

    async def authenticate(self, code: str) -> FederatedProfile:
        """Complete OAuth flow: exchange code and get user info."""
        tokens = await self.exchange_code(code)
        if "access_token" not in tokens:
            raise OAuthError()
        return await self.get_user_info(tokens["access_token"])


# =============================================================================
# OAuth Manager
# =============================================================================

class OAuthManager:
    """Google client plus CSRF state bookkeeping for the code flow."""

    STATE_TTL = timedelta(minutes=10)

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.google = GoogleOAuth(settings, transport=transport)

        # State tokens issued by this process (single instance, no shared store)
        self._pending_states: dict[str, datetime] = {}

    def create_state(self) -> str:
        """Create a state token for CSRF protection."""
        self._purge_states()
        state = generate_id("oauth")
        self._pending_states[state] = utc_now()
        return state

    def validate_state(self, state: str | None) -> bool:
        """Validate and consume a state token."""
        if not state:
            return False
        issued_at = self._pending_states.pop(state, None)
        return issued_at is not None and utc_now() - issued_at <= self.STATE_TTL

    def _purge_states(self) -> None:
        cutoff = utc_now() - self.STATE_TTL
        for state, issued_at in list(self._pending_states.items()):
            if issued_at < cutoff:
                del self._pending_states[state]

    def get_authorize_url(self) -> str:
        """Get the Google authorization URL with a fresh state."""
        return self.google.get_authorize_url(self.create_state())
