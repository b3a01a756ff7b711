# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /auth/register        - Create a local account
#   POST /auth/login           - Exchange email + password for a token
#   GET  /auth/me              - Get current user
#
# Google:
#   POST /auth/google          - Exchange a Google access token for our token
#   GET  /auth/google          - Redirect to the Google consent screen
#   GET  /auth/google/callback - Complete the code flow, redirect to frontend
#   POST /auth/google/callback - Complete the code flow, return the token
#
# =============================================================================

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, EmailStr

from marketplace.api.dependencies import (
    get_app_settings,
    get_oauth_manager,
    get_reconciler,
    get_user_service,
)
from marketplace.auth.context import AuthContext
from marketplace.auth.jwt import AuthToken, TokenIssuer
from marketplace.auth.policies import get_token_issuer, require_auth
from marketplace.auth.reconciler import IdentityReconciler
from marketplace.config import Settings
from marketplace.core.errors import AuthenticationError, MarketplaceError, ValidationError
from marketplace.core.models import UserResponse
from marketplace.integrations.oauth import OAuthManager
from marketplace.services.users import UserCreate, UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# Request/Response Models
# =============================================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class GoogleTokenRequest(BaseModel):
    access_token: str | None = None


class OAuthCallbackRequest(BaseModel):
    code: str
    state: str | None = None


# =============================================================================
# Local Credentials
# =============================================================================

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(data: UserCreate, users: UserService = Depends(get_user_service)):
    """
    Create a local account.

    Does not log the user in; call /auth/login afterwards.
    """
    user = await users.register(data)
    return RegisterResponse(message="User registered successfully", user=UserResponse.from_user(user))


@router.post("/login", response_model=AuthToken)
async def login(
    data: LoginRequest,
    users: UserService = Depends(get_user_service),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Authenticate with email and password."""
    user = await users.authenticate(data.email, data.password)
    return issuer.issue_for(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user(
    ctx: AuthContext = Depends(require_auth()),
    users: UserService = Depends(get_user_service),
):
    """Get the current authenticated user."""
    return UserResponse.from_user(await users.get(ctx.user_id))


# =============================================================================
# Google
# =============================================================================

@router.post("/google", response_model=AuthToken)
async def google_token_exchange(
    data: GoogleTokenRequest,
    oauth: OAuthManager = Depends(get_oauth_manager),
    reconciler: IdentityReconciler = Depends(get_reconciler),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """
    Sign in with a Google access token obtained by the frontend.

    Creates the account on first sign-in.
    """
    if not data.access_token:
        raise ValidationError("No access_token provided")

    profile = await oauth.google.get_user_info(data.access_token)
    user = await reconciler.reconcile(profile)
    return issuer.issue_for(user)


@router.get("/google")
async def google_authorize(oauth: OAuthManager = Depends(get_oauth_manager)):
    """Start the code flow by redirecting to Google."""
    return RedirectResponse(oauth.get_authorize_url(), status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get("/google/callback")
async def google_callback_redirect(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    oauth: OAuthManager = Depends(get_oauth_manager),
    reconciler: IdentityReconciler = Depends(get_reconciler),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_app_settings),
):
    """
    Finish the code flow started by GET /auth/google.

    Redirects to the frontend with the token, or to its login page on failure.
    """
    frontend = settings.frontend_url.rstrip("/")

    try:
        if error or not code:
            raise AuthenticationError(error or "Missing authorization code")
        if not oauth.validate_state(state):
            raise AuthenticationError("Invalid state parameter")

        profile = await oauth.google.authenticate(code)
        user = await reconciler.reconcile(profile)
    except MarketplaceError as e:
        logger.warning(f"Google sign-in failed: {e.detail}")
        query = urlencode({"error": e.detail})
        return RedirectResponse(f"{frontend}/login?{query}", status_code=status.HTTP_302_FOUND)

    token = issuer.issue_for(user).token
    return RedirectResponse(
        f"{frontend}/auth-success?{urlencode({'token': token})}",
        status_code=status.HTTP_302_FOUND,
    )


@router.post("/google/callback", response_model=AuthToken)
async def google_callback(
    data: OAuthCallbackRequest,
    oauth: OAuthManager = Depends(get_oauth_manager),
    reconciler: IdentityReconciler = Depends(get_reconciler),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """
    Finish the code flow for clients that handle the redirect themselves.

    Exchange the authorization code for user info and return our token.
    """
    # Validate state (CSRF protection); it must come from GET /auth/google
    if not oauth.validate_state(data.state):
        raise ValidationError("Invalid state parameter")

    profile = await oauth.google.authenticate(data.code)
    user = await reconciler.reconcile(profile)
    return issuer.issue_for(user)
