"""
FastAPI application for the marketplace.

create_app() builds every component from one Settings object and hangs
them on `app.state`; routes reach them through marketplace.api.dependencies.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import timedelta

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace import __version__
from marketplace.api import admin, images, products, users
from marketplace.auth import IdentityReconciler, PasswordHasher, TokenIssuer
from marketplace.auth.routes import router as auth_router
from marketplace.config import Settings, get_settings
from marketplace.core.errors import MarketplaceError
from marketplace.integrations.images import ImgBBClient
from marketplace.integrations.oauth import OAuthManager
from marketplace.integrations.sentry import capture_exception, init_sentry
from marketplace.logging_config import configure_logging
from marketplace.services import DashboardService, ProductService, UserService
from marketplace.storage import StorageProvider, create_storage

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Internal server error"


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open and close the store connection."""
    storage: StorageProvider = app.state.storage
    settings: Settings = app.state.settings

    await storage.startup()
    logger.info(f"Marketplace API starting in {settings.environment} mode")

    yield

    await storage.shutdown()
    logger.info("Marketplace API shutting down")


# =============================================================================
# Error Handling
# =============================================================================


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Map the error taxonomy onto HTTP responses."""
    detail = exc.detail
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.detail}")
        capture_exception(exc, path=request.url.path)
        detail = GENERIC_ERROR

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content={"detail": detail}, headers=headers)


async def request_logging_middleware(request: Request, call_next):
    """Log every request and turn unexpected exceptions into a bare 500."""
    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    except Exception as exc:
        logger.error(
            f"Unhandled exception during {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )
        capture_exception(exc, path=request.url.path)
        return JSONResponse(status_code=500, content={"detail": GENERIC_ERROR})
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"{request.method} {request.url.path} {status_code} {duration_ms:.0f}ms")


# =============================================================================
# App Setup
# =============================================================================


def create_app(
    settings: Settings | None = None,
    storage: StorageProvider | None = None,
    oauth_transport: httpx.AsyncBaseTransport | None = None,
    image_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration; read from the environment when omitted
        storage: Store to use instead of the one DATABASE_URL selects
        oauth_transport: httpx transport for Google calls (tests)
        image_transport: httpx transport for ImgBB calls (tests)

    Raises:
        ConfigurationError: the signing key or Google credentials are missing
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    settings.validate_startup()

    if init_sentry(settings):
        logger.info("Sentry error tracking enabled")

    storage = storage or create_storage(settings)
    hasher = PasswordHasher(settings.password_hash_iterations)
    user_service = UserService(storage, hasher)

    app = FastAPI(
        title="Marketplace API",
        description="Users, products and admin dashboard for the marketplace",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.hasher = hasher
    app.state.token_issuer = TokenIssuer(
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
    )
    app.state.users = user_service
    app.state.products = ProductService(storage)
    app.state.dashboard = DashboardService(storage, settings.low_stock_threshold)
    app.state.reconciler = IdentityReconciler(user_service)
    app.state.oauth = OAuthManager(settings, transport=oauth_transport)
    app.state.images = ImgBBClient(settings.imgbb_api_key, transport=image_transport)

    # CORS
    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_logging_middleware)
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)

    # Include routers
    app.include_router(auth_router)
    app.include_router(users.router)
    app.include_router(products.router)
    app.include_router(admin.router)
    app.include_router(images.router)

    @app.get("/health", tags=["monitoring"])
    async def health_check():
        """Basic liveness check."""
        return {"status": "ok", "service": "marketplace"}

    return app
