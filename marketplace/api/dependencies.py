"""
FastAPI dependencies resolving the components built by create_app().

Everything lives on `app.state`; nothing here reads the environment.
"""

from __future__ import annotations

from fastapi import Request

from marketplace.auth.reconciler import IdentityReconciler
from marketplace.config import Settings
from marketplace.integrations.images import ImgBBClient
from marketplace.integrations.oauth import OAuthManager
from marketplace.services import DashboardService, ProductService, UserService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_service(request: Request) -> UserService:
    return request.app.state.users


def get_product_service(request: Request) -> ProductService:
    return request.app.state.products


def get_dashboard_service(request: Request) -> DashboardService:
    return request.app.state.dashboard


def get_reconciler(request: Request) -> IdentityReconciler:
    return request.app.state.reconciler


def get_oauth_manager(request: Request) -> OAuthManager:
    return request.app.state.oauth


def get_image_client(request: Request) -> ImgBBClient:
    return request.app.state.images
