"""
Admin routes.

Every route in this router sits behind the admin gate: a valid token first,
then role == admin. The role comes from the token, so a freshly demoted
admin keeps access until their token expires.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from marketplace.api.dependencies import (
    get_dashboard_service,
    get_product_service,
    get_user_service,
)
from marketplace.auth.policies import require_admin
from marketplace.core.errors import ValidationError
from marketplace.core.models import MessageResponse, Product, UserResponse, UserRole
from marketplace.services.dashboard import DashboardService, DashboardStats
from marketplace.services.products import ProductService, ProductUpdate
from marketplace.services.users import UserService

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin())],
)


class RoleUpdateRequest(BaseModel):
    role: str | None = None


class RoleUpdateResponse(BaseModel):
    message: str
    user: UserResponse


class ProductUpdateResponse(BaseModel):
    message: str
    product: Product


# =============================================================================
# User Management
# =============================================================================


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    users: UserService = Depends(get_user_service),
):
    return [UserResponse.from_user(u) for u in await users.list_users(limit=limit, offset=offset)]


@router.put("/users/{user_id}/role", response_model=RoleUpdateResponse)
async def update_user_role(
    user_id: str,
    data: RoleUpdateRequest,
    users: UserService = Depends(get_user_service),
):
    """Change a user's role. Takes effect on the user's next token."""
    try:
        role = UserRole(data.role)
    except ValueError:
        raise ValidationError("Invalid role") from None

    user = await users.update_role(user_id, role)
    return RoleUpdateResponse(message="User role updated successfully", user=UserResponse.from_user(user))


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: str, users: UserService = Depends(get_user_service)):
    await users.delete(user_id)
    return MessageResponse(message="User deleted successfully")


# =============================================================================
# Product Management
# =============================================================================


@router.get("/products", response_model=list[Product])
async def list_products(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    products: ProductService = Depends(get_product_service),
):
    return await products.list_products(limit=limit, offset=offset)


@router.put("/products/{product_id}", response_model=ProductUpdateResponse)
async def update_product(
    product_id: str,
    data: ProductUpdate,
    products: ProductService = Depends(get_product_service),
):
    product = await products.update(product_id, data)
    return ProductUpdateResponse(message="Product updated successfully", product=product)


@router.delete("/products/{product_id}", response_model=MessageResponse)
async def delete_product(product_id: str, products: ProductService = Depends(get_product_service)):
    await products.delete(product_id)
    return MessageResponse(message="Product deleted successfully")


# =============================================================================
# Dashboard
# =============================================================================


@router.get("/dashboard-stats", response_model=DashboardStats)
async def dashboard_stats(dashboard: DashboardService = Depends(get_dashboard_service)):
    return await dashboard.stats()
