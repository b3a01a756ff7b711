"""
Product routes.

Reading the catalogue is public; any signed-in user may create, update or
delete products.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.dependencies import get_product_service
from marketplace.auth.context import AuthContext
from marketplace.auth.policies import require_auth
from marketplace.core.models import MessageResponse, Product, ProductCategory
from marketplace.services.products import ProductCreate, ProductService, ProductUpdate

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=list[Product])
async def list_products(
    category: ProductCategory | None = None,
    place_id: str | None = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    products: ProductService = Depends(get_product_service),
):
    return await products.list_products(category=category, place_id=place_id, limit=limit, offset=offset)


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: str, products: ProductService = Depends(get_product_service)):
    return await products.get(product_id)


@router.post("", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    ctx: AuthContext = Depends(require_auth()),
    products: ProductService = Depends(get_product_service),
):
    return await products.create(data, seller_id=ctx.user_id)


@router.put("/{product_id}", response_model=Product)
async def update_product(
    product_id: str,
    data: ProductUpdate,
    ctx: AuthContext = Depends(require_auth()),
    products: ProductService = Depends(get_product_service),
):
    """Merge the sent fields over the stored product."""
    return await products.update(product_id, data)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: str,
    ctx: AuthContext = Depends(require_auth()),
    products: ProductService = Depends(get_product_service),
):
    await products.delete(product_id)
    return MessageResponse(message="Product deleted successfully")
