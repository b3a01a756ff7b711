"""
Product service - catalogue CRUD.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from marketplace.core.errors import NotFoundError
from marketplace.core.models import Product, ProductCategory
from marketplace.core.utils import utc_now
from marketplace.storage import Collections, StorageProvider

logger = logging.getLogger(__name__)


class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str
    price: float = Field(ge=0)
    category: ProductCategory
    image: str | None = None
    in_stock: int = Field(default=0, ge=0)
    place_id: str | None = None


class ProductUpdate(BaseModel):
    """
    Partial product update.

    Only fields present in the request body are applied. A field sent as
    null counts as absent; `in_stock: 0` and `price: 0` are real values.
    """
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    category: ProductCategory | None = None
    image: str | None = None
    in_stock: int | None = Field(default=None, ge=0)
    place_id: str | None = None

    def changes(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True, mode="json").items()
            if value is not None
        }


class ProductService:
    """Catalogue operations on top of MetadataStorage."""

    def __init__(self, storage: StorageProvider):
        self.store = storage.metadata

    async def list_products(
        self,
        category: ProductCategory | None = None,
        place_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Product]:
        filters: dict[str, Any] = {}
        if category is not None:
            filters["category"] = ProductCategory(category).value
        if place_id is not None:
            filters["place_id"] = place_id

        docs = await self.store.query(Collections.PRODUCTS, filters or None, limit=limit, offset=offset)
        return [Product.from_document(d) for d in docs]

    async def get(self, product_id: str) -> Product:
        doc = await self.store.get(Collections.PRODUCTS, product_id)
        if not doc:
            raise NotFoundError("Product not found")
        return Product.from_document(doc)

    async def create(self, data: ProductCreate, seller_id: str | None = None) -> Product:
        product = Product(**data.model_dump(), seller_id=seller_id)
        await self.store.insert(Collections.PRODUCTS, product.id, product.to_document())
        logger.info(f"Product {product.id} created by {seller_id}")
        return product

    async def update(self, product_id: str, data: ProductUpdate) -> Product:
        changes = data.changes()
        if not changes:
            return await self.get(product_id)

        changes["updated_at"] = utc_now().isoformat()
        doc = await self.store.update(Collections.PRODUCTS, product_id, changes)
        if not doc:
            raise NotFoundError("Product not found")
        return Product.from_document(doc)

    async def delete(self, product_id: str) -> None:
        if not await self.store.delete(Collections.PRODUCTS, product_id):
            raise NotFoundError("Product not found")
        logger.info(f"Product {product_id} deleted")
