"""
Domain models: users and products.

These are the records persisted in the document store. Request and response
shapes live next to the routes that use them; the *Response models here are
the public projections shared by several routers.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from marketplace.core.utils import generate_id, utc_now


# =============================================================================
# Enums
# =============================================================================


class UserRole(str, Enum):
    """Platform-wide role of a user."""

    USER = "user"
    SELLER = "seller"
    ADMIN = "admin"


class AuthProvider(str, Enum):
    """Where a user's identity comes from."""

    LOCAL = "local"
    GOOGLE = "google"


class ProductCategory(str, Enum):
    ELECTRONICS = "electronics"
    FOOD = "food"
    CLOTHING = "clothing"
    RENT = "rent"
    TRANSPORT = "transport"


# =============================================================================
# User
# =============================================================================


class User(BaseModel):
    """
    User stored in the database.

    `password_hash` is set only for local accounts. Google accounts carry
    `external_id` instead and can never log in with a password.
    """

    id: str = Field(default_factory=lambda: generate_id("user"))
    email: str
    name: str
    password_hash: str | None = None
    provider: AuthProvider = AuthProvider.LOCAL
    external_id: str | None = None
    role: UserRole = UserRole.USER
    avatar: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def has_password(self) -> bool:
        return self.provider == AuthProvider.LOCAL and bool(self.password_hash)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> User:
        return cls.model_validate({k: v for k, v in doc.items() if not k.startswith("_")})


class UserResponse(BaseModel):
    """User data returned to clients (no credentials)."""

    id: str
    email: str
    name: str
    role: UserRole
    provider: AuthProvider
    avatar: str | None = None
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            provider=user.provider,
            avatar=user.avatar,
            created_at=user.created_at,
        )


# =============================================================================
# Product
# =============================================================================


class Product(BaseModel):
    """
    A product listed on the marketplace.

    `in_stock` is a unit count; the admin dashboard reports products whose
    count is under the low-stock threshold.
    """

    id: str = Field(default_factory=lambda: generate_id("prod"))
    name: str
    description: str
    price: float = Field(ge=0)
    category: ProductCategory
    image: str | None = None
    in_stock: int = Field(default=0, ge=0)
    place_id: str | None = None
    seller_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Product:
        return cls.model_validate({k: v for k, v in doc.items() if not k.startswith("_")})


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
