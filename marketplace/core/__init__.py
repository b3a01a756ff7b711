"""
Core domain: models, errors and shared helpers.
"""

from marketplace.core.errors import (
    MarketplaceError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    InternalError,
    ConfigurationError,
)
from marketplace.core.models import (
    User,
    UserResponse,
    UserRole,
    AuthProvider,
    Product,
    ProductCategory,
    MessageResponse,
)
from marketplace.core.utils import generate_id, utc_now, normalize_email

__all__ = [
    # Errors
    "MarketplaceError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
    "ConfigurationError",
    # Models
    "User",
    "UserResponse",
    "UserRole",
    "AuthProvider",
    "Product",
    "ProductCategory",
    "MessageResponse",
    # Utils
    "generate_id",
    "utc_now",
    "normalize_email",
]
