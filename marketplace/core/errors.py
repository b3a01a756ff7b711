"""
Error taxonomy for the marketplace backend.

Every error carries the HTTP status it maps to and a client-safe detail
message. The API layer turns these into responses; anything that is not a
MarketplaceError becomes a generic 500.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(MarketplaceError):
    """Bad or missing input."""

    status_code = 400
    default_detail = "Invalid request"


class AuthenticationError(MarketplaceError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    default_detail = "Authentication required"


class AuthorizationError(MarketplaceError):
    """Valid identity, insufficient role."""

    status_code = 403
    default_detail = "Permission denied"


class NotFoundError(MarketplaceError):
    """Unknown id."""

    status_code = 404
    default_detail = "Not found"


class ConflictError(MarketplaceError):
    """Uniqueness violation in the store."""

    status_code = 409
    default_detail = "Resource already exists"

    def __init__(self, detail: str | None = None, field: str | None = None):
        self.field = field
        super().__init__(detail)


class InternalError(MarketplaceError):
    """Store or unexpected failure. Detail is never shown to clients."""

    status_code = 500


class ConfigurationError(MarketplaceError):
    """Required configuration is missing. Raised at startup."""

    status_code = 500
    default_detail = "Invalid configuration"
