"""
Services - business logic behind the HTTP handlers.
"""

from marketplace.services.users import UserService, UserCreate, UserUpdate
from marketplace.services.products import ProductService, ProductCreate, ProductUpdate
from marketplace.services.dashboard import DashboardService, DashboardStats

__all__ = [
    "UserService",
    "UserCreate",
    "UserUpdate",
    "ProductService",
    "ProductCreate",
    "ProductUpdate",
    "DashboardService",
    "DashboardStats",
]
