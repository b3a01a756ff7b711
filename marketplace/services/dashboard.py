"""
Admin dashboard statistics. All counting is done by the store.
"""

from __future__ import annotations

from pydantic import BaseModel

from marketplace.core.models import UserRole
from marketplace.storage import Collections, StorageProvider


class DashboardStats(BaseModel):
    total_users: int
    total_products: int
    low_stock_products: int
    users_by_role: dict[str, int]


class DashboardService:
    def __init__(self, storage: StorageProvider, low_stock_threshold: int = 10):
        self.store = storage.metadata
        self.low_stock_threshold = low_stock_threshold

    async def stats(self) -> DashboardStats:
        by_role = await self.store.group_count(Collections.USERS, "role")

        return DashboardStats(
            total_users=await self.store.count(Collections.USERS),
            total_products=await self.store.count(Collections.PRODUCTS),
            low_stock_products=await self.store.count(
                Collections.PRODUCTS,
                {"in_stock": {"$lt": self.low_stock_threshold}},
            ),
            # Every role is listed, including the empty ones
            users_by_role={role.value: by_role.get(role.value, 0) for role in UserRole},
        )
