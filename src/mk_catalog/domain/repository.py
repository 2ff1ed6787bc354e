"""Repository Protocol — dependency inversion for testability.

Checkout only needs to read a listing and, on completion, decrement its
stock. Browsing and search are served elsewhere.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_catalog.domain.models import Product


class ProductRepositoryProtocol(Protocol):
    async def get_product(self, db: AsyncSession, product_id: str) -> Product | None: ...

    async def decrement_stock(
        self, db: AsyncSession, product_id: str, quantity: int
    ) -> int | None: ...
