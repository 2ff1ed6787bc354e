"""ProductRepository — concrete implementation of ProductRepositoryProtocol.

All queries use raw text() SQL (no ORM).
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_catalog.domain.models import Product

_GET_PRODUCT_SQL = text("""
    SELECT id, seller_id, title, price_cents, stock, min_order_quantity,
           is_active, created_at, updated_at
    FROM products
    WHERE id = :product_id
""")

# No stock >= :quantity guard: payment confirmation is asynchronous and two
# buyers may race for the last unit. The caller surfaces a negative result
# as a warning.
_DECREMENT_STOCK_SQL = text("""
    UPDATE products
    SET stock = stock - :quantity,
        updated_at = NOW()
    WHERE id = :product_id
    RETURNING stock
""")


def _row_to_product(row: object) -> Product:
    return Product(
        id=row.id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        price_cents=row.price_cents,  # type: ignore[attr-defined]
        stock=row.stock,  # type: ignore[attr-defined]
        min_order_quantity=row.min_order_quantity,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class ProductRepository:
    async def get_product(self, db: AsyncSession, product_id: str) -> Product | None:
        result = await db.execute(_GET_PRODUCT_SQL, {"product_id": product_id})
        row = result.fetchone()
        return _row_to_product(row) if row else None

    async def decrement_stock(
        self, db: AsyncSession, product_id: str, quantity: int
    ) -> int | None:
        """Return the new stock level, or None if the product no longer exists."""
        result = await db.execute(
            _DECREMENT_STOCK_SQL, {"product_id": product_id, "quantity": quantity}
        )
        row = result.fetchone()
        return row.stock if row else None
