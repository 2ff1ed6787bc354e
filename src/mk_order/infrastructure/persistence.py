"""OrderRepository — raw SQL persistence implementation.

Status changes are compare-and-swap: UPDATE ... WHERE status = ANY(expected).
Zero rows returned means another transaction moved the order first.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from collections.abc import Collection
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_order.domain.models import Order

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    id, buyer_id, seller_id, product_id, quantity, unit_price, total_amount,
    status, payment_reference, gateway_payment_id, created_at, paid_at,
    completed_at, updated_at
"""

_INSERT_ORDER_SQL = text(f"""
    INSERT INTO orders (id, buyer_id, seller_id, product_id,
        quantity, unit_price, total_amount, status)
    VALUES (:id, :buyer_id, :seller_id, :product_id,
        :quantity, :unit_price, :total_amount, :status)
    RETURNING {_SELECT_COLUMNS}
""")

_GET_ORDER_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders WHERE id = :id
""")

_GET_ORDER_FOR_UPDATE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders WHERE id = :id
    FOR UPDATE
""")

# paid_at is stamped on the first move to paid; completed_at on the first
# move to completed (a dispute withdrawn back to completed keeps the original).
_TRANSITION_SQL = text(f"""
    UPDATE orders
    SET status = CAST(:new_status AS TEXT),
        gateway_payment_id = COALESCE(CAST(:gateway_payment_id AS TEXT), gateway_payment_id),
        paid_at = CASE WHEN CAST(:new_status AS TEXT) = 'paid' AND paid_at IS NULL
                       THEN NOW() ELSE paid_at END,
        completed_at = CASE WHEN CAST(:new_status AS TEXT) = 'completed' AND completed_at IS NULL
                            THEN NOW() ELSE completed_at END,
        updated_at = NOW()
    WHERE id = :id
      AND status = ANY(string_to_array(CAST(:expected_csv AS TEXT), ','))
    RETURNING {_SELECT_COLUMNS}
""")

_SET_PAYMENT_REFERENCE_SQL = text(f"""
    UPDATE orders
    SET payment_reference = :payment_reference, updated_at = NOW()
    WHERE id = :id AND status = 'pending'
    RETURNING {_SELECT_COLUMNS}
""")

# Clearing sweep. Disputed orders are not 'paid' and are skipped by construction.
_COMPLETE_CLEARED_SQL = text(f"""
    UPDATE orders
    SET status = 'completed', completed_at = NOW(), updated_at = NOW()
    WHERE id IN (
        SELECT id FROM orders
        WHERE status = 'paid' AND paid_at <= :cutoff
        ORDER BY paid_at
        LIMIT :limit
        FOR UPDATE SKIP LOCKED
    )
    RETURNING {_SELECT_COLUMNS}
""")

_LIST_BY_BUYER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE buyer_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_BY_SELLER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE seller_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> Order:
    """Convert a DB result row to an Order domain object."""
    return Order(
        id=row.id,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        product_id=row.product_id,
        quantity=row.quantity,
        unit_price=row.unit_price,
        total_amount=row.total_amount,
        status=row.status,
        payment_reference=row.payment_reference,
        gateway_payment_id=row.gateway_payment_id,
        created_at=row.created_at,
        paid_at=row.paid_at,
        completed_at=row.completed_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def save(self, db: AsyncSession, order: Order) -> None:
        result = await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "buyer_id": order.buyer_id,
                "seller_id": order.seller_id,
                "product_id": order.product_id,
                "quantity": order.quantity,
                "unit_price": order.unit_price,
                "total_amount": order.total_amount,
                "status": order.status,
            },
        )
        row = result.fetchone()
        if row is not None:
            order.created_at = row.created_at
            order.updated_at = row.updated_at

    async def get_by_id(self, db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def get_for_update(self, db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(_GET_ORDER_FOR_UPDATE_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def transition_status(
        self,
        db: AsyncSession,
        order_id: str,
        expected: Collection[str],
        new_status: str,
        gateway_payment_id: str | None = None,
    ) -> Order | None:
        result = await db.execute(
            _TRANSITION_SQL,
            {
                "id": order_id,
                "expected_csv": ",".join(sorted(expected)),
                "new_status": new_status,
                "gateway_payment_id": gateway_payment_id,
            },
        )
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def set_payment_reference(
        self, db: AsyncSession, order_id: str, reference: str
    ) -> Order | None:
        result = await db.execute(
            _SET_PAYMENT_REFERENCE_SQL, {"id": order_id, "payment_reference": reference}
        )
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def complete_cleared(
        self, db: AsyncSession, cutoff: datetime, limit: int
    ) -> list[Order]:
        result = await db.execute(_COMPLETE_CLEARED_SQL, {"cutoff": cutoff, "limit": limit})
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_by_buyer(
        self, db: AsyncSession, buyer_id: str, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Order]:
        result = await db.execute(
            _LIST_BY_BUYER_SQL,
            {"user_id": buyer_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_by_seller(
        self, db: AsyncSession, seller_id: str, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Order]:
        result = await db.execute(
            _LIST_BY_SELLER_SQL,
            {"user_id": seller_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_order(row) for row in result.fetchall()]
