"""BalanceRepository — aggregate reads over orders and withdrawals.

Both sides are read in ONE statement so they come from the same snapshot:
a reader sees a dispute resolution or a withdrawal either entirely or not at
all, never half of it.
"""

from collections import defaultdict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_balance.domain.repository import StatusSums

_SELLER_SUMS_SQL = text("""
    SELECT 'order' AS source, status, COALESCE(SUM(total_amount), 0) AS amount
    FROM orders
    WHERE seller_id = :seller_id
    GROUP BY status
    UNION ALL
    SELECT 'withdrawal' AS source, status, COALESCE(SUM(amount), 0) AS amount
    FROM withdrawals
    WHERE user_id = :seller_id
    GROUP BY status
""")

_ALL_SUMS_SQL = text("""
    SELECT 'order' AS source, seller_id AS owner_id, status,
           COALESCE(SUM(total_amount), 0) AS amount
    FROM orders
    GROUP BY seller_id, status
    UNION ALL
    SELECT 'withdrawal' AS source, user_id AS owner_id, status,
           COALESCE(SUM(amount), 0) AS amount
    FROM withdrawals
    GROUP BY user_id, status
""")


class BalanceRepository:
    async def get_status_sums(
        self, db: AsyncSession, seller_id: str
    ) -> tuple[StatusSums, StatusSums]:
        result = await db.execute(_SELLER_SUMS_SQL, {"seller_id": seller_id})
        orders: StatusSums = {}
        withdrawals: StatusSums = {}
        for row in result.fetchall():
            target = orders if row.source == "order" else withdrawals
            target[row.status] = int(row.amount)
        return orders, withdrawals

    async def get_all_status_sums(
        self, db: AsyncSession
    ) -> dict[str, tuple[StatusSums, StatusSums]]:
        result = await db.execute(_ALL_SUMS_SQL)
        by_owner: dict[str, tuple[StatusSums, StatusSums]] = defaultdict(lambda: ({}, {}))
        for row in result.fetchall():
            orders, withdrawals = by_owner[row.owner_id]
            target = orders if row.source == "order" else withdrawals
            target[row.status] = int(row.amount)
        return dict(by_owner)
