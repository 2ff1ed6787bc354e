"""WithdrawalRepository — raw SQL persistence for payouts.

The seller_financials row doubles as the per-seller payout lock: every
withdrawal request takes it FOR UPDATE before reading the balance, so two
requests from the same seller serialize across processes.
"""

from collections.abc import Collection
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_withdrawal.domain.models import FinancialDetails, Withdrawal

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_DETAILS_COLUMNS = "user_id, pix_key, pix_key_type, legal_name, tax_id, created_at, updated_at"

_UPSERT_DETAILS_SQL = text(f"""
    INSERT INTO seller_financials (user_id, pix_key, pix_key_type, legal_name, tax_id)
    VALUES (:user_id, :pix_key, :pix_key_type, :legal_name, :tax_id)
    ON CONFLICT (user_id) DO UPDATE
    SET pix_key = EXCLUDED.pix_key,
        pix_key_type = EXCLUDED.pix_key_type,
        legal_name = EXCLUDED.legal_name,
        tax_id = EXCLUDED.tax_id,
        updated_at = NOW()
    RETURNING {_DETAILS_COLUMNS}
""")

_GET_DETAILS_SQL = text(f"""
    SELECT {_DETAILS_COLUMNS}
    FROM seller_financials WHERE user_id = :user_id
""")

_LOCK_DETAILS_SQL = text(f"""
    SELECT {_DETAILS_COLUMNS}
    FROM seller_financials WHERE user_id = :user_id
    FOR UPDATE
""")

_WITHDRAWAL_COLUMNS = """
    id, user_id, amount, pix_key, legal_name, tax_id, status,
    admin_note, reviewed_by, created_at, paid_at, updated_at
"""

_INSERT_WITHDRAWAL_SQL = text(f"""
    INSERT INTO withdrawals (id, user_id, amount, pix_key, legal_name, tax_id, status)
    VALUES (:id, :user_id, :amount, :pix_key, :legal_name, :tax_id, :status)
    RETURNING {_WITHDRAWAL_COLUMNS}
""")

_GET_WITHDRAWAL_SQL = text(f"""
    SELECT {_WITHDRAWAL_COLUMNS}
    FROM withdrawals WHERE id = :id
""")

_TRANSITION_SQL = text(f"""
    UPDATE withdrawals
    SET status = CAST(:new_status AS TEXT),
        reviewed_by = :reviewed_by,
        admin_note = COALESCE(CAST(:admin_note AS TEXT), admin_note),
        paid_at = CASE WHEN CAST(:new_status AS TEXT) = 'paid' THEN NOW() ELSE paid_at END,
        updated_at = NOW()
    WHERE id = :id
      AND status = ANY(string_to_array(CAST(:expected_csv AS TEXT), ','))
    RETURNING {_WITHDRAWAL_COLUMNS}
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {_WITHDRAWAL_COLUMNS}
    FROM withdrawals
    WHERE user_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_ALL_SQL = text(f"""
    SELECT {_WITHDRAWAL_COLUMNS}
    FROM withdrawals
    WHERE (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_details(row: Any) -> FinancialDetails:
    return FinancialDetails(
        user_id=row.user_id,
        pix_key=row.pix_key,
        pix_key_type=row.pix_key_type,
        legal_name=row.legal_name,
        tax_id=row.tax_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_withdrawal(row: Any) -> Withdrawal:
    return Withdrawal(
        id=row.id,
        user_id=row.user_id,
        amount=row.amount,
        pix_key=row.pix_key,
        legal_name=row.legal_name,
        tax_id=row.tax_id,
        status=row.status,
        admin_note=row.admin_note,
        reviewed_by=row.reviewed_by,
        created_at=row.created_at,
        paid_at=row.paid_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class WithdrawalRepository:
    """Concrete implementation of WithdrawalRepositoryProtocol using raw SQL."""

    async def upsert_details(
        self, db: AsyncSession, details: FinancialDetails
    ) -> FinancialDetails:
        result = await db.execute(
            _UPSERT_DETAILS_SQL,
            {
                "user_id": details.user_id,
                "pix_key": details.pix_key,
                "pix_key_type": details.pix_key_type,
                "legal_name": details.legal_name,
                "tax_id": details.tax_id,
            },
        )
        return _row_to_details(result.fetchone())

    async def get_details(self, db: AsyncSession, user_id: str) -> FinancialDetails | None:
        result = await db.execute(_GET_DETAILS_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_details(row) if row else None

    async def lock_details(self, db: AsyncSession, user_id: str) -> FinancialDetails | None:
        result = await db.execute(_LOCK_DETAILS_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_details(row) if row else None

    async def save(self, db: AsyncSession, withdrawal: Withdrawal) -> None:
        result = await db.execute(
            _INSERT_WITHDRAWAL_SQL,
            {
                "id": withdrawal.id,
                "user_id": withdrawal.user_id,
                "amount": withdrawal.amount,
                "pix_key": withdrawal.pix_key,
                "legal_name": withdrawal.legal_name,
                "tax_id": withdrawal.tax_id,
                "status": withdrawal.status,
            },
        )
        row = result.fetchone()
        if row is not None:
            withdrawal.created_at = row.created_at
            withdrawal.updated_at = row.updated_at

    async def get_by_id(self, db: AsyncSession, withdrawal_id: str) -> Withdrawal | None:
        result = await db.execute(_GET_WITHDRAWAL_SQL, {"id": withdrawal_id})
        row = result.fetchone()
        return _row_to_withdrawal(row) if row else None

    async def transition_status(
        self,
        db: AsyncSession,
        withdrawal_id: str,
        expected: Collection[str],
        new_status: str,
        reviewed_by: str,
        admin_note: str | None = None,
    ) -> Withdrawal | None:
        result = await db.execute(
            _TRANSITION_SQL,
            {
                "id": withdrawal_id,
                "expected_csv": ",".join(sorted(expected)),
                "new_status": new_status,
                "reviewed_by": reviewed_by,
                "admin_note": admin_note,
            },
        )
        row = result.fetchone()
        return _row_to_withdrawal(row) if row else None

    async def list_by_user(
        self, db: AsyncSession, user_id: str, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Withdrawal]:
        result = await db.execute(
            _LIST_BY_USER_SQL,
            {"user_id": user_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_withdrawal(row) for row in result.fetchall()]

    async def list_all(
        self, db: AsyncSession, status: str | None, cursor_id: str | None, limit: int
    ) -> list[Withdrawal]:
        result = await db.execute(
            _LIST_ALL_SQL, {"status": status, "cursor_id": cursor_id, "limit": limit}
        )
        return [_row_to_withdrawal(row) for row in result.fetchall()]
